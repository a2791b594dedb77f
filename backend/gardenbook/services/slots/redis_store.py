# backend/gardenbook/services/slots/redis_store.py
"""
Redis cache for computed start hours.

Key format: slots:starts:{provider_id}:{date}:{duration}:{generation}
Value: JSON list of start hours, e.g. "[9, 10, 11]".
Sentinel: "[]" is a valid cached value ("calculated, zero starts").

Generation: "{provider_gen}.{day_gen}", read from
    slots:gen:{provider_id}          (bumped by provider-wide changes)
    slots:gen:{provider_id}:{date}   (bumped by changes of that day)

A reader takes the generation BEFORE reading the database and stores its
result under that generation. Invalidation bumps the counter after the
change is committed, so a result computed from a pre-change snapshot
lands under a generation nobody reads any more. Stale entries are also
deleted and expire with the TTL.

Invalidated by:
✓ Availability writes of a provider/day (set, unset, replace, seed, clear)
✓ Booking created, cancelled or claimed from an offer on that provider/day
✓ Provider settings change (min gap): every day of the provider

Not invalidated by:
✗ Status changes that keep hours consumed (confirm, start, complete)
✗ Tariff changes (pricing never feeds start hours)
"""

import json
import logging
from datetime import date
from typing import Iterable, Optional

from redis import Redis
from redis.exceptions import RedisError

from .config import BookingConfig, get_booking_config

logger = logging.getLogger(__name__)


class SlotsRedisStore:
    """Redis storage wrapper for memoized start hours."""

    KEY_PREFIX = "slots:starts"
    GEN_PREFIX = "slots:gen"

    def __init__(self, redis: Redis, config: BookingConfig | None = None):
        self.redis = redis
        self.config = config or get_booking_config()

    def _key(self, provider_id: str, dt: date, duration: int, generation: str) -> str:
        return f"{self.KEY_PREFIX}:{provider_id}:{dt.isoformat()}:{duration}:{generation}"

    def _day_pattern(self, provider_id: str, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{provider_id}:{dt.isoformat()}:*"

    def _provider_pattern(self, provider_id: str) -> str:
        return f"{self.KEY_PREFIX}:{provider_id}:*"

    def _provider_gen_key(self, provider_id: str) -> str:
        return f"{self.GEN_PREFIX}:{provider_id}"

    def _day_gen_key(self, provider_id: str, dt: date) -> str:
        return f"{self.GEN_PREFIX}:{provider_id}:{dt.isoformat()}"

    @property
    def _gen_ttl(self) -> int:
        # Outlives every entry written under an older generation
        return self.config.cache_ttl_seconds * 2

    # ── Read ─────────────────────────────────────────────────────────────

    def generation(self, provider_id: str, dt: date) -> Optional[str]:
        """Current generation of the provider/day, None on Redis failure."""
        try:
            provider_gen, day_gen = self.redis.mget(
                self._provider_gen_key(provider_id),
                self._day_gen_key(provider_id, dt),
            )
        except RedisError as e:
            logger.warning(f"Slots cache generation read failed: {e}")
            return None
        return f"{int(provider_gen or 0)}.{int(day_gen or 0)}"

    def get_start_hours(
        self,
        provider_id: str,
        dt: date,
        duration: int,
        generation: Optional[str] = None,
    ) -> list[int] | None:
        """
        Get cached start hours.

        Returns:
            Sorted list of hours, or None on cache miss / Redis failure.
        """
        generation = generation or self.generation(provider_id, dt)
        if generation is None:
            return None
        try:
            raw = self.redis.get(self._key(provider_id, dt, duration, generation))
        except RedisError as e:
            logger.warning(f"Slots cache read failed: {e}")
            return None

        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        return json.loads(raw)

    # ── Write ────────────────────────────────────────────────────────────

    def store_start_hours(
        self,
        provider_id: str,
        dt: date,
        duration: int,
        hours: list[int],
        generation: Optional[str] = None,
    ) -> None:
        """Store under `generation`, which the caller read before computing hours."""
        generation = generation or self.generation(provider_id, dt)
        if generation is None:
            return
        try:
            self.redis.set(
                self._key(provider_id, dt, duration, generation),
                json.dumps(sorted(hours)),
                ex=self.config.cache_ttl_seconds,
            )
        except RedisError as e:
            logger.warning(f"Slots cache write failed: {e}")

    # ── Delete ───────────────────────────────────────────────────────────

    def invalidate_provider_dates(self, provider_id: str, dates: Iterable[date]) -> int:
        """
        Bump the generation of each date and drop its cached durations.

        Returns:
            Number of deleted keys.
        """
        dates = list(dates)
        try:
            pipe = self.redis.pipeline()
            for dt in dates:
                pipe.incr(self._day_gen_key(provider_id, dt))
                pipe.expire(self._day_gen_key(provider_id, dt), self._gen_ttl)
            pipe.execute()

            keys: list = []
            for dt in dates:
                keys.extend(self.redis.scan_iter(match=self._day_pattern(provider_id, dt)))
            if not keys:
                return 0
            return self.redis.delete(*keys)
        except RedisError:
            logger.exception(f"Slots cache invalidation failed for provider={provider_id}")
            return 0

    def invalidate_provider(self, provider_id: str) -> int:
        """Bump the provider generation and drop every cached day of the provider."""
        try:
            pipe = self.redis.pipeline()
            pipe.incr(self._provider_gen_key(provider_id))
            pipe.expire(self._provider_gen_key(provider_id), self._gen_ttl)
            pipe.execute()

            keys = list(self.redis.scan_iter(match=self._provider_pattern(provider_id)))
            if not keys:
                return 0
            return self.redis.delete(*keys)
        except RedisError:
            logger.exception(f"Slots cache invalidation failed for provider={provider_id}")
            return 0
