"""
Slot allocation: which start hours let a provider take an N-hour job.

Combines the availability store (free hour blocks) with the buffer
policy (existing bookings, overlap and minimum gap) and scans forward
across days when the requested one has nothing.

Results for (provider, date, duration) are deterministic for a given
availability snapshot. They are memoized per allocator instance (one per
request) and, when Redis is configured, across requests until the
provider/day is invalidated.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Awaitable, Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...errors import InvalidRequest
from ...models.generated import Bookings, ProviderSettings
from ...models.status import ACTIVE_STATUSES
from .buffer import BookedInterval, interval_hours, is_sequence_available, validate_duration
from .config import BookingConfig, get_booking_config
from .redis_store import SlotsRedisStore
from .store import AvailabilityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotSuggestion:
    provider_id: str
    date: date
    hour: int


@dataclass(frozen=True)
class ProviderRanking:
    provider_id: str
    slot: Optional[SlotSuggestion]


def compute_start_hours(
    available: set[int],
    bookings: Iterable[BookedInterval],
    duration: int,
    min_gap: int,
) -> list[int]:
    """Start hours (ascending) that pass the buffer policy against one snapshot."""
    bookings = list(bookings)
    return [
        hour
        for hour in sorted(available)
        if is_sequence_available(available, bookings, hour, duration, min_gap)
    ]


class SlotAllocator:
    """Answers start-hour questions for one request."""

    def __init__(
        self,
        db: Session,
        config: BookingConfig | None = None,
        cache: Optional[SlotsRedisStore] = None,
    ):
        self.db = db
        self.config = config or get_booking_config()
        self.cache = cache
        self.store = AvailabilityStore(db, self.config, cache)
        self._memo: dict[tuple[str, date, int], list[int]] = {}

    def valid_start_hours(self, provider_id: str, dt: date, duration: int) -> list[int]:
        """Ordered start hours on dt for a job of `duration` hours."""
        validate_duration(duration)
        key = (provider_id, dt, duration)

        if key in self._memo:
            return list(self._memo[key])

        generation = None
        if self.cache is not None:
            # Taken before the snapshot below; see SlotsRedisStore
            generation = self.cache.generation(provider_id, dt)
            if generation is not None:
                cached = self.cache.get_start_hours(provider_id, dt, duration, generation)
                if cached is not None:
                    self._memo[key] = cached
                    return list(cached)

        available = self.store.get_blocks(provider_id, dt)
        bookings = get_active_intervals(self.db, provider_id, dt)
        min_gap = resolve_min_gap(self.db, provider_id, self.config)
        hours = compute_start_hours(available, bookings, duration, min_gap)

        self._memo[key] = hours
        if generation is not None:
            self.cache.store_start_hours(provider_id, dt, duration, hours, generation)
        return list(hours)

    def first_available_slot(
        self,
        provider_id: str,
        from_date: date,
        duration: int,
        horizon_days: int | None = None,
    ) -> Optional[SlotSuggestion]:
        """Earliest (date, hour) within from_date .. from_date + horizon - 1."""
        horizon = _resolve_horizon(horizon_days, self.config)
        for offset in range(horizon):
            dt = from_date + timedelta(days=offset)
            hours = self.valid_start_hours(provider_id, dt, duration)
            if hours:
                return SlotSuggestion(provider_id, dt, hours[0])
        return None

    def next_available_days(
        self,
        provider_id: str,
        from_date: date,
        duration: int,
        horizon_days: int | None = None,
        max_results: int = 7,
    ) -> list[tuple[date, list[int]]]:
        """Days with at least one valid start, with their starts."""
        horizon = _resolve_horizon(horizon_days, self.config)
        days = []
        for offset in range(horizon):
            dt = from_date + timedelta(days=offset)
            hours = self.valid_start_hours(provider_id, dt, duration)
            if hours:
                days.append((dt, hours))
                if len(days) >= max_results:
                    break
        return days

    def suggest_alternatives(
        self,
        provider_id: str,
        dt: date,
        duration: int,
        around_hour: int,
        limit: int = 3,
    ) -> list[int]:
        """Valid starts closest to around_hour (later hours win ties), ascending."""
        hours = self.valid_start_hours(provider_id, dt, duration)
        nearest = sorted(hours, key=lambda h: (abs(h - around_hour), -h))[:limit]
        return sorted(nearest)


# ── Async scans ──────────────────────────────────────────────────────────


async def first_available_slot_async(
    session_factory: Callable[[], Session],
    provider_id: str,
    from_date: date,
    duration: int,
    horizon_days: int | None = None,
    config: BookingConfig | None = None,
    cache: Optional[SlotsRedisStore] = None,
    should_stop: Optional[Callable[[], Awaitable[bool]]] = None,
) -> Optional[SlotSuggestion]:
    """
    Same as SlotAllocator.first_available_slot, one awaited read per day.

    Each day is read in a worker thread with its own session. Cancelling
    the awaiting task, or should_stop() answering True between two days,
    stops the scan before the next day is issued; the scan never writes.
    """
    config = config or get_booking_config()
    validate_duration(duration)
    horizon = _resolve_horizon(horizon_days, config)

    for offset in range(horizon):
        if should_stop is not None and await should_stop():
            logger.info(f"Scan for {provider_id} stopped after {offset} days")
            return None
        dt = from_date + timedelta(days=offset)
        hours = await asyncio.to_thread(
            _day_start_hours, session_factory, provider_id, dt, duration, config, cache
        )
        if hours:
            return SlotSuggestion(provider_id, dt, hours[0])
    return None


async def rank_providers(
    session_factory: Callable[[], Session],
    provider_ids: Iterable[str],
    from_date: date,
    duration: int,
    horizon_days: int | None = None,
    config: BookingConfig | None = None,
    cache: Optional[SlotsRedisStore] = None,
    should_stop: Optional[Callable[[], Awaitable[bool]]] = None,
) -> list[ProviderRanking]:
    """
    Order providers by earliest availability.

    Scans run in parallel, at most config.scan_concurrency at a time.
    Providers with a slot come first, by (date, hour, provider_id);
    providers with none follow, by provider_id. should_stop is passed to
    every scan.
    """
    config = config or get_booking_config()
    validate_duration(duration)
    semaphore = asyncio.Semaphore(config.scan_concurrency)
    unique_ids = list(dict.fromkeys(provider_ids))

    async def _scan(provider_id: str) -> ProviderRanking:
        async with semaphore:
            slot = await first_available_slot_async(
                session_factory, provider_id, from_date, duration,
                horizon_days, config, cache, should_stop,
            )
        return ProviderRanking(provider_id, slot)

    rankings = await asyncio.gather(*(_scan(pid) for pid in unique_ids))

    found = sorted(
        (r for r in rankings if r.slot is not None),
        key=lambda r: (r.slot.date, r.slot.hour, r.provider_id),
    )
    missing = sorted(
        (r for r in rankings if r.slot is None),
        key=lambda r: r.provider_id,
    )
    logger.info(
        f"Ranked {len(unique_ids)} providers from {from_date} "
        f"(duration={duration}h): {len(found)} with a slot"
    )
    return found + missing


def _day_start_hours(
    session_factory: Callable[[], Session],
    provider_id: str,
    dt: date,
    duration: int,
    config: BookingConfig,
    cache: Optional[SlotsRedisStore],
) -> list[int]:
    with session_factory() as db:
        return SlotAllocator(db, config, cache).valid_start_hours(provider_id, dt, duration)


# ── Database helpers ─────────────────────────────────────────────────────


def get_active_intervals(db: Session, provider_id: str, dt: date) -> list[BookedInterval]:
    """Active bookings of the provider on dt, as intervals."""
    rows = db.execute(
        select(Bookings.start_hour, Bookings.duration_hours).where(
            Bookings.provider_id == provider_id,
            Bookings.date == dt.isoformat(),
            Bookings.status.in_(ACTIVE_STATUSES),
        ).order_by(Bookings.start_hour)
    ).all()
    return [BookedInterval(start, duration) for start, duration in rows]


def resolve_min_gap(db: Session, provider_id: str, config: BookingConfig) -> int:
    """Provider-level buffer if configured, otherwise the global default."""
    override = db.execute(
        select(ProviderSettings.min_gap_hours).where(
            ProviderSettings.provider_id == provider_id
        )
    ).scalar_one_or_none()
    return config.min_gap_hours if override is None else override


def _resolve_horizon(horizon_days: int | None, config: BookingConfig) -> int:
    horizon = config.horizon_days if horizon_days is None else horizon_days
    if horizon < 1:
        raise InvalidRequest(f"horizon_days must be >= 1, got {horizon}")
    return horizon


def get_held_hours(db: Session, provider_id: str, dt: date) -> set[int]:
    """Hours consumed by the provider's active bookings on dt."""
    held: set[int] = set()
    for interval in get_active_intervals(db, provider_id, dt):
        held.update(interval_hours(interval.start, interval.duration))
    return held
