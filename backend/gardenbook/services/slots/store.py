# backend/gardenbook/services/slots/store.py
"""
Availability store: the calendar of hour blocks per provider/day.

Row format: (provider_id, date "YYYY-MM-DD", hour 0..23, is_available).
Rows are created by a provider setting a schedule (explicitly or through
the default generator), flipped to unavailable by a slot claim, flipped
back on cancellation. Physical deletes only happen in clear_day().

Every public write is all-or-nothing: the hour set is applied inside one
transaction and rolled back entirely on failure.
"""

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ...database import run_with_retry
from ...errors import InvalidRequest
from ...models.generated import AvailabilityBlocks
from .config import BookingConfig, get_booking_config
from .redis_store import SlotsRedisStore

logger = logging.getLogger(__name__)


def _normalize_hours(hours: Iterable[int]) -> list[int]:
    result = sorted(set(hours))
    for hour in result:
        if not isinstance(hour, int) or not 0 <= hour <= 23:
            raise InvalidRequest(f"hour must be within 0..23, got {hour!r}")
    return result


class AvailabilityStore:
    """Read/write primitives over availability_blocks."""

    def __init__(
        self,
        db: Session,
        config: BookingConfig | None = None,
        cache: Optional[SlotsRedisStore] = None,
    ):
        self.db = db
        self.config = config or get_booking_config()
        self.cache = cache

    # ── Read ─────────────────────────────────────────────────────────────

    def get_blocks(self, provider_id: str, dt: date) -> set[int]:
        """Hours with is_available=true for the provider on dt."""
        rows = self.db.execute(
            select(AvailabilityBlocks.hour).where(
                AvailabilityBlocks.provider_id == provider_id,
                AvailabilityBlocks.date == dt.isoformat(),
                AvailabilityBlocks.is_available == 1,
            )
        ).scalars().all()
        return set(rows)

    def get_blocks_range(
        self,
        provider_id: str,
        date_from: date,
        date_to: date,
    ) -> dict[date, set[int]]:
        """
        Available hours per day for [date_from, date_to], in one query.

        Days that have rows but no free hour map to an empty set; days
        without any row are absent.
        """
        if date_from > date_to:
            raise InvalidRequest("date_from must not be after date_to")

        rows = self.db.execute(
            select(
                AvailabilityBlocks.date,
                AvailabilityBlocks.hour,
                AvailabilityBlocks.is_available,
            ).where(
                AvailabilityBlocks.provider_id == provider_id,
                AvailabilityBlocks.date >= date_from.isoformat(),
                AvailabilityBlocks.date <= date_to.isoformat(),
            ).order_by(AvailabilityBlocks.date, AvailabilityBlocks.hour)
        ).all()

        result: dict[date, set[int]] = {}
        for date_str, hour, is_available in rows:
            day = result.setdefault(date.fromisoformat(date_str), set())
            if is_available:
                day.add(hour)
        return result

    def available_dates(
        self,
        provider_id: str,
        date_from: date,
        date_to: date,
    ) -> list[date]:
        """Dates in range with at least one free hour (calendar badges)."""
        blocks = self.get_blocks_range(provider_id, date_from, date_to)
        return sorted(dt for dt, hours in blocks.items() if hours)

    def has_schedule(self, provider_id: str, dt: date) -> bool:
        row = self.db.execute(
            select(AvailabilityBlocks.id).where(
                AvailabilityBlocks.provider_id == provider_id,
                AvailabilityBlocks.date == dt.isoformat(),
            ).limit(1)
        ).first()
        return row is not None

    # ── Write ────────────────────────────────────────────────────────────

    def set_available(self, provider_id: str, dt: date, hours: Iterable[int]) -> None:
        """Mark hours as available, creating missing rows. Idempotent."""
        self.apply_changes(provider_id, dt, available=hours)

    def set_unavailable(self, provider_id: str, dt: date, hours: Iterable[int]) -> None:
        """Mark hours as unavailable. Hours without a row stay absent. Idempotent."""
        self.apply_changes(provider_id, dt, unavailable=hours)

    def apply_changes(
        self,
        provider_id: str,
        dt: date,
        available: Iterable[int] = (),
        unavailable: Iterable[int] = (),
        held_hours: Iterable[int] = (),
    ) -> None:
        """
        Set some hours and unset others in one transaction.

        Both lists are validated before anything is written. held_hours
        (claimed by active bookings) are never made available.

        Raises:
            InvalidRequest: hour outside 0..23, or listed in both lists
        """
        to_set = _normalize_hours(available)
        to_unset = _normalize_hours(unavailable)
        overlap = set(to_set) & set(to_unset)
        if overlap:
            raise InvalidRequest(f"hours both set and unset: {sorted(overlap)}")
        held = set(_normalize_hours(held_hours))
        to_set = [h for h in to_set if h not in held]
        if not to_set and not to_unset:
            return

        def _op():
            try:
                if to_set:
                    self._upsert(provider_id, dt, to_set, available=True)
                if to_unset:
                    self._flip(provider_id, dt, to_unset, available=False)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        run_with_retry(self.db, _op)
        self._invalidate(provider_id, dt)
        logger.info(
            f"Availability changed: provider={provider_id} date={dt} "
            f"set={to_set} unset={to_unset}"
        )

    def replace_day(
        self,
        provider_id: str,
        dt: date,
        hours: Iterable[int],
        held_hours: Iterable[int] = (),
    ) -> None:
        """
        Set the full schedule of a day.

        Listed hours become available, every other existing row becomes
        unavailable. held_hours (claimed by active bookings) stay
        unavailable even if listed.
        """
        held = set(_normalize_hours(held_hours))
        wanted = [h for h in _normalize_hours(hours) if h not in held]

        def _op():
            self.db.execute(
                update(AvailabilityBlocks)
                .where(
                    AvailabilityBlocks.provider_id == provider_id,
                    AvailabilityBlocks.date == dt.isoformat(),
                    AvailabilityBlocks.hour.not_in(wanted),
                )
                .values(is_available=0)
                .execution_options(synchronize_session=False)
            )
            if wanted:
                self._upsert(provider_id, dt, wanted, available=True)
            self.db.commit()

        run_with_retry(self.db, _op)
        self._invalidate(provider_id, dt)
        logger.info(f"Availability replaced: provider={provider_id} date={dt} hours={wanted}")

    def apply_default_schedule(self, provider_id: str, dt: date) -> bool:
        """
        Seed the default hours (8..17 by default) if the day has no rows.

        Returns True when the day was seeded.
        """
        return self.seed_day(provider_id, dt, self.config.default_hours)

    def seed_day(self, provider_id: str, dt: date, hours: Iterable[int]) -> bool:
        """
        Create available rows for hours, only if the day has no rows at all.

        Days a provider already edited (or cleared to unavailable) are left
        as they are. Returns True when the day was seeded.
        """
        hour_list = _normalize_hours(hours)
        if not hour_list:
            return False

        def _op() -> bool:
            if self.has_schedule(provider_id, dt):
                return False
            for hour in hour_list:
                self.db.add(AvailabilityBlocks(
                    provider_id=provider_id,
                    date=dt.isoformat(),
                    hour=hour,
                    is_available=1,
                ))
            self.db.commit()
            return True

        seeded = run_with_retry(self.db, _op)
        if seeded:
            self._invalidate(provider_id, dt)
            logger.info(f"Day seeded: provider={provider_id} date={dt} hours={hour_list}")
        return seeded

    def apply_default_schedule_range(self, provider_id: str, date_from: date, days: int) -> list[date]:
        """Seed the default schedule for each day without rows. Returns seeded days."""
        seeded = []
        for offset in range(days):
            dt = date_from + timedelta(days=offset)
            if self.apply_default_schedule(provider_id, dt):
                seeded.append(dt)
        return seeded

    def clear_day(self, provider_id: str, dt: date) -> int:
        """Physically delete every row of the provider's day. Returns deleted count."""

        def _op() -> int:
            result = self.db.execute(
                delete(AvailabilityBlocks)
                .where(
                    AvailabilityBlocks.provider_id == provider_id,
                    AvailabilityBlocks.date == dt.isoformat(),
                )
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            return result.rowcount

        deleted = run_with_retry(self.db, _op)
        self._invalidate(provider_id, dt)
        logger.info(f"Availability cleared: provider={provider_id} date={dt} rows={deleted}")
        return deleted

    # ── Transaction-scoped primitives (no commit) ────────────────────────

    def lock_day(self, provider_id: str, dt: date) -> set[int]:
        """
        Read the day's free hours with row locks held until the transaction ends.

        On SQLite FOR UPDATE is a no-op; writers are serialized by the
        database lock taken at the first write instead.
        """
        rows = self.db.execute(
            select(AvailabilityBlocks.hour, AvailabilityBlocks.is_available)
            .where(
                AvailabilityBlocks.provider_id == provider_id,
                AvailabilityBlocks.date == dt.isoformat(),
            )
            .with_for_update()
        ).all()
        return {hour for hour, is_available in rows if is_available}

    def claim_hours(self, provider_id: str, dt: date, hours: list[int]) -> bool:
        """
        Conditional write: flip hours to unavailable only if all are still free.

        Returns False (and changes nothing visible after rollback) when
        fewer rows than requested were still available.
        """
        result = self.db.execute(
            update(AvailabilityBlocks)
            .where(
                AvailabilityBlocks.provider_id == provider_id,
                AvailabilityBlocks.date == dt.isoformat(),
                AvailabilityBlocks.hour.in_(hours),
                AvailabilityBlocks.is_available == 1,
            )
            .values(is_available=0)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == len(hours)

    def release_hours(self, provider_id: str, dt: date, hours: list[int]) -> None:
        self._flip(provider_id, dt, hours, available=True)

    # ── Helpers ──────────────────────────────────────────────────────────

    def _flip(self, provider_id: str, dt: date, hours: list[int], available: bool) -> int:
        result = self.db.execute(
            update(AvailabilityBlocks)
            .where(
                AvailabilityBlocks.provider_id == provider_id,
                AvailabilityBlocks.date == dt.isoformat(),
                AvailabilityBlocks.hour.in_(hours),
            )
            .values(is_available=1 if available else 0)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _upsert(self, provider_id: str, dt: date, hours: list[int], available: bool) -> None:
        existing = set(self.db.execute(
            select(AvailabilityBlocks.hour).where(
                AvailabilityBlocks.provider_id == provider_id,
                AvailabilityBlocks.date == dt.isoformat(),
                AvailabilityBlocks.hour.in_(hours),
            )
        ).scalars().all())

        self._flip(provider_id, dt, hours, available)
        for hour in hours:
            if hour not in existing:
                self.db.add(AvailabilityBlocks(
                    provider_id=provider_id,
                    date=dt.isoformat(),
                    hour=hour,
                    is_available=1 if available else 0,
                ))
        self.db.flush()

    def _invalidate(self, provider_id: str, dt: date) -> None:
        if self.cache is not None:
            self.cache.invalidate_provider_dates(provider_id, [dt])
