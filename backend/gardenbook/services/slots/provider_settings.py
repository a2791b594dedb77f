"""
Per-provider scheduling settings and the weekly recurring template.

provider_settings: buffer override (min_gap_hours) and how many weeks
ahead the weekly template is kept generated (weeks_to_maintain). A NULL
column falls back to BookingConfig.

recurring_schedules: windows [start_hour, end_hour) per weekday
(0 = Monday .. 6 = Sunday). generate_recurring_days() seeds
availability_blocks from the template, only on days without any row, so
days a provider edited by hand are never overwritten.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ...database import run_with_retry
from ...errors import InvalidRequest
from ...models.generated import ProviderSettings, RecurringSchedules
from .config import MAX_RECURRING_WEEKS, BookingConfig, get_booking_config
from .redis_store import SlotsRedisStore
from .store import AvailabilityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSchedulingSettings:
    provider_id: str
    min_gap_hours: int  # effective
    weeks_to_maintain: int  # effective
    min_gap_override: Optional[int] = None
    weeks_override: Optional[int] = None


@dataclass(frozen=True)
class WeeklyWindow:
    """Hours [start_hour, end_hour) on each of `days`."""
    days: tuple[int, ...]
    start_hour: int
    end_hour: int


# ── Settings ─────────────────────────────────────────────────────────────


def get_provider_settings(
    db: Session,
    provider_id: str,
    config: BookingConfig | None = None,
) -> ProviderSchedulingSettings:
    config = config or get_booking_config()
    row = db.get(ProviderSettings, provider_id)
    min_gap = row.min_gap_hours if row is not None else None
    weeks = row.weeks_to_maintain if row is not None else None
    return ProviderSchedulingSettings(
        provider_id=provider_id,
        min_gap_hours=config.min_gap_hours if min_gap is None else min_gap,
        weeks_to_maintain=config.recurring_weeks if weeks is None else weeks,
        min_gap_override=min_gap,
        weeks_override=weeks,
    )


def update_provider_settings(
    db: Session,
    provider_id: str,
    min_gap_hours: Optional[int],
    weeks_to_maintain: Optional[int],
    config: BookingConfig | None = None,
    cache: Optional[SlotsRedisStore] = None,
) -> ProviderSchedulingSettings:
    """
    Replace the provider's overrides; None restores the configured default.

    Cached start hours depend on the buffer, so every cached day of the
    provider is invalidated once the change is committed.
    """
    if min_gap_hours is not None and min_gap_hours < 0:
        raise InvalidRequest(f"min_gap_hours must be >= 0, got {min_gap_hours}")
    if weeks_to_maintain is not None and not 1 <= weeks_to_maintain <= MAX_RECURRING_WEEKS:
        raise InvalidRequest(
            f"weeks_to_maintain must be within 1..{MAX_RECURRING_WEEKS}, got {weeks_to_maintain}"
        )

    def _op():
        try:
            row = db.get(ProviderSettings, provider_id)
            if row is None:
                row = ProviderSettings(provider_id=provider_id)
                db.add(row)
            row.min_gap_hours = min_gap_hours
            row.weeks_to_maintain = weeks_to_maintain
            db.commit()
        except Exception:
            db.rollback()
            raise

    run_with_retry(db, _op)
    if cache is not None:
        cache.invalidate_provider(provider_id)
    logger.info(
        f"Provider settings updated: provider={provider_id} "
        f"min_gap={min_gap_hours} weeks={weeks_to_maintain}"
    )
    return get_provider_settings(db, provider_id, config)


# ── Weekly template ──────────────────────────────────────────────────────


def weekly_hours(windows: Iterable[WeeklyWindow]) -> dict[int, list[int]]:
    """
    Validate windows and fold them into weekday -> sorted hours.

    Overlapping windows on the same day merge.
    """
    template: dict[int, set[int]] = {}
    for window in windows:
        if not 0 <= window.start_hour < window.end_hour <= 24:
            raise InvalidRequest(
                f"window must satisfy 0 <= start < end <= 24, "
                f"got {window.start_hour}..{window.end_hour}"
            )
        if not window.days:
            raise InvalidRequest("window needs at least one day")
        for day in window.days:
            if not 0 <= day <= 6:
                raise InvalidRequest(f"day_of_week must be within 0..6, got {day}")
            template.setdefault(day, set()).update(range(window.start_hour, window.end_hour))
    return {day: sorted(hours) for day, hours in sorted(template.items())}


def _runs(hours: list[int]) -> list[tuple[int, int]]:
    """[8, 9, 10, 14, 15] -> [(8, 11), (14, 16)]"""
    runs: list[tuple[int, int]] = []
    for hour in hours:
        if runs and runs[-1][1] == hour:
            runs[-1] = (runs[-1][0], hour + 1)
        else:
            runs.append((hour, hour + 1))
    return runs


def group_windows(template: dict[int, list[int]]) -> list[WeeklyWindow]:
    """Weekday -> hours back into windows, days sharing a time range grouped."""
    grouped: dict[tuple[int, int], list[int]] = {}
    for day, hours in sorted(template.items()):
        for start, end in _runs(hours):
            grouped.setdefault((start, end), []).append(day)
    return [
        WeeklyWindow(days=tuple(days), start_hour=start, end_hour=end)
        for (start, end), days in sorted(grouped.items())
    ]


def get_weekly_template(db: Session, provider_id: str) -> dict[int, list[int]]:
    rows = db.execute(
        select(
            RecurringSchedules.day_of_week,
            RecurringSchedules.start_hour,
            RecurringSchedules.end_hour,
        ).where(RecurringSchedules.provider_id == provider_id)
    ).all()
    return weekly_hours(WeeklyWindow((day,), start, end) for day, start, end in rows)


def save_weekly_template(
    db: Session,
    provider_id: str,
    windows: Iterable[WeeklyWindow],
) -> dict[int, list[int]]:
    """Replace the provider's weekly template. Existing availability is untouched."""
    template = weekly_hours(windows)

    def _op():
        try:
            db.execute(
                delete(RecurringSchedules)
                .where(RecurringSchedules.provider_id == provider_id)
                .execution_options(synchronize_session=False)
            )
            for day, hours in template.items():
                for start, end in _runs(hours):
                    db.add(RecurringSchedules(
                        provider_id=provider_id,
                        day_of_week=day,
                        start_hour=start,
                        end_hour=end,
                    ))
            db.commit()
        except Exception:
            db.rollback()
            raise

    run_with_retry(db, _op)
    logger.info(f"Weekly template saved: provider={provider_id} days={sorted(template)}")
    return template


def generate_recurring_days(
    store: AvailabilityStore,
    provider_id: str,
    date_from: date,
    weeks: Optional[int] = None,
) -> list[date]:
    """
    Seed weeks * 7 days from date_from out of the weekly template.

    Days that already have rows are skipped. Returns the seeded days.
    """
    if weeks is None:
        weeks = get_provider_settings(store.db, provider_id, store.config).weeks_to_maintain
    if not 1 <= weeks <= MAX_RECURRING_WEEKS:
        raise InvalidRequest(f"weeks must be within 1..{MAX_RECURRING_WEEKS}, got {weeks}")

    template = get_weekly_template(store.db, provider_id)
    if not template:
        return []

    seeded = []
    for offset in range(weeks * 7):
        dt = date_from + timedelta(days=offset)
        hours = template.get(dt.weekday())
        if hours and store.seed_day(provider_id, dt, hours):
            seeded.append(dt)
    logger.info(
        f"Recurring schedule generated: provider={provider_id} from={date_from} "
        f"weeks={weeks} seeded={len(seeded)}"
    )
    return seeded
