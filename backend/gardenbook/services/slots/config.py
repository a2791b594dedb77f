"""
Booking configuration for slot scheduling.
"""

from dataclasses import dataclass
from functools import lru_cache

from ...config import settings

MAX_RECURRING_WEEKS = 12


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the scheduling engine.

    Attributes:
        min_gap_hours: Idle hours required between two bookings of the same
            provider (0 = pure non-overlap). Providers may override it.
        horizon_days: How many days ahead first-available scans look
        default_day_start: First hour seeded by the default schedule
        default_day_end: Hour the default schedule stops at (exclusive)
        scan_concurrency: Max parallel availability scans when ranking providers
        claim_retries: Automatic re-tries after a lost slot claim
        cache_ttl_seconds: Redis TTL for memoized start hours
        deposit_percent: Upfront deposit taken at checkout
        recurring_weeks: Weeks the weekly template is kept generated ahead
            (providers may override it)
    """
    min_gap_hours: int = 0
    horizon_days: int = 14
    default_day_start: int = 8
    default_day_end: int = 18
    scan_concurrency: int = 8
    claim_retries: int = 3
    cache_ttl_seconds: int = 300
    deposit_percent: int = 10
    recurring_weeks: int = 2

    def __post_init__(self):
        """Validate configuration."""
        if self.min_gap_hours < 0:
            raise ValueError(f"min_gap_hours must be >= 0, got {self.min_gap_hours}")
        if not 0 <= self.default_day_start < self.default_day_end <= 24:
            raise ValueError(
                "default schedule must satisfy 0 <= start < end <= 24, "
                f"got {self.default_day_start}..{self.default_day_end}"
            )
        if self.horizon_days < 1:
            raise ValueError(f"horizon_days must be >= 1, got {self.horizon_days}")
        if self.scan_concurrency < 1:
            raise ValueError(f"scan_concurrency must be >= 1, got {self.scan_concurrency}")
        if self.claim_retries < 1:
            raise ValueError(f"claim_retries must be >= 1, got {self.claim_retries}")
        if not 1 <= self.recurring_weeks <= MAX_RECURRING_WEEKS:
            raise ValueError(
                f"recurring_weeks must be within 1..{MAX_RECURRING_WEEKS}, got {self.recurring_weeks}"
            )

    @property
    def default_hours(self) -> list[int]:
        """
        Hours seeded by the default schedule.

        8..18 exclusive -> [8, 9, ..., 17]
        """
        return list(range(self.default_day_start, self.default_day_end))


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton), built from Settings."""
    return BookingConfig(
        min_gap_hours=settings.min_gap_hours,
        horizon_days=settings.horizon_days,
        default_day_start=settings.default_day_start,
        default_day_end=settings.default_day_end,
        scan_concurrency=settings.scan_concurrency,
        claim_retries=settings.claim_retries,
        cache_ttl_seconds=settings.slots_cache_ttl_seconds,
        deposit_percent=settings.deposit_percent,
        recurring_weeks=settings.recurring_weeks,
    )
