"""
Slot scheduling module.

AvailabilityStore: hour blocks per provider/day (SQL)
Buffer policy: overlap and minimum-gap rules (pure)
SlotAllocator: valid start hours, first available slot, provider ranking
SlotsRedisStore: memoized start hours (Redis, optional)
Provider settings: buffer override, weekly template and its generator
"""

from .config import BookingConfig, get_booking_config
from .buffer import BookedInterval, interval_hours, is_sequence_available, validate_interval, validate_duration
from .redis_store import SlotsRedisStore
from .store import AvailabilityStore
from .allocator import (
    ProviderRanking,
    SlotAllocator,
    SlotSuggestion,
    compute_start_hours,
    first_available_slot_async,
    get_active_intervals,
    get_held_hours,
    rank_providers,
    resolve_min_gap,
)
from .provider_settings import (
    ProviderSchedulingSettings,
    WeeklyWindow,
    generate_recurring_days,
    get_provider_settings,
    get_weekly_template,
    group_windows,
    save_weekly_template,
    update_provider_settings,
)

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "BookedInterval",
    "interval_hours",
    "is_sequence_available",
    "validate_interval",
    "validate_duration",
    "SlotsRedisStore",
    "AvailabilityStore",
    "ProviderRanking",
    "SlotAllocator",
    "SlotSuggestion",
    "compute_start_hours",
    "first_available_slot_async",
    "get_active_intervals",
    "get_held_hours",
    "rank_providers",
    "resolve_min_gap",
    "ProviderSchedulingSettings",
    "WeeklyWindow",
    "generate_recurring_days",
    "get_provider_settings",
    "get_weekly_template",
    "group_windows",
    "save_weekly_template",
    "update_provider_settings",
]
