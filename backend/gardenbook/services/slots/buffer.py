"""
Buffer policy: overlap and minimum-gap rules between bookings.

Pure functions, no I/O. The same check runs when listing start hours and
again inside the slot claim, against the snapshot each step reads.
"""

from dataclasses import dataclass
from typing import Iterable

from ...errors import InvalidRequest

HOURS_PER_DAY = 24


@dataclass(frozen=True)
class BookedInterval:
    """An existing booking of the provider on the same day, [start, start+duration)."""
    start: int
    duration: int

    @property
    def end(self) -> int:
        return self.start + self.duration


def validate_interval(start_hour: int, duration: int) -> None:
    """Reject malformed hour/duration before touching the store."""
    if not isinstance(start_hour, int) or not 0 <= start_hour < HOURS_PER_DAY:
        raise InvalidRequest(f"start hour must be within 0..23, got {start_hour!r}")
    validate_duration(duration)
    if start_hour + duration > HOURS_PER_DAY:
        raise InvalidRequest(
            f"interval {start_hour}+{duration}h crosses midnight"
        )


def validate_duration(duration: int) -> None:
    if not isinstance(duration, int) or duration < 1:
        raise InvalidRequest(f"duration must be a positive number of hours, got {duration!r}")
    if duration > HOURS_PER_DAY:
        raise InvalidRequest(f"duration cannot exceed {HOURS_PER_DAY} hours, got {duration}")


def interval_hours(start_hour: int, duration: int) -> list[int]:
    """Hours covered by [start_hour, start_hour + duration)."""
    return list(range(start_hour, start_hour + duration))


def is_sequence_available(
    provider_available: set[int],
    existing_bookings: Iterable[BookedInterval],
    candidate_start: int,
    duration: int,
    min_gap: int = 0,
) -> bool:
    """
    Check whether [candidate_start, candidate_start + duration) can be booked.

    1. Every covered hour must be in provider_available.
    2. The candidate must not overlap any existing active booking, and the
       idle gap on either side must be at least min_gap hours.
    """
    if duration < 1 or candidate_start < 0:
        return False

    candidate_end = candidate_start + duration
    if candidate_end > HOURS_PER_DAY:
        return False

    for hour in range(candidate_start, candidate_end):
        if hour not in provider_available:
            return False

    for booking in existing_bookings:
        # Overlap
        if candidate_start < booking.end and booking.start < candidate_end:
            return False
        # Gap after an existing booking
        if candidate_start >= booking.end and candidate_start - booking.end < min_gap:
            return False
        # Gap before an existing booking
        if booking.start >= candidate_end and booking.start - candidate_end < min_gap:
            return False

    return True
