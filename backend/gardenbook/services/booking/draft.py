"""
Booking draft: the booking-in-progress a client builds step by step.

Owned by the caller (request body, client session), never kept in
process-wide state. Each step returns a new draft.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import InvalidRequest
from ..pricing import Quote, Task, estimate_hours, get_tariffs, quote_job


@dataclass(frozen=True)
class BookingDraft:
    client_id: Optional[str] = None
    tasks: tuple[Task, ...] = ()
    estimated_hours: Optional[int] = None  # manual override of the estimate
    provider_id: Optional[str] = None
    slot_date: Optional[date] = None
    start_hour: Optional[int] = None
    notes: Optional[str] = None
    target_total: Optional[Decimal] = field(default=None, compare=False)

    @property
    def service_types(self) -> list[str]:
        return list(dict.fromkeys(task.service_type for task in self.tasks))

    @property
    def duration(self) -> int:
        if self.estimated_hours is not None:
            return self.estimated_hours
        return estimate_hours(self.tasks)

    @property
    def has_slot(self) -> bool:
        return None not in (self.provider_id, self.slot_date, self.start_hour)

    def with_tasks(self, tasks) -> "BookingDraft":
        return replace(self, tasks=tuple(tasks))

    def with_provider(self, provider_id: str) -> "BookingDraft":
        return replace(self, provider_id=provider_id)

    def with_slot(self, provider_id: str, dt: date, start_hour: int) -> "BookingDraft":
        return replace(self, provider_id=provider_id, slot_date=dt, start_hour=start_hour)

    def require_slot(self) -> tuple[str, date, int]:
        if not self.has_slot:
            raise InvalidRequest("draft has no provider/date/hour selected")
        return self.provider_id, self.slot_date, self.start_hour


def price_draft(db: Session, draft: BookingDraft, finalize: bool = False) -> Quote:
    """Quote the draft's tasks against the chosen provider's tariffs."""
    if draft.provider_id is None:
        raise InvalidRequest("a quote needs a provider")
    if not draft.tasks:
        raise InvalidRequest("a quote needs at least one task")
    tariffs = get_tariffs(db, draft.provider_id, draft.service_types)
    return quote_job(draft.tasks, tariffs, target_total=draft.target_total, finalize=finalize)
