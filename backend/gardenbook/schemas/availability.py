# backend/gardenbook/schemas/availability.py

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class AvailabilityDay(BaseModel):
    provider_id: str
    date: date
    hours: list[int]

    model_config = {"from_attributes": True}


class AvailabilityRange(BaseModel):
    provider_id: str
    date_from: date
    date_to: date
    days: list[AvailabilityDay]
    available_dates: list[date]


class AvailabilityUpdate(BaseModel):
    """
    Change one provider day.

    replace: full schedule of the day (other hours become unavailable).
    Without it, `available` and `unavailable` are applied as deltas.
    """
    provider_id: str
    date: date
    available: list[int] = Field(default_factory=list)
    unavailable: list[int] = Field(default_factory=list)
    replace: Optional[list[int]] = None


class DefaultScheduleRequest(BaseModel):
    provider_id: str
    date_from: date
    days: int = Field(default=1, ge=1, le=366)


class DefaultScheduleResponse(BaseModel):
    provider_id: str
    seeded: list[date]


class ClearDayResponse(BaseModel):
    provider_id: str
    date: date
    deleted: int
