# backend/gardenbook/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class StartHoursResponse(BaseModel):
    """Valid start hours of one provider day for a job duration."""
    provider_id: str
    date: date
    duration: int
    hours: list[int]


class SlotRead(BaseModel):
    provider_id: str
    date: date
    hour: int

    model_config = {"from_attributes": True}


class FirstSlotResponse(BaseModel):
    provider_id: str
    from_date: date
    duration: int
    horizon_days: int
    slot: Optional[SlotRead] = None


class RankRequest(BaseModel):
    provider_ids: list[str] = Field(min_length=1)
    from_date: date
    duration: int
    horizon_days: Optional[int] = None


class RankEntry(BaseModel):
    provider_id: str
    slot: Optional[SlotRead] = None

    model_config = {"from_attributes": True}


class RankResponse(BaseModel):
    from_date: date
    duration: int
    providers: list[RankEntry]
