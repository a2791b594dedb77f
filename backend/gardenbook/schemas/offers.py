# backend/gardenbook/schemas/offers.py

import datetime as dt
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class OfferCreate(BaseModel):
    client_id: str
    date: date
    start_hour: int
    duration_hours: int
    total_price: Decimal
    provider_ids: list[str] = Field(min_length=1)
    notes: Optional[str] = None


class OfferCandidateRead(BaseModel):
    provider_id: str
    status: str

    model_config = {"from_attributes": True}


class OfferRead(BaseModel):
    id: int
    client_id: str
    date: date
    start_hour: int
    duration_hours: int
    total_price: Decimal
    status: str
    claimed_provider_id: Optional[str] = None
    booking_id: Optional[int] = None
    notes: Optional[str] = None
    candidates: list[OfferCandidateRead]

    model_config = {"from_attributes": True}


class OfferClaim(BaseModel):
    """Slot defaults to the one in the offer."""
    provider_id: str
    date: Optional[dt.date] = None
    start_hour: Optional[int] = None


class OfferDecline(BaseModel):
    provider_id: str
