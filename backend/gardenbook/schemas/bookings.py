# backend/gardenbook/schemas/bookings.py

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .quotes import LineItemRead, TaskIn


class BookingCreate(BaseModel):
    """
    Either total_price or tasks must be given.

    With tasks, the price is quoted from the provider's tariffs (and must
    be fully configured) and the duration defaults to the estimate.
    """
    provider_id: str
    client_id: str
    date: date
    start_hour: int
    duration_hours: Optional[int] = None
    total_price: Optional[Decimal] = None
    tasks: list[TaskIn] = Field(default_factory=list)
    status: Literal["pending", "confirmed"] = "pending"
    auto_retry: bool = True

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int
    provider_id: str
    client_id: str
    offer_id: Optional[int] = None

    date: date
    start_hour: int
    duration_hours: int

    status: str
    total_price: Decimal
    cancel_reason: Optional[str] = None
    line_items: list[LineItemRead] = Field(default_factory=list)

    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class BookingCancel(BaseModel):
    reason: Optional[str] = None
