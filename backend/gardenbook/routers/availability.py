# backend/gardenbook/routers/availability.py
"""
Availability API endpoints.

GET    /availability          - free hours of one provider day
GET    /availability/range    - free hours per day for a date range (one query)
PUT    /availability          - set/unset hours, or replace the whole day
POST   /availability/default  - seed the default schedule on empty days
DELETE /availability          - clear a provider day
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_config, get_slots_cache
from ..errors import InvalidRequest
from ..schemas.availability import (
    AvailabilityDay,
    AvailabilityRange,
    AvailabilityUpdate,
    ClearDayResponse,
    DefaultScheduleRequest,
    DefaultScheduleResponse,
)
from ..services.slots import AvailabilityStore, BookingConfig, SlotsRedisStore, get_held_hours

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["availability"])


def get_store(
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_config),
    cache: Optional[SlotsRedisStore] = Depends(get_slots_cache),
) -> AvailabilityStore:
    return AvailabilityStore(db, config, cache)


@router.get("", response_model=AvailabilityDay)
def get_availability(
    provider_id: str,
    date: date,
    store: AvailabilityStore = Depends(get_store),
):
    hours = store.get_blocks(provider_id, date)
    return AvailabilityDay(provider_id=provider_id, date=date, hours=sorted(hours))


@router.get("/range", response_model=AvailabilityRange)
def get_availability_range(
    provider_id: str,
    date_from: date,
    date_to: date,
    store: AvailabilityStore = Depends(get_store),
):
    blocks = store.get_blocks_range(provider_id, date_from, date_to)
    days = [
        AvailabilityDay(provider_id=provider_id, date=dt, hours=sorted(hours))
        for dt, hours in sorted(blocks.items())
    ]
    return AvailabilityRange(
        provider_id=provider_id,
        date_from=date_from,
        date_to=date_to,
        days=days,
        available_dates=[day.date for day in days if day.hours],
    )


@router.put("", response_model=AvailabilityDay)
def update_availability(
    data: AvailabilityUpdate,
    db: Session = Depends(get_db),
    store: AvailabilityStore = Depends(get_store),
):
    """Hours held by active bookings are never made available here."""
    held = get_held_hours(db, data.provider_id, data.date)

    if data.replace is not None:
        store.replace_day(data.provider_id, data.date, data.replace, held_hours=held)
    else:
        store.apply_changes(
            data.provider_id,
            data.date,
            available=data.available,
            unavailable=data.unavailable,
            held_hours=held,
        )

    hours = store.get_blocks(data.provider_id, data.date)
    return AvailabilityDay(provider_id=data.provider_id, date=data.date, hours=sorted(hours))


@router.post("/default", response_model=DefaultScheduleResponse)
def apply_default_schedule(
    data: DefaultScheduleRequest,
    store: AvailabilityStore = Depends(get_store),
):
    seeded = store.apply_default_schedule_range(data.provider_id, data.date_from, data.days)
    return DefaultScheduleResponse(provider_id=data.provider_id, seeded=seeded)


@router.delete("", response_model=ClearDayResponse)
def clear_day(
    provider_id: str,
    date: date,
    db: Session = Depends(get_db),
    store: AvailabilityStore = Depends(get_store),
):
    if get_held_hours(db, provider_id, date):
        raise InvalidRequest(f"{date} has active bookings; cancel them before clearing the day")
    deleted = store.clear_day(provider_id, date)
    return ClearDayResponse(provider_id=provider_id, date=date, deleted=deleted)
