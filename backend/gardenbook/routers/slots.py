# backend/gardenbook/routers/slots.py
"""
Slots API endpoints.

GET  /slots/starts - valid start hours of one provider day for a duration
GET  /slots/first  - earliest slot of one provider within the horizon
POST /slots/rank   - providers ordered by earliest availability
"""

from datetime import date
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db, get_session_factory
from ..dependencies import get_config, get_slots_cache
from ..schemas.slots import (
    FirstSlotResponse,
    RankEntry,
    RankRequest,
    RankResponse,
    SlotRead,
    StartHoursResponse,
)
from ..services.slots import (
    BookingConfig,
    SlotAllocator,
    SlotsRedisStore,
    first_available_slot_async,
    rank_providers,
)

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/starts", response_model=StartHoursResponse)
def get_start_hours(
    provider_id: str,
    date: date,
    duration: int,
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_config),
    cache: Optional[SlotsRedisStore] = Depends(get_slots_cache),
):
    allocator = SlotAllocator(db, config, cache)
    hours = allocator.valid_start_hours(provider_id, date, duration)
    return StartHoursResponse(provider_id=provider_id, date=date, duration=duration, hours=hours)


@router.get("/first", response_model=FirstSlotResponse)
async def get_first_slot(
    request: Request,
    provider_id: str,
    from_date: date,
    duration: int,
    horizon_days: int | None = None,
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    config: BookingConfig = Depends(get_config),
    cache: Optional[SlotsRedisStore] = Depends(get_slots_cache),
):
    """Scans day by day; once the client has disconnected no further day is read."""
    horizon = config.horizon_days if horizon_days is None else horizon_days
    slot = await first_available_slot_async(
        session_factory, provider_id, from_date, duration, horizon, config, cache,
        should_stop=request.is_disconnected,
    )
    return FirstSlotResponse(
        provider_id=provider_id,
        from_date=from_date,
        duration=duration,
        horizon_days=horizon,
        slot=SlotRead.model_validate(slot) if slot else None,
    )


@router.post("/rank", response_model=RankResponse)
async def rank(
    request: Request,
    data: RankRequest,
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    config: BookingConfig = Depends(get_config),
    cache: Optional[SlotsRedisStore] = Depends(get_slots_cache),
):
    rankings = await rank_providers(
        session_factory, data.provider_ids, data.from_date, data.duration,
        data.horizon_days, config, cache,
        should_stop=request.is_disconnected,
    )
    return RankResponse(
        from_date=data.from_date,
        duration=data.duration,
        providers=[
            RankEntry(
                provider_id=r.provider_id,
                slot=SlotRead.model_validate(r.slot) if r.slot else None,
            )
            for r in rankings
        ],
    )
