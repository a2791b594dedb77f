# backend/gardenbook/routers/providers.py
"""
Provider scheduling settings.

GET  /providers/{provider_id}/settings          - effective buffer and template horizon
PUT  /providers/{provider_id}/settings          - set/clear the overrides
GET  /providers/{provider_id}/schedule          - weekly recurring template
PUT  /providers/{provider_id}/schedule          - replace the template (optionally generate)
POST /providers/{provider_id}/schedule/generate - seed availability from the template
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_config, get_slots_cache
from ..schemas.providers import (
    GenerateRequest,
    GenerateResponse,
    ProviderSettingsRead,
    ProviderSettingsUpdate,
    WeeklyScheduleRead,
    WeeklyScheduleUpdate,
    WeeklyWindowSchema,
)
from ..services.slots import (
    AvailabilityStore,
    BookingConfig,
    SlotsRedisStore,
    WeeklyWindow,
    generate_recurring_days,
    get_provider_settings,
    get_weekly_template,
    group_windows,
    save_weekly_template,
    update_provider_settings,
)

router = APIRouter(prefix="/providers", tags=["providers"])


def _schedule_read(db: Session, provider_id: str, config: BookingConfig, seeded=()) -> WeeklyScheduleRead:
    template = get_weekly_template(db, provider_id)
    settings = get_provider_settings(db, provider_id, config)
    return WeeklyScheduleRead(
        provider_id=provider_id,
        windows=[
            WeeklyWindowSchema(days=list(w.days), start_hour=w.start_hour, end_hour=w.end_hour)
            for w in group_windows(template)
        ],
        weeks_to_maintain=settings.weeks_to_maintain,
        seeded=list(seeded),
    )


@router.get("/{provider_id}/settings", response_model=ProviderSettingsRead)
def get_settings(
    provider_id: str,
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_config),
):
    return get_provider_settings(db, provider_id, config)


@router.put("/{provider_id}/settings", response_model=ProviderSettingsRead)
def put_settings(
    provider_id: str,
    data: ProviderSettingsUpdate,
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_config),
    cache: Optional[SlotsRedisStore] = Depends(get_slots_cache),
):
    return update_provider_settings(
        db, provider_id, data.min_gap_hours, data.weeks_to_maintain, config, cache
    )


@router.get("/{provider_id}/schedule", response_model=WeeklyScheduleRead)
def get_schedule(
    provider_id: str,
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_config),
):
    return _schedule_read(db, provider_id, config)


@router.put("/{provider_id}/schedule", response_model=WeeklyScheduleRead)
def put_schedule(
    provider_id: str,
    data: WeeklyScheduleUpdate,
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_config),
    cache: Optional[SlotsRedisStore] = Depends(get_slots_cache),
):
    save_weekly_template(db, provider_id, [
        WeeklyWindow(days=tuple(w.days), start_hour=w.start_hour, end_hour=w.end_hour)
        for w in data.windows
    ])
    seeded = []
    if data.generate_from is not None:
        store = AvailabilityStore(db, config, cache)
        seeded = generate_recurring_days(store, provider_id, data.generate_from)
    return _schedule_read(db, provider_id, config, seeded)


@router.post("/{provider_id}/schedule/generate", response_model=GenerateResponse)
def generate_schedule(
    provider_id: str,
    data: GenerateRequest,
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_config),
    cache: Optional[SlotsRedisStore] = Depends(get_slots_cache),
):
    store = AvailabilityStore(db, config, cache)
    seeded = generate_recurring_days(store, provider_id, data.date_from, data.weeks)
    return GenerateResponse(provider_id=provider_id, seeded=seeded)
