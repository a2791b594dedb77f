# backend/gardenbook/routers/tariffs.py

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import NotFound
from ..schemas.tariffs import TariffRead
from ..services.pricing import TariffConfig, get_tariff, migrate_tariff, save_tariff

router = APIRouter(prefix="/tariffs", tags=["tariffs"])


def _read(provider_id: str, service_type: str, config: TariffConfig) -> TariffRead:
    missing = config.missing_combinations()
    return TariffRead(
        provider_id=provider_id,
        service_type=service_type,
        config=config,
        missing=missing,
        is_complete=not missing,
    )


@router.get("/{provider_id}/{service_type}", response_model=TariffRead)
def read_tariff(provider_id: str, service_type: str, db: Session = Depends(get_db)):
    config = get_tariff(db, provider_id, service_type)
    if config is None:
        raise NotFound(f"No tariff for provider={provider_id} service={service_type}")
    return _read(provider_id, service_type, config)


@router.put("/{provider_id}/{service_type}", response_model=TariffRead)
def put_tariff(
    provider_id: str,
    service_type: str,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    """Accepts any known schema version; stored as the current one."""
    config = save_tariff(db, provider_id, service_type, migrate_tariff(payload))
    return _read(provider_id, service_type, config)
