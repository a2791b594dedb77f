"""
Tariff persistence: one JSON config per (provider, service type).

Reads always go through migrate_tariff(), so callers only ever see the
current schema. Writes store the current schema.
"""

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...database import run_with_retry
from ...models.generated import Tariffs
from .tariff import CURRENT_SCHEMA_VERSION, TariffConfig, migrate_tariff

logger = logging.getLogger(__name__)


def get_tariff(db: Session, provider_id: str, service_type: str) -> TariffConfig | None:
    row = db.execute(
        select(Tariffs).where(
            Tariffs.provider_id == provider_id,
            Tariffs.service_type == service_type,
        )
    ).scalar_one_or_none()
    if row is None:
        return None
    return migrate_tariff(row.config)


def get_tariffs(
    db: Session,
    provider_id: str,
    service_types: Iterable[str],
) -> dict[str, TariffConfig]:
    """Tariffs of one provider for several service types (missing ones absent)."""
    service_types = list(dict.fromkeys(service_types))
    if not service_types:
        return {}
    rows = db.execute(
        select(Tariffs).where(
            Tariffs.provider_id == provider_id,
            Tariffs.service_type.in_(service_types),
        )
    ).scalars().all()
    return {row.service_type: migrate_tariff(row.config) for row in rows}


def save_tariff(
    db: Session,
    provider_id: str,
    service_type: str,
    config: TariffConfig,
) -> TariffConfig:
    """Insert or replace the tariff. Returns what was stored."""
    payload = config.model_dump_json()

    def _op():
        row = db.execute(
            select(Tariffs).where(
                Tariffs.provider_id == provider_id,
                Tariffs.service_type == service_type,
            )
        ).scalar_one_or_none()
        if row is None:
            row = Tariffs(provider_id=provider_id, service_type=service_type)
            db.add(row)
        row.config = payload
        row.schema_version = CURRENT_SCHEMA_VERSION
        db.commit()

    run_with_retry(db, _op)

    missing = config.missing_combinations()
    if missing:
        logger.info(
            f"Tariff saved incomplete: provider={provider_id} service={service_type} "
            f"missing={len(missing)}"
        )
    else:
        logger.info(f"Tariff saved: provider={provider_id} service={service_type}")
    return config
