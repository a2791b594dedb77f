# backend/gardenbook/dependencies.py
"""
FastAPI dependencies shared by the routers.

Tests swap these through app.dependency_overrides.
"""

from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .redis_client import redis_client
from .services.booking import (
    NotificationSender,
    OfferService,
    ReservationLifecycle,
    make_notification_sender,
)
from .services.slots import BookingConfig, SlotsRedisStore, get_booking_config


def get_config() -> BookingConfig:
    return get_booking_config()


def get_slots_cache(config: BookingConfig = Depends(get_config)) -> Optional[SlotsRedisStore]:
    if redis_client is None:
        return None
    return SlotsRedisStore(redis_client, config)


def get_notifier() -> NotificationSender:
    return make_notification_sender(redis_client)


def get_lifecycle(
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_config),
    cache: Optional[SlotsRedisStore] = Depends(get_slots_cache),
    notifier: NotificationSender = Depends(get_notifier),
) -> ReservationLifecycle:
    return ReservationLifecycle(db, config, cache, notifier)


def get_offer_service(
    db: Session = Depends(get_db),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
) -> OfferService:
    return OfferService(db, lifecycle)
