# backend/gardenbook/routers/bookings.py
# Bookings are never deleted or patched: status changes go through the actions below

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import InvalidRequest
from ..schemas.bookings import BookingCancel, BookingCreate, BookingRead
from ..services.booking import BookingDraft, ReservationLifecycle, price_draft
from ..models.status import BookingStatus
from ..dependencies import get_lifecycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, lifecycle: ReservationLifecycle = Depends(get_lifecycle)):
    return lifecycle.get(id)


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
):
    draft = BookingDraft(
        client_id=data.client_id,
        tasks=tuple(t.to_task() for t in data.tasks),
        estimated_hours=data.duration_hours,
    ).with_slot(data.provider_id, data.date, data.start_hour)

    line_items = []
    if draft.tasks:
        quote = price_draft(db, draft, finalize=True)
        total_price = quote.total
        line_items = quote.line_items
        if data.total_price is not None and data.total_price != total_price:
            logger.info(
                f"Client total {data.total_price} replaced by quoted total {total_price} "
                f"for provider={data.provider_id}"
            )
    elif data.total_price is not None:
        total_price = data.total_price
    else:
        raise InvalidRequest("either total_price or tasks is required")

    if draft.estimated_hours is None and not draft.tasks:
        raise InvalidRequest("duration_hours is required without tasks")

    provider_id, dt, start_hour = draft.require_slot()
    create = lifecycle.create_with_retry if data.auto_retry else lifecycle.create
    return create(
        provider_id, data.client_id, dt, start_hour, draft.duration,
        total_price, line_items, BookingStatus(data.status),
    )


@router.post("/{id}/confirm", response_model=BookingRead)
def confirm_booking(id: int, lifecycle: ReservationLifecycle = Depends(get_lifecycle)):
    return lifecycle.confirm(id)


@router.post("/{id}/start", response_model=BookingRead)
def start_booking(id: int, lifecycle: ReservationLifecycle = Depends(get_lifecycle)):
    return lifecycle.start(id)


@router.post("/{id}/complete", response_model=BookingRead)
def complete_booking(id: int, lifecycle: ReservationLifecycle = Depends(get_lifecycle)):
    return lifecycle.complete(id)


@router.post("/{id}/cancel", response_model=BookingRead)
def cancel_booking(
    id: int,
    data: BookingCancel | None = None,
    lifecycle: ReservationLifecycle = Depends(get_lifecycle),
):
    return lifecycle.cancel(id, reason=data.reason if data else None)


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
