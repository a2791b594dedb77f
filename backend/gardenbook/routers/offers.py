# backend/gardenbook/routers/offers.py

from fastapi import APIRouter, Depends, status

from ..dependencies import get_offer_service
from ..schemas.bookings import BookingRead
from ..schemas.offers import OfferClaim, OfferCreate, OfferDecline, OfferRead
from ..services.booking import OfferService

router = APIRouter(prefix="/offers", tags=["offers"])


@router.get("/{id}", response_model=OfferRead)
def get_offer(id: int, offers: OfferService = Depends(get_offer_service)):
    return offers.get(id)


@router.post("", response_model=OfferRead, status_code=status.HTTP_201_CREATED)
def create_offer(data: OfferCreate, offers: OfferService = Depends(get_offer_service)):
    return offers.offer(
        data.client_id, data.date, data.start_hour, data.duration_hours,
        data.total_price, data.provider_ids, notes=data.notes,
    )


@router.post("/{id}/claim", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def claim_offer(
    id: int,
    data: OfferClaim,
    offers: OfferService = Depends(get_offer_service),
):
    return offers.claim(id, data.provider_id, data.date, data.start_hour)


@router.post("/{id}/decline", response_model=OfferRead)
def decline_offer(
    id: int,
    data: OfferDecline,
    offers: OfferService = Depends(get_offer_service),
):
    return offers.decline(id, data.provider_id)
