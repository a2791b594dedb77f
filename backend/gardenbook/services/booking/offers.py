"""
Offers: one job broadcast to several providers, claimed by one of them.

offer()   creates the offer and one pending candidate per provider.
          Nothing is claimed in the calendar at this point.
claim()   runs the slot claim for the chosen provider, creates a confirmed
          booking, marks that candidate claimed and expires its siblings,
          all in one transaction.
decline() marks a candidate declined; when every candidate has declined
          the offer is cancelled.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ...database import run_with_retry
from ...errors import InvalidRequest, InvalidTransition, NotFound, SlotConflict
from ...models.generated import Bookings, OfferCandidates, Offers
from ...models.status import BookingStatus, CandidateStatus, OfferStatus
from ..pricing.engine import LineItem, to_money
from ..slots import validate_interval
from .events import safe_send
from .lifecycle import NOTIFY_ON, ReservationLifecycle, booking_payload

logger = logging.getLogger(__name__)


class OfferService:
    def __init__(self, db: Session, lifecycle: ReservationLifecycle | None = None):
        self.db = db
        self.lifecycle = lifecycle or ReservationLifecycle(db)

    def get(self, offer_id: int) -> Offers:
        offer = self.db.get(Offers, offer_id)
        if offer is None:
            raise NotFound(f"Offer {offer_id} not found")
        return offer

    def offer(
        self,
        client_id: str,
        dt: date,
        start_hour: int,
        duration: int,
        total_price: Decimal,
        provider_ids: Iterable[str],
        notes: str | None = None,
    ) -> Offers:
        """Broadcast a job to the distinct providers given."""
        validate_interval(start_hour, duration)
        total_price = to_money(total_price)
        if total_price < 0:
            raise InvalidRequest(f"total_price must be >= 0, got {total_price}")
        providers = list(dict.fromkeys(p for p in provider_ids if p))
        if not providers:
            raise InvalidRequest("an offer needs at least one provider")

        def _op() -> Offers:
            try:
                offer = Offers(
                    client_id=client_id,
                    date=dt.isoformat(),
                    start_hour=start_hour,
                    duration_hours=duration,
                    total_price=total_price,
                    status=OfferStatus.OPEN.value,
                    notes=notes,
                )
                for provider_id in providers:
                    offer.candidates.append(OfferCandidates(
                        provider_id=provider_id,
                        status=CandidateStatus.PENDING.value,
                    ))
                self.db.add(offer)
                self.db.commit()
                return offer
            except Exception:
                self.db.rollback()
                raise

        offer = run_with_retry(self.db, _op)
        logger.info(f"Offer {offer.id} broadcast to {len(providers)} providers for {dt}")

        for provider_id in providers:
            safe_send(self.lifecycle.notifier, "offer_created", {
                "offer_id": offer.id,
                "provider_id": provider_id,
                "client_id": client_id,
                "date": offer.date,
                "start_hour": start_hour,
                "duration_hours": duration,
            })
        return offer

    def claim(
        self,
        offer_id: int,
        provider_id: str,
        dt: Optional[date] = None,
        start_hour: Optional[int] = None,
        line_items: Iterable[LineItem] = (),
    ) -> Bookings:
        """
        Turn the provider's candidate into a confirmed booking.

        The slot defaults to the one in the offer. On SlotConflict nothing
        changes: the offer stays open and the candidate pending.
        """
        offer = self.get(offer_id)
        if offer.status != OfferStatus.OPEN.value:
            raise InvalidTransition(offer.status, OfferStatus.CLAIMED.value, entity="offer")
        candidate = self._candidate(offer_id, provider_id)
        if candidate.status != CandidateStatus.PENDING.value:
            raise InvalidTransition(candidate.status, CandidateStatus.CLAIMED.value, entity="candidate")

        dt = dt or date.fromisoformat(offer.date)
        start_hour = offer.start_hour if start_hour is None else start_hour
        duration = offer.duration_hours
        validate_interval(start_hour, duration)
        line_items = list(line_items)
        lifecycle = self.lifecycle

        def _op() -> Bookings:
            try:
                # Offer first: two providers claiming at once, one wins
                won = self.db.execute(
                    update(Offers)
                    .where(Offers.id == offer_id, Offers.status == OfferStatus.OPEN.value)
                    .values(status=OfferStatus.CLAIMED.value, claimed_provider_id=provider_id)
                    .execution_options(synchronize_session=False)
                ).rowcount
                if won != 1:
                    raise InvalidTransition("claimed", OfferStatus.CLAIMED.value, entity="offer")

                booking = lifecycle.claim_slot(
                    provider_id, offer.client_id, dt, start_hour, duration,
                    to_money(offer.total_price), line_items,
                    BookingStatus.CONFIRMED, offer_id=offer_id,
                )

                self.db.execute(
                    update(Offers)
                    .where(Offers.id == offer_id)
                    .values(booking_id=booking.id)
                    .execution_options(synchronize_session=False)
                )
                self.db.execute(
                    update(OfferCandidates)
                    .where(OfferCandidates.id == candidate.id)
                    .values(status=CandidateStatus.CLAIMED.value)
                    .execution_options(synchronize_session=False)
                )
                self.db.execute(
                    update(OfferCandidates)
                    .where(
                        OfferCandidates.offer_id == offer_id,
                        OfferCandidates.id != candidate.id,
                        OfferCandidates.status == CandidateStatus.PENDING.value,
                    )
                    .values(status=CandidateStatus.EXPIRED.value)
                    .execution_options(synchronize_session=False)
                )
                self.db.commit()
                return booking
            except Exception:
                self.db.rollback()
                raise

        try:
            booking = run_with_retry(self.db, _op)
        except SlotConflict as e:
            e.alternatives = lifecycle.alternatives(provider_id, dt, duration, start_hour)
            logger.info(f"Offer {offer_id} claim by {provider_id} lost the slot: {e.message}")
            raise

        self.db.refresh(offer)
        lifecycle.invalidate_cache(provider_id, dt)
        logger.info(f"Offer {offer_id} claimed by {provider_id}: booking={booking.id}")
        safe_send(lifecycle.notifier, NOTIFY_ON[BookingStatus.CONFIRMED], booking_payload(booking))
        return booking

    def decline(self, offer_id: int, provider_id: str) -> Offers:
        offer = self.get(offer_id)
        if offer.status != OfferStatus.OPEN.value:
            raise InvalidTransition(offer.status, "declined", entity="offer")
        candidate = self._candidate(offer_id, provider_id)
        if candidate.status != CandidateStatus.PENDING.value:
            raise InvalidTransition(candidate.status, CandidateStatus.DECLINED.value, entity="candidate")

        def _op():
            try:
                candidate.status = CandidateStatus.DECLINED.value
                self.db.flush()
                remaining = self.db.execute(
                    select(OfferCandidates.id).where(
                        OfferCandidates.offer_id == offer_id,
                        OfferCandidates.status != CandidateStatus.DECLINED.value,
                    ).limit(1)
                ).first()
                if remaining is None:
                    offer.status = OfferStatus.CANCELLED.value
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        run_with_retry(self.db, _op)
        self.db.refresh(offer)
        logger.info(f"Offer {offer_id} declined by {provider_id} (offer status={offer.status})")
        return offer

    def _candidate(self, offer_id: int, provider_id: str) -> OfferCandidates:
        candidate = self.db.execute(
            select(OfferCandidates).where(
                OfferCandidates.offer_id == offer_id,
                OfferCandidates.provider_id == provider_id,
            )
        ).scalar_one_or_none()
        if candidate is None:
            raise NotFound(f"Provider {provider_id} is not a candidate of offer {offer_id}")
        return candidate
