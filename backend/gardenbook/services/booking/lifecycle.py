"""
Reservation lifecycle: slot claim, status machine, cancellation.

    pending ──► confirmed ──► in_progress ──► completed
       │            │  └───────────────────────► completed
       └────────────┴──► cancelled

Slot claim (one transaction, all or nothing):
    1. read the provider's day (row locks where the database has them)
    2. conditional update: flip the hours to unavailable WHERE still available;
       fewer rows than hours means someone else got there first
    3. re-read the provider's active bookings and re-check the buffer policy
    4. insert the booking (+ line items)
    5. commit

Any failure rolls back every step, so hours are never flipped without a
booking and a booking never exists without its hours.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ...database import run_with_retry
from ...errors import InvalidRequest, InvalidTransition, NotFound, SlotConflict
from ...models.generated import BookingLineItems, Bookings
from ...models.status import BookingStatus
from ..pricing.engine import LineItem, to_money
from ..slots import (
    AvailabilityStore,
    BookingConfig,
    SlotAllocator,
    SlotsRedisStore,
    get_active_intervals,
    get_booking_config,
    is_sequence_available,
    resolve_min_gap,
    validate_interval,
)
from ..slots.buffer import interval_hours
from .events import NotificationSender, safe_send

logger = logging.getLogger(__name__)

TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {
        BookingStatus.IN_PROGRESS,
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
    },
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

# Statuses that notify the client/provider once committed
NOTIFY_ON = {
    BookingStatus.CONFIRMED: "booking_confirmed",
    BookingStatus.CANCELLED: "booking_cancelled",
    BookingStatus.COMPLETED: "booking_completed",
}


def can_transition(current: str, target: BookingStatus) -> bool:
    return target in TRANSITIONS.get(BookingStatus(current), set())


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class ReservationLifecycle:
    """Creates bookings by claiming slots and moves them through their statuses."""

    def __init__(
        self,
        db: Session,
        config: BookingConfig | None = None,
        cache: Optional[SlotsRedisStore] = None,
        notifier: Optional[NotificationSender] = None,
    ):
        self.db = db
        self.config = config or get_booking_config()
        self.cache = cache
        self.notifier = notifier
        self.store = AvailabilityStore(db, self.config, cache)

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, booking_id: int) -> Bookings:
        booking = self.db.get(Bookings, booking_id)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found")
        return booking

    # ── Create ───────────────────────────────────────────────────────────

    def create(
        self,
        provider_id: str,
        client_id: str,
        dt: date,
        start_hour: int,
        duration: int,
        total_price: Decimal,
        line_items: Iterable[LineItem] = (),
        status: BookingStatus = BookingStatus.PENDING,
    ) -> Bookings:
        """
        Claim [start_hour, start_hour + duration) and persist the booking.

        Raises:
            InvalidRequest: malformed interval, negative price, bad status
            SlotConflict: the interval is no longer bookable (carries
                the valid start hours of that day right now)
            StoreUnavailable: store kept failing after the bounded retry
        """
        validate_interval(start_hour, duration)
        total_price = to_money(total_price)
        if total_price < 0:
            raise InvalidRequest(f"total_price must be >= 0, got {total_price}")
        status = BookingStatus(status)
        if status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise InvalidRequest(f"a booking cannot be created as '{status.value}'")
        line_items = list(line_items)

        def _op() -> Bookings:
            try:
                booking = self.claim_slot(
                    provider_id, client_id, dt, start_hour, duration,
                    total_price, line_items, status,
                )
                self.db.commit()
                return booking
            except Exception:
                self.db.rollback()
                raise

        try:
            booking = run_with_retry(self.db, _op)
        except SlotConflict as e:
            e.alternatives = self.alternatives(provider_id, dt, duration, start_hour)
            logger.info(
                f"Slot conflict: provider={provider_id} date={dt} "
                f"start={start_hour} duration={duration}h alternatives={e.alternatives}"
            )
            raise

        self.invalidate_cache(provider_id, dt)
        logger.info(
            f"Booking created: id={booking.id} provider={provider_id} date={dt} "
            f"start={start_hour} duration={duration}h status={booking.status}"
        )
        if status in NOTIFY_ON:
            self._notify(NOTIFY_ON[status], booking)
        return booking

    def create_with_retry(
        self,
        provider_id: str,
        client_id: str,
        dt: date,
        start_hour: int,
        duration: int,
        total_price: Decimal,
        line_items: Iterable[LineItem] = (),
        status: BookingStatus = BookingStatus.PENDING,
        attempts: int | None = None,
    ) -> Bookings:
        """
        create() with a bounded automatic retry on a lost claim.

        After a SlotConflict the valid hours are recomputed; the claim is
        retried only if the requested start is still among them, otherwise
        the conflict (with alternatives) goes back to the caller.
        """
        attempts = attempts or self.config.claim_retries
        line_items = list(line_items)
        last_error: SlotConflict | None = None

        for attempt in range(1, attempts + 1):
            try:
                return self.create(
                    provider_id, client_id, dt, start_hour, duration,
                    total_price, line_items, status,
                )
            except SlotConflict as e:
                last_error = e
                fresh = SlotAllocator(self.db, self.config, self.cache).valid_start_hours(
                    provider_id, dt, duration
                )
                if start_hour not in fresh:
                    raise
                logger.info(
                    f"Retrying claim (attempt {attempt}/{attempts}): "
                    f"provider={provider_id} date={dt} start={start_hour}"
                )

        raise last_error

    def claim_slot(
        self,
        provider_id: str,
        client_id: str,
        dt: date,
        start_hour: int,
        duration: int,
        total_price: Decimal,
        line_items: list[LineItem],
        status: BookingStatus,
        offer_id: int | None = None,
    ) -> Bookings:
        """
        Transaction-scoped claim: flips hours and inserts the booking, no commit.

        The caller owns the transaction and must roll back on any exception.
        """
        hours = interval_hours(start_hour, duration)

        free = self.store.lock_day(provider_id, dt)
        if not set(hours) <= free:
            raise SlotConflict(f"Hours {hours} are not available on {dt}")

        if not self.store.claim_hours(provider_id, dt, hours):
            raise SlotConflict(f"Hours {hours} on {dt} were claimed concurrently")

        # Hours are ours now; the booking set read here is the one we commit against
        existing = get_active_intervals(self.db, provider_id, dt)
        min_gap = resolve_min_gap(self.db, provider_id, self.config)
        if not is_sequence_available(set(hours), existing, start_hour, duration, min_gap):
            raise SlotConflict(
                f"Interval {start_hour}+{duration}h on {dt} violates overlap/gap rules"
            )

        booking = Bookings(
            provider_id=provider_id,
            client_id=client_id,
            date=dt.isoformat(),
            start_hour=start_hour,
            duration_hours=duration,
            status=status.value,
            total_price=total_price,
            offer_id=offer_id,
        )
        for position, item in enumerate(line_items):
            booking.line_items.append(BookingLineItems(
                position=position,
                service_type=item.service_type,
                description=item.description,
                quantity=item.quantity,
                unit=item.unit,
                unit_price=item.unit_price,
                price=item.price,
            ))
        self.db.add(booking)
        self.db.flush()
        return booking

    def alternatives(self, provider_id: str, dt: date, duration: int, around_hour: int) -> list[int]:
        """Valid starts near around_hour, read fresh after a conflict."""
        allocator = SlotAllocator(self.db, self.config, self.cache)
        return allocator.suggest_alternatives(provider_id, dt, duration, around_hour)

    # ── Transitions ──────────────────────────────────────────────────────

    def confirm(self, booking_id: int) -> Bookings:
        """Provider accepts a pending booking."""
        return self._transition(booking_id, BookingStatus.CONFIRMED)

    def start(self, booking_id: int) -> Bookings:
        return self._transition(booking_id, BookingStatus.IN_PROGRESS)

    def complete(self, booking_id: int) -> Bookings:
        """Hours stay consumed: completed work keeps its place in the calendar."""
        return self._transition(booking_id, BookingStatus.COMPLETED)

    def cancel(self, booking_id: int, reason: str | None = None) -> Bookings:
        """
        Cancel a pending or confirmed booking and release its hours.

        Status change and hour release commit together.
        """
        booking = self.get(booking_id)
        current = booking.status
        if not can_transition(current, BookingStatus.CANCELLED):
            raise InvalidTransition(current, BookingStatus.CANCELLED.value)

        provider_id = booking.provider_id
        dt = date.fromisoformat(booking.date)
        hours = interval_hours(booking.start_hour, booking.duration_hours)

        def _op():
            try:
                self._set_status(booking_id, current, BookingStatus.CANCELLED, cancel_reason=reason)
                self.store.release_hours(provider_id, dt, hours)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        run_with_retry(self.db, _op)
        self.db.refresh(booking)

        self.invalidate_cache(provider_id, dt)
        logger.info(
            f"Booking cancelled: id={booking_id} provider={provider_id} date={dt} "
            f"released={hours} reason={reason!r}"
        )
        self._notify(NOTIFY_ON[BookingStatus.CANCELLED], booking)
        return booking

    def _transition(self, booking_id: int, target: BookingStatus) -> Bookings:
        booking = self.get(booking_id)
        current = booking.status
        if not can_transition(current, target):
            raise InvalidTransition(current, target.value)

        def _op():
            try:
                self._set_status(booking_id, current, target)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        run_with_retry(self.db, _op)
        self.db.refresh(booking)

        logger.info(f"Booking {booking_id}: {current} → {target.value}")
        if target in NOTIFY_ON:
            self._notify(NOTIFY_ON[target], booking)
        return booking

    def _set_status(
        self,
        booking_id: int,
        current: str,
        target: BookingStatus,
        cancel_reason: str | None = None,
    ) -> None:
        """Compare-and-set on status; a concurrent change makes this raise."""
        values = {"status": target.value, "updated_at": _now()}
        if target == BookingStatus.CANCELLED:
            values["cancel_reason"] = cancel_reason
        result = self.db.execute(
            update(Bookings)
            .where(Bookings.id == booking_id, Bookings.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            actual = self.db.execute(
                select(Bookings.status).where(Bookings.id == booking_id)
            ).scalar_one()
            raise InvalidTransition(actual, target.value)

    # ── Side effects after commit ────────────────────────────────────────

    def invalidate_cache(self, provider_id: str, dt: date) -> None:
        if self.cache is not None:
            self.cache.invalidate_provider_dates(provider_id, [dt])

    def _notify(self, event_type: str, booking: Bookings) -> None:
        safe_send(self.notifier, event_type, booking_payload(booking))


def booking_payload(booking: Bookings) -> dict:
    return {
        "booking_id": booking.id,
        "provider_id": booking.provider_id,
        "client_id": booking.client_id,
        "date": booking.date,
        "start_hour": booking.start_hour,
        "duration_hours": booking.duration_hours,
        "status": booking.status,
        "total_price": str(booking.total_price),
    }
