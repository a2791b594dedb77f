"""
Booking module.

ReservationLifecycle: slot claim, status machine, cancellation
OfferService: broadcast a job to several providers, claim by one
BookingDraft: caller-owned booking-in-progress
Notification senders: fire-and-forget delivery after commit
"""

from .events import (
    LoggingNotificationSender,
    NotificationSender,
    RedisNotificationSender,
    make_notification_sender,
)
from .lifecycle import TRANSITIONS, ReservationLifecycle, can_transition
from .offers import OfferService
from .draft import BookingDraft, price_draft

__all__ = [
    "LoggingNotificationSender",
    "NotificationSender",
    "RedisNotificationSender",
    "make_notification_sender",
    "TRANSITIONS",
    "ReservationLifecycle",
    "can_transition",
    "OfferService",
    "BookingDraft",
    "price_draft",
]
