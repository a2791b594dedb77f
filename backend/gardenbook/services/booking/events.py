"""
backend/gardenbook/services/booking/events.py

Booking notifications: fire-and-forget, after the state change committed.

RedisNotificationSender pushes to the `events:p2p` list for whatever
delivery worker consumes it. A failed push is logged and dropped; it
never rolls back or fails the booking operation that triggered it.
"""

import json
import logging
import time
from typing import Optional, Protocol

from redis import Redis

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


class NotificationSender(Protocol):
    def send(self, event_type: str, payload: dict) -> None:
        ...


class RedisNotificationSender:
    """Emit a p2p event (instant delivery) to Redis."""

    def __init__(self, redis: Redis, queue: str = P2P_QUEUE):
        self.redis = redis
        self.queue = queue

    def send(self, event_type: str, payload: dict) -> None:
        event = {
            "type": event_type,
            **payload,
            "ts": int(time.time()),
        }
        try:
            self.redis.rpush(self.queue, json.dumps(event, default=str))
            logger.info(f"Event emitted: {event_type} → {self.queue}")
        except Exception as e:
            logger.error(f"Failed to emit event {event_type}: {e}")


class LoggingNotificationSender:
    """Used when Redis is not configured."""

    def send(self, event_type: str, payload: dict) -> None:
        logger.info(f"Event (not delivered, no redis): {event_type} {payload}")


def make_notification_sender(redis: Optional[Redis]) -> NotificationSender:
    if redis is None:
        return LoggingNotificationSender()
    return RedisNotificationSender(redis)


def safe_send(sender: Optional[NotificationSender], event_type: str, payload: dict) -> None:
    """Deliver through any sender; a raising sender is logged, not propagated."""
    if sender is None:
        return
    try:
        sender.send(event_type, payload)
    except Exception:
        logger.exception(f"Notification sender failed for {event_type}")
