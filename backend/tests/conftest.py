"""Shared test fixtures and helpers."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from gardenbook.database import make_engine
from gardenbook.models import Base
from gardenbook.services.booking import ReservationLifecycle
from gardenbook.services.slots import AvailabilityStore, BookingConfig, SlotAllocator

DAY = date(2030, 6, 3)
PROVIDER = "gardener-1"
CLIENT = "client-1"


class RecordingSender:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def send(self, event_type: str, payload: dict) -> None:
        self.events.append((event_type, payload))

    @property
    def types(self) -> list[str]:
        return [event_type for event_type, _ in self.events]


class FailingSender:
    def send(self, event_type: str, payload: dict) -> None:
        raise ConnectionError("notification backend down")


class FakePipeline:
    def __init__(self, redis):
        self.redis = redis
        self.calls = []

    def incr(self, key):
        self.calls.append((self.redis.incr, key))

    def expire(self, key, seconds):
        self.calls.append((self.redis.expire, key, seconds))

    def execute(self):
        return [call[0](*call[1:]) for call in self.calls]


class FakeRedis:
    """Just enough of the redis client for the slot cache."""

    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def mget(self, *keys):
        return [self.data.get(key) for key in keys]

    def set(self, key, value, ex=None):
        self.data[key] = value

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])

    def expire(self, key, seconds):
        return key in self.data

    def pipeline(self):
        return FakePipeline(self)

    def scan_iter(self, match=None):
        prefix = match.rstrip("*") if match else ""
        return [key for key in list(self.data) if key.startswith(prefix)]

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'gardenbook-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def config():
    return BookingConfig()


@pytest.fixture
def notifier():
    return RecordingSender()


@pytest.fixture
def store(db, config):
    return AvailabilityStore(db, config)


@pytest.fixture
def allocator(db, config):
    return SlotAllocator(db, config)


@pytest.fixture
def lifecycle(db, config, notifier):
    return ReservationLifecycle(db, config, notifier=notifier)


def book(lifecycle, start_hour, duration=1, provider_id=PROVIDER, dt=DAY, client_id=CLIENT, **kwargs):
    """Helper to create a booking with a default price."""
    return lifecycle.create(
        provider_id, client_id, dt, start_hour, duration,
        kwargs.pop("total_price", Decimal("100")), **kwargs,
    )
