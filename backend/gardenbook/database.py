import logging
import time
from typing import Callable, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from .config import settings
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def make_engine(url: str):
    """
    Build an engine for the given URL.

    check_same_thread=False is required for SQLite: FastAPI and the
    provider ranking scans use the engine from worker threads.
    """
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

        @event.listens_for(engine, "connect")
        def enable_sqlite_fk(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(url, pool_pre_ping=True)


engine = make_engine(settings.resolved_database_url)

# SessionLocal: the main way to talk to the database
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# FastAPI dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> Callable[[], Session]:
    """FastAPI dependency: factory for per-task sessions (parallel scans)."""
    return SessionLocal


def run_with_retry(
    db: Session,
    operation: Callable[[], T],
    attempts: int | None = None,
    backoff: float | None = None,
) -> T:
    """
    Run a unit of work against the store with a small bounded retry.

    The session is rolled back after every failed attempt, so a failed
    attempt never leaves a partial write behind. After the last attempt
    the driver error is surfaced as StoreUnavailable.
    """
    attempts = attempts or settings.store_retries
    backoff = settings.store_retry_backoff if backoff is None else backoff

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except (OperationalError, InterfaceError) as e:
            db.rollback()
            if attempt >= attempts:
                logger.error(f"Store unavailable after {attempts} attempts: {e}")
                raise StoreUnavailable(str(e.orig or e)) from e
            logger.warning(
                f"Store error (attempt {attempt}/{attempts}), retrying: {e}"
            )
            time.sleep(backoff * attempt)

    raise StoreUnavailable("no attempts made")
