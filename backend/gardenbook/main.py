# backend/gardenbook/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import SessionLocal, engine
from .errors import BookingEngineError
from .models import Base
from .redis_client import redis_client
from .routers import availability, bookings, offers, providers, quotes, slots, tariffs

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if engine.dialect.name == "sqlite":
        # Local SQLite: create missing tables; other databases go through alembic
        Base.metadata.create_all(bind=engine)
    logger.info(f"Gardenbook API started (db={engine.dialect.name}, redis={'on' if redis_client else 'off'})")
    yield


app = FastAPI(title="Gardenbook Scheduling & Quote API", lifespan=lifespan)


@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(availability.router)
app.include_router(slots.router)
app.include_router(bookings.router)
app.include_router(offers.router)
app.include_router(quotes.router)
app.include_router(tariffs.router)
app.include_router(providers.router)


@app.get("/health")
def health():
    status = {"db": True, "redis": None}
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check: database unreachable: {e}")
        status["db"] = False
    if redis_client is not None:
        try:
            status["redis"] = redis_client.ping()
        except RedisError as e:
            logger.error(f"Health check: redis unreachable: {e}")
            status["redis"] = False
    return status
