# backend/bookpage/main.py

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis import Redis
from redis.exceptions import RedisError

from .config import settings
from .redis_client import get_redis
from .routers import (
    booking_availability,
    booking_exceptions,
    booking_pages,
    bookings,
    public,
)
from .services.errors import BookingError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Booking Pages API")

app.include_router(public.router)
app.include_router(booking_pages.router)
app.include_router(booking_availability.router)
app.include_router(booking_exceptions.router)
app.include_router(bookings.router)


@app.exception_handler(BookingError)
def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = {}
    for err in exc.errors():
        # Drop the "body"/"query" prefix: {"date": "date_from_datetime_parsing"}
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields[".".join(loc) or "body"] = err.get("type", "invalid")
    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_failed",
            "detail": "Invalid request",
            "fields": fields,
        },
    )


@app.get("/health")
def health(redis: Redis | None = Depends(get_redis)):
    redis_ok = False
    if redis is not None:
        try:
            redis_ok = bool(redis.ping())
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
    return {"status": "ok", "redis": redis_ok}
