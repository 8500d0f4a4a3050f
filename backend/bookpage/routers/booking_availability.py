# backend/bookpage/routers/booking_availability.py
# API.md: PATCH = 405, DELETE = ALLOWED (hard)

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..models import BookingAvailability as DBAvailability, BookingPages as DBBookingPages
from ..schemas.booking_availability import (
    AvailabilityCreate,
    AvailabilityRead,
)
from ..services.slots.invalidator import invalidate_page_cache

router = APIRouter(prefix="/booking_availability", tags=["booking_availability"])


@router.get("/", response_model=list[AvailabilityRead])
def list_availability(booking_page_id: int | None = None, db: Session = Depends(get_db)):
    query = db.query(DBAvailability)
    if booking_page_id is not None:
        query = query.filter(DBAvailability.booking_page_id == booking_page_id)
    return query.order_by(DBAvailability.day_of_week, DBAvailability.start_time).all()


@router.post("/", response_model=AvailabilityRead, status_code=status.HTTP_201_CREATED)
def create_availability(
    data: AvailabilityCreate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    if not db.get(DBBookingPages, data.booking_page_id):
        raise HTTPException(status_code=404, detail="Booking page not found")

    values = data.model_dump()
    values["is_active"] = int(values["is_active"])
    obj = DBAvailability(**values)
    db.add(obj)
    db.commit()
    db.refresh(obj)

    # New window: every cached date of the page may gain slots
    invalidate_page_cache(redis, obj.booking_page_id)
    return obj


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(
    id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBAvailability, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    booking_page_id = obj.booking_page_id
    db.delete(obj)
    db.commit()

    invalidate_page_cache(redis, booking_page_id)
