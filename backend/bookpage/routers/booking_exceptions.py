# backend/bookpage/routers/booking_exceptions.py
# API.md: PATCH = 405, DELETE = ALLOWED (hard)

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..models import BookingExceptions as DBExceptions, BookingPages as DBBookingPages
from ..schemas.booking_exceptions import (
    ExceptionCreate,
    ExceptionRead,
)
from ..services.slots.invalidator import invalidate_page_cache

router = APIRouter(prefix="/booking_exceptions", tags=["booking_exceptions"])


@router.get("/", response_model=list[ExceptionRead])
def list_exceptions(booking_page_id: int | None = None, db: Session = Depends(get_db)):
    query = db.query(DBExceptions)
    if booking_page_id is not None:
        query = query.filter(DBExceptions.booking_page_id == booking_page_id)
    return query.order_by(DBExceptions.exception_date).all()


@router.post("/", response_model=ExceptionRead, status_code=status.HTTP_201_CREATED)
def create_exception(
    data: ExceptionCreate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    if not db.get(DBBookingPages, data.booking_page_id):
        raise HTTPException(status_code=404, detail="Booking page not found")

    obj = DBExceptions(**data.model_dump())
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Exception already exists for this date")
    db.refresh(obj)

    invalidate_page_cache(redis, obj.booking_page_id, [obj.exception_date])
    return obj


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_exception(
    id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBExceptions, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    booking_page_id, exception_date = obj.booking_page_id, obj.exception_date
    db.delete(obj)
    db.commit()

    invalidate_page_cache(redis, booking_page_id, [exception_date])
