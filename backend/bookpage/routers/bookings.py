# backend/bookpage/routers/bookings.py
# API.md: POST = 405 (public flow only), PATCH = status only, DELETE = 405

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Bookings as DBBookings
from ..schemas.bookings import (
    BookingRead,
    BookingStatusUpdate,
)
from ..services.events import emit_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

# Only confirmed bookings move; every other status is terminal
ALLOWED_TRANSITIONS = {
    "confirmed": {"completed", "cancelled", "no_show"},
}


@router.get("/", response_model=list[BookingRead])
def list_bookings(
    booking_page_id: int | None = None,
    date: date | None = None,
    status: str | None = None,
    db: Session = Depends(get_db),
):
    query = db.query(DBBookings)
    if booking_page_id is not None:
        query = query.filter(DBBookings.booking_page_id == booking_page_id)
    if date is not None:
        query = query.filter(DBBookings.date == date)
    if status is not None:
        query = query.filter(DBBookings.status == status)
    return query.order_by(DBBookings.date, DBBookings.start_time).all()


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBBookings, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.patch("/{id}/status", response_model=BookingRead)
def update_booking_status(
    id: int,
    data: BookingStatusUpdate,
    db: Session = Depends(get_db),
):
    obj = db.get(DBBookings, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    if data.status == obj.status:
        if data.notes is not None:
            obj.notes = data.notes
            obj.updated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
            db.commit()
            db.refresh(obj)
        return obj

    allowed = ALLOWED_TRANSITIONS.get(obj.status, set())
    if data.status not in allowed:
        raise HTTPException(status_code=409, detail="invalid_transition")

    old_status = obj.status
    obj.status = data.status
    if data.notes is not None:
        obj.notes = data.notes
    obj.updated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    db.commit()
    db.refresh(obj)

    logger.info(f"Booking {id} status: {old_status} → {obj.status}")

    emit_event(f"booking_{obj.status}", {
        "booking_id": obj.id,
        "booking_page_id": obj.booking_page_id,
        "initiated_by": {
            "role": "admin",
            "channel": "api",
        },
    })

    return obj


@router.post("/")
def post_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
