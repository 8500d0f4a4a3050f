# backend/bookpage/routers/booking_pages.py
# API.md: PATCH = ALLOWED, DELETE = soft-delete (is_active)

import json
import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..models import BookingPages as DBBookingPages
from ..schemas.booking_pages import (
    BookingPageCreate,
    BookingPageUpdate,
    BookingPageRead,
    BookingPageStats,
)
from ..services.pages import get_page_stats
from ..services.slots.invalidator import invalidate_page_cache
from ..services.slots.policy import resolve_timezone
from ..services.slug import slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/booking_pages", tags=["booking_pages"])

# Changing any of these reshapes the Level 1 slot grid
POLICY_FIELDS = {
    "slot_duration",
    "buffer_minutes",
    "min_notice_hours",
    "max_days_ahead",
    "timezone",
    "is_active",
}

NULLABLE_FIELDS = {"description", "brand_color"}


def _now_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@router.get("/", response_model=list[BookingPageRead])
def list_booking_pages(db: Session = Depends(get_db)):
    return db.query(DBBookingPages).order_by(DBBookingPages.id).all()


@router.get("/{id}", response_model=BookingPageRead)
def get_booking_page(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBBookingPages, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.get("/{id}/stats", response_model=BookingPageStats)
def get_booking_page_stats(
    id: int,
    today: date | None = None,
    db: Session = Depends(get_db),
):
    obj = db.get(DBBookingPages, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    if today is None:
        # "Upcoming" is counted from the page's own calendar day
        tz = resolve_timezone(obj.timezone) or timezone.utc
        today = datetime.now(tz).date()
    return get_page_stats(db, id, today)


@router.post("/", response_model=BookingPageRead, status_code=status.HTTP_201_CREATED)
def create_booking_page(
    data: BookingPageCreate,
    db: Session = Depends(get_db),
):
    values = data.model_dump(exclude={"qualification_fields"}, exclude_none=True)
    values["slug"] = data.slug or slugify(data.title)
    values["qualification_fields"] = json.dumps(
        [f.model_dump() for f in data.qualification_fields], ensure_ascii=False
    )

    obj = DBBookingPages(**values)
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="slug_taken")
    db.refresh(obj)

    logger.info(f"Booking page created: id={obj.id}, slug={obj.slug}")
    return obj


@router.patch("/{id}", response_model=BookingPageRead)
def update_booking_page(
    id: int,
    data: BookingPageUpdate,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBBookingPages, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    if "qualification_fields" in changes:
        changes["qualification_fields"] = json.dumps(
            changes["qualification_fields"] or [], ensure_ascii=False
        )
    if "is_active" in changes:
        changes["is_active"] = int(changes["is_active"])

    for field, value in changes.items():
        setattr(obj, field, value)
    obj.updated_at = _now_str()

    db.commit()
    db.refresh(obj)

    # Invalidate slots cache when the page policy changes
    if POLICY_FIELDS & changes.keys():
        invalidate_page_cache(redis, id)

    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking_page(
    id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    obj = db.get(DBBookingPages, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    obj.is_active = 0
    obj.updated_at = _now_str()
    db.commit()

    # Invalidate slots cache when page is deactivated
    invalidate_page_cache(redis, id)
