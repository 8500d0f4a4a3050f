# backend/bookpage/routers/public.py
"""
Public booking flow (no auth).

GET  /public/pages/{slug}           - page header + qualification questions
GET  /public/slots                  - offerable slots for one day
GET  /public/pages/{slug}/calendar  - per-day availability over the horizon
POST /public/bookings               - claim a slot

Business errors (BookingError) propagate to the handler in main.py.
"""

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.slots import (
    CalendarResponse,
    DaySlotsResponse,
    PublicBookingCreate,
    PublicBookingResponse,
    PublicPage,
)
from ..services.pages import get_public_page
from ..services.reservation import ProspectInfo, create_booking
from ..services.slots import calculate_calendar, load_day_slots

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/pages/{slug}", response_model=PublicPage)
def get_page(slug: str, db: Session = Depends(get_db)):
    return get_public_page(db, slug)


@router.get("/slots", response_model=DaySlotsResponse)
def get_day_slots(
    slug: str,
    date: date,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    page = get_public_page(db, slug)
    now = datetime.now(timezone.utc)

    slots = load_day_slots(db, page, date, now, redis=redis)

    return DaySlotsResponse(
        slug=page.slug,
        date=date,
        slots=[s.to_dict() for s in slots],
    )


@router.get("/pages/{slug}/calendar", response_model=CalendarResponse)
def get_calendar(
    slug: str,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    page = get_public_page(db, slug)
    now = datetime.now(timezone.utc)

    calendar = calculate_calendar(db, page, start_date, end_date, now)

    return CalendarResponse(slug=page.slug, **calendar)


@router.post("/bookings", response_model=PublicBookingResponse, status_code=status.HTTP_201_CREATED)
def create_public_booking(
    data: PublicBookingCreate,
    db: Session = Depends(get_db),
):
    page = get_public_page(db, data.slug)
    now = datetime.now(timezone.utc)

    booking = create_booking(
        db,
        page,
        data.date,
        data.start_time,
        ProspectInfo(
            name=data.prospect_name,
            email=data.prospect_email,
            phone=data.prospect_phone,
            qualification_answers=data.qualification_answers,
        ),
        now,
    )

    return PublicBookingResponse.from_booking(booking)
