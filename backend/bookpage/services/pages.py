# backend/bookpage/services/pages.py
"""Booking page lookup for the public flow, and admin KPIs."""

from datetime import date

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import BOOKING_STATUSES, BookingPages, Bookings
from .errors import NotFoundError, StorageError


def get_public_page(db: Session, slug: str) -> BookingPages:
    """
    Resolve a public slug to an active booking page.

    Raises:
        NotFoundError: page_not_found / page_inactive
        StorageError: the database could not be read
    """
    try:
        page = db.query(BookingPages).filter(BookingPages.slug == slug).first()
    except SQLAlchemyError as e:
        raise StorageError(detail="Failed to read booking page") from e

    if page is None:
        raise NotFoundError("page_not_found", "Booking page not found")
    if not page.is_active:
        raise NotFoundError("page_inactive", "Booking page is not active")
    return page


def get_page_stats(db: Session, booking_page_id: int, today: date) -> dict:
    """Booking counters for the admin dashboard."""
    counts = dict(
        db.query(Bookings.status, func.count(Bookings.id))
        .filter(Bookings.booking_page_id == booking_page_id)
        .group_by(Bookings.status)
        .all()
    )
    upcoming = (
        db.query(func.count(Bookings.id))
        .filter(
            Bookings.booking_page_id == booking_page_id,
            Bookings.status == "confirmed",
            Bookings.date >= today,
        )
        .scalar()
    )

    return {
        "booking_page_id": booking_page_id,
        "total": sum(counts.values()),
        "upcoming": upcoming or 0,
        "completed": counts.get("completed", 0),
        "cancelled": counts.get("cancelled", 0),
        "no_show": counts.get("no_show", 0),
        "by_status": {s: counts.get(s, 0) for s in BOOKING_STATUSES},
    }
