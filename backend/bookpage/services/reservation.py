# backend/bookpage/services/reservation.py
"""
Reservation of a public booking slot.

Two phases:
  1. Optimistic re-validation: recompute the day's slots from the current
     stored state (never from the cache) and check the slot is still offered.
  2. Insert guarded by the partial unique index uq_bookings_active_slot.

Phase 1 alone is check-then-act and races; phase 2 is the real guarantee.
Concurrent attempts on the same slot: the first to commit wins, the others
get ConflictError. Nothing is retried automatically.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import BookingPages, Bookings
from .errors import ConflictError, NotFoundError, StorageError, ValidationFailedError
from .events import emit_event
from .qualification import EMAIL_RE, PHONE_RE, parse_fields, validate_answers
from .slots import load_day_slots

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 200
EMAIL_MAX_LENGTH = 254


@dataclass
class ProspectInfo:
    name: str | None
    email: str | None
    phone: str | None = None
    qualification_answers: dict | None = field(default=None)


@dataclass
class CleanProspect:
    name: str
    email: str
    phone: str | None
    qualification_answers: dict[str, str]


def validate_prospect(page: BookingPages, prospect: ProspectInfo) -> CleanProspect:
    """
    Validate contact fields and qualification answers.

    Raises:
        ValidationFailedError: with every failing field, not just the first
    """
    errors: dict[str, str] = {}

    name = (prospect.name or "").strip()
    if not name:
        errors["prospect_name"] = "required"
    elif len(name) > NAME_MAX_LENGTH:
        errors["prospect_name"] = "too_long"

    email = (prospect.email or "").strip().lower()
    if not email:
        errors["prospect_email"] = "required"
    elif len(email) > EMAIL_MAX_LENGTH or not EMAIL_RE.match(email):
        errors["prospect_email"] = "invalid_email"

    phone = (prospect.phone or "").strip() or None
    if phone is not None and not PHONE_RE.match(phone):
        errors["prospect_phone"] = "invalid_phone"

    answers = prospect.qualification_answers
    if answers is not None and not isinstance(answers, dict):
        errors["qualification_answers"] = "invalid"
        answers = None

    fields = parse_fields(page.qualification_fields)
    cleaned_answers, answer_errors = validate_answers(fields, answers)
    for field_id, code in answer_errors.items():
        errors[f"qualification_answers.{field_id}"] = code

    if errors:
        raise ValidationFailedError(errors)

    return CleanProspect(
        name=name,
        email=email,
        phone=phone,
        qualification_answers=cleaned_answers,
    )


def create_booking(
    db: Session,
    page: BookingPages,
    target_date: date,
    start_time: time,
    prospect: ProspectInfo,
    now: datetime,
) -> Bookings:
    """
    Claim `start_time` on `target_date` for a prospect.

    Returns:
        The committed booking (status "confirmed", derived end_time).

    Raises:
        NotFoundError: page is inactive
        ValidationFailedError: prospect/qualification input is invalid
        ConflictError: the slot is not (or no longer) available
        StorageError: the database failed
    """
    # Step 1: Page must still accept bookings
    if not page.is_active:
        raise NotFoundError("page_inactive", "Booking page is not active")

    # Step 2: Validate prospect input
    clean = validate_prospect(page, prospect)

    # Step 3: Re-validate the slot against current state (no cache)
    slots = load_day_slots(db, page, target_date, now, redis=None)
    slot = next((s for s in slots if s.start_time == start_time), None)
    if slot is None:
        logger.info(
            f"Slot unavailable at re-validation: page={page.id} "
            f"date={target_date} start={start_time:%H:%M}"
        )
        raise ConflictError(detail="This slot is no longer available")

    # Step 4: Insert; the unique index arbitrates concurrent writers
    booking = Bookings(
        booking_page_id=page.id,
        date=target_date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        status="confirmed",
        prospect_name=clean.name,
        prospect_email=clean.email,
        prospect_phone=clean.phone,
        qualification_answers=json.dumps(clean.qualification_answers, ensure_ascii=False),
    )

    db.add(booking)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            f"Slot lost at insert: page={page.id} "
            f"date={target_date} start={start_time:%H:%M}"
        )
        raise ConflictError(detail="This slot is no longer available")
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Booking insert failed for page {page.id}")
        raise StorageError(detail="Failed to store booking") from e

    db.refresh(booking)

    logger.info(
        f"Booking created: booking_id={booking.id}, page={page.slug}, "
        f"time={target_date} {booking.start_time:%H:%M}-{booking.end_time:%H:%M}"
    )

    # Step 5: Hand off to notifications
    emit_event("booking_created", {
        "booking_id": booking.id,
        "booking_page_id": page.id,
        "date": target_date.isoformat(),
        "start_time": booking.start_time.strftime("%H:%M"),
        "initiated_by": {
            "role": "prospect",
            "channel": "web",
        },
    })

    return booking
