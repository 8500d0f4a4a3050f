# backend/bookpage/services/slots/availability.py
"""
Slot availability backed by the database (and optionally Redis).

Level 1: windows + exceptions (+ notice via expire_ts), cached in Redis
Level 2: booking conflicts, always read live from SQL

The write path (reservation) calls load_day_slots with redis=None so it
always re-validates against the current stored state.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta

from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import BookingAvailability, BookingExceptions, BookingPages, Bookings
from ..errors import StorageError
from .calculator import (
    CANCELLED,
    Slot,
    apply_booking_conflicts,
    apply_min_notice,
    compute_slots,
    generate_candidates,
    is_within_horizon,
    localize_now,
    slot_expire_ts,
)
from .policy import SlotPolicy
from .redis_store import SlotsRedisStore

logger = logging.getLogger(__name__)


def load_day_slots(
    db: Session,
    page: BookingPages,
    target_date: date,
    now: datetime,
    redis: Redis | None = None,
) -> list[Slot]:
    """
    Offerable slots of `page` on `target_date` against the current state.

    Raises:
        StorageError: the database could not be read
    """
    policy = SlotPolicy.from_page(page)
    if policy is None:
        logger.warning(f"Booking page {page.id} has an unusable policy, no slots offered")
        return []

    now_local = localize_now(now, policy)
    if not is_within_horizon(policy, target_date, now_local.date()):
        return []

    try:
        bookings = _get_page_bookings(db, page.id, target_date, target_date)

        if redis is None:
            windows = _get_page_windows(db, page.id)
            exceptions = _get_page_exceptions(db, page.id, target_date, target_date)
            return compute_slots(page, windows, exceptions, bookings, target_date, now)

        base_slots = _get_base_slots(db, page, policy, target_date, now_local, redis)
    except SQLAlchemyError as e:
        raise StorageError(detail="Failed to read availability") from e

    return sorted(apply_booking_conflicts(policy, base_slots, bookings, target_date, page.id))


def calculate_calendar(
    db: Session,
    page: BookingPages,
    start_date: date | None,
    end_date: date | None,
    now: datetime,
) -> dict:
    """
    Per-day slot counts across the booking horizon.

    The requested range is clamped to [today, today + max_days_ahead].
    """
    policy = SlotPolicy.from_page(page)
    if policy is None:
        return {"start_date": start_date, "end_date": end_date, "days": []}

    today = localize_now(now, policy).date()
    max_date = today + timedelta(days=policy.max_days_ahead)

    if start_date is None or start_date < today:
        start_date = today
    if end_date is None or end_date > max_date:
        end_date = max_date
    if end_date < start_date:
        end_date = start_date

    try:
        windows = _get_page_windows(db, page.id)
        exceptions = _get_page_exceptions(db, page.id, start_date, end_date)
        bookings_by_date: dict[date, list] = defaultdict(list)
        for booking in _get_page_bookings(db, page.id, start_date, end_date):
            bookings_by_date[booking.date].append(booking)
    except SQLAlchemyError as e:
        raise StorageError(detail="Failed to read availability") from e

    days = []
    current = start_date
    while current <= end_date:
        slots = compute_slots(page, windows, exceptions, bookings_by_date[current], current, now)
        days.append({
            "date": current,
            "has_slots": bool(slots),
            "open_slots_count": len(slots),
        })
        current += timedelta(days=1)

    return {"start_date": start_date, "end_date": end_date, "days": days}


# ── Base slots (Level 1 with cache) ─────────────────────────────────────


def _get_base_slots(
    db: Session,
    page: BookingPages,
    policy: SlotPolicy,
    target_date: date,
    now: datetime,
    redis: Redis,
) -> list[Slot]:
    """Level 1 slots with the notice applied, using Redis when reachable."""
    store = SlotsRedisStore(redis)
    try:
        cached = store.get_available_slots(page.id, target_date, now)
    except RedisError:
        logger.exception(f"Slots cache read failed for page {page.id}, computing directly")
        cached = None
        store = None

    if cached is not None:
        return cached

    # Cache miss: calculate and store
    windows = _get_page_windows(db, page.id)
    exceptions = _get_page_exceptions(db, page.id, target_date, target_date)
    candidates = generate_candidates(policy, windows, exceptions, target_date, now.date())

    if store is not None:
        try:
            store.store_day_slots(
                page.id,
                target_date,
                [(slot, slot_expire_ts(policy, target_date, slot)) for slot in candidates],
                tz=policy.tz,
            )
        except RedisError:
            logger.exception(f"Slots cache write failed for page {page.id}")

    return apply_min_notice(policy, candidates, target_date, now)


# ── Database helpers ─────────────────────────────────────────────────────


def _get_page_windows(db: Session, booking_page_id: int) -> list:
    """Active availability windows of a page (all weekdays)."""
    return (
        db.query(BookingAvailability)
        .filter(
            BookingAvailability.booking_page_id == booking_page_id,
            BookingAvailability.is_active == 1,
        )
        .all()
    )


def _get_page_exceptions(db: Session, booking_page_id: int, date_from: date, date_to: date) -> list:
    return (
        db.query(BookingExceptions)
        .filter(
            BookingExceptions.booking_page_id == booking_page_id,
            BookingExceptions.exception_date >= date_from,
            BookingExceptions.exception_date <= date_to,
        )
        .all()
    )


def _get_page_bookings(db: Session, booking_page_id: int, date_from: date, date_to: date) -> list:
    """Non-cancelled bookings of a page in [date_from, date_to]."""
    return (
        db.query(Bookings)
        .filter(
            Bookings.booking_page_id == booking_page_id,
            Bookings.date >= date_from,
            Bookings.date <= date_to,
            Bookings.status != CANCELLED,
        )
        .all()
    )
