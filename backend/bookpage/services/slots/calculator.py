# backend/bookpage/services/slots/calculator.py
"""
Slot computation for one booking page and one date.

Pure functions over already-fetched rows: no database, no Redis, no clock.
`now` is always passed in.

Stages (compute_slots runs all of them in order):
  1. policy      : unusable page policy → no slots
  2. horizon     : today .. today + max_days_ahead (inclusive)
  3. exceptions  : a blocked date has no slots at all
  4. windows     : weekday windows, unioned, cut into slot_duration pieces
                    separated by buffer_minutes
  5. min notice  : start must be >= now + min_notice_hours
  6. bookings    : non-cancelled bookings widened by the buffer on both sides

Stages 1-4 depend only on admin configuration, so the cache (Level 1) stores
their output together with a per-slot expiry that encodes stage 5.
Stage 6 is always evaluated live (Level 2).
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from .policy import (
    SlotPolicy,
    format_time,
    minutes_to_time,
    time_str_to_minutes,
    time_to_minutes,
)

CANCELLED = "cancelled"


@dataclass(frozen=True, order=True)
class Slot:
    start_time: time
    end_time: time

    def to_dict(self) -> dict:
        return {
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
        }


def compute_slots(
    page,
    windows: list,
    exceptions: list,
    existing_bookings: list,
    target_date: date,
    now: datetime,
) -> list[Slot]:
    """
    Compute the offerable slots of `page` on `target_date`.

    Returns:
        Slots sorted by start time. Empty list = no slots (never an error).
    """
    policy = SlotPolicy.from_page(page)
    if policy is None:
        return []

    now_local = localize_now(now, policy)

    candidates = generate_candidates(
        policy, windows, exceptions, target_date, now_local.date()
    )
    candidates = apply_min_notice(policy, candidates, target_date, now_local)
    candidates = apply_booking_conflicts(
        policy,
        candidates,
        existing_bookings,
        target_date,
        page_id=getattr(page, "id", None),
    )
    return sorted(candidates)


# ── Stages ───────────────────────────────────────────────────────────────


def is_within_horizon(policy: SlotPolicy, target_date: date, today: date) -> bool:
    return today <= target_date <= today + timedelta(days=policy.max_days_ahead)


def generate_candidates(
    policy: SlotPolicy,
    windows: list,
    exceptions: list,
    target_date: date,
    today: date,
) -> list[Slot]:
    """Horizon, exception and window stages. Sorted, de-duplicated by start."""
    if not is_within_horizon(policy, target_date, today):
        return []

    if any(_as_date(getattr(e, "exception_date", None)) == target_date for e in exceptions):
        return []

    weekday = target_date.weekday()
    duration = policy.slot_duration
    step = policy.step_minutes

    by_start: dict[int, Slot] = {}
    for window in windows:
        bounds = _window_bounds(window, weekday)
        if bounds is None:
            continue
        window_start, window_end = bounds

        cursor = window_start
        while cursor + duration <= window_end:
            # Overlapping windows yield the same start more than once
            by_start.setdefault(
                cursor, Slot(minutes_to_time(cursor), minutes_to_time(cursor + duration))
            )
            cursor += step

    return [by_start[k] for k in sorted(by_start)]


def apply_min_notice(
    policy: SlotPolicy,
    candidates: list[Slot],
    target_date: date,
    now: datetime,
) -> list[Slot]:
    """Drop candidates starting before now + min_notice_hours (boundary kept)."""
    threshold = now.astimezone(timezone.utc) + timedelta(hours=policy.min_notice_hours)
    return [
        slot for slot in candidates
        if slot_start_datetime(policy, target_date, slot).astimezone(timezone.utc) >= threshold
    ]


def apply_booking_conflicts(
    policy: SlotPolicy,
    candidates: list[Slot],
    existing_bookings: list,
    target_date: date,
    page_id: int | None = None,
) -> list[Slot]:
    """Drop candidates overlapping a live booking widened by the buffer."""
    busy: list[tuple[int, int]] = []
    for booking in existing_bookings:
        if getattr(booking, "status", None) == CANCELLED:
            continue
        if _as_date(getattr(booking, "date", None)) != target_date:
            continue
        booking_page_id = getattr(booking, "booking_page_id", None)
        if page_id is not None and booking_page_id is not None and booking_page_id != page_id:
            continue

        start = _as_minutes(getattr(booking, "start_time", None))
        end = _as_minutes(getattr(booking, "end_time", None))
        if start is None or end is None:
            continue
        busy.append((start - policy.buffer_minutes, end + policy.buffer_minutes))

    if not busy:
        return list(candidates)

    free = []
    for slot in candidates:
        slot_start = time_to_minutes(slot.start_time)
        slot_end = time_to_minutes(slot.end_time)
        if any(slot_start < busy_end and busy_start < slot_end for busy_start, busy_end in busy):
            continue
        free.append(slot)
    return free


# ── Helpers ──────────────────────────────────────────────────────────────


def localize_now(now: datetime, policy: SlotPolicy) -> datetime:
    """Express `now` in the page timezone. A naive value is taken as page-local."""
    if now.tzinfo is None:
        return now.replace(tzinfo=policy.tz)
    return now.astimezone(policy.tz)


def slot_start_datetime(policy: SlotPolicy, target_date: date, slot: Slot) -> datetime:
    return datetime.combine(target_date, slot.start_time, tzinfo=policy.tz)


def slot_expire_ts(policy: SlotPolicy, target_date: date, slot: Slot) -> float:
    """Unix timestamp after which the slot violates the minimum notice."""
    start_ts = slot_start_datetime(policy, target_date, slot).timestamp()
    return start_ts - policy.min_notice_hours * 3600


def _window_bounds(window, weekday: int) -> tuple[int, int] | None:
    if getattr(window, "day_of_week", None) != weekday:
        return None
    if not getattr(window, "is_active", 1):
        return None
    start = _as_minutes(getattr(window, "start_time", None))
    end = _as_minutes(getattr(window, "end_time", None))
    if start is None or end is None or start >= end:
        return None
    return start, end


def _as_minutes(value) -> int | None:
    if isinstance(value, time):
        return time_to_minutes(value)
    if isinstance(value, str):
        try:
            return time_str_to_minutes(value)
        except ValueError:
            return None
    return None


def _as_date(value) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None
