# backend/bookpage/services/slots/policy.py
"""
Booking page policy for slots calculation.

Admin writes are validated strictly by the schemas, but pages created before a
field existed (or edited directly in the database) can still carry missing or
out-of-range values. Everything here is therefore defensive: a policy that
cannot be resolved means "no slots", never an exception.
"""

import logging
from dataclasses import dataclass
from datetime import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

# Durations offered by the admin form
ALLOWED_SLOT_DURATIONS = (15, 30, 45, 60)


@dataclass(frozen=True)
class SlotPolicy:
    """
    Resolved, validated policy of one booking page.

    Attributes:
        slot_duration: Slot length in minutes
        buffer_minutes: Gap enforced after every slot / around every booking
        min_notice_hours: No slot may start sooner than now + notice
        max_days_ahead: Booking horizon in days (inclusive)
        tz: Page timezone; all window/booking times are local to it
    """
    slot_duration: int
    buffer_minutes: int
    min_notice_hours: int
    max_days_ahead: int
    tz: ZoneInfo

    @property
    def step_minutes(self) -> int:
        """Cursor advance between two generated candidates."""
        return self.slot_duration + self.buffer_minutes

    @classmethod
    def from_page(cls, page) -> "SlotPolicy | None":
        """Build a policy from a page row, or None if it is unusable."""
        duration = _as_int(getattr(page, "slot_duration", None))
        buffer = _as_int(getattr(page, "buffer_minutes", None))
        notice = _as_int(getattr(page, "min_notice_hours", None))
        horizon = _as_int(getattr(page, "max_days_ahead", None))

        if duration is None or not 0 < duration <= MINUTES_PER_DAY:
            return None
        if buffer is None or buffer < 0:
            return None
        if notice is None or notice < 0:
            return None
        if horizon is None or horizon < 1:
            return None

        tz = resolve_timezone(getattr(page, "timezone", None))
        if tz is None:
            return None

        return cls(
            slot_duration=duration,
            buffer_minutes=buffer,
            min_notice_hours=notice,
            max_days_ahead=horizon,
            tz=tz,
        )


def resolve_timezone(name: str | None) -> ZoneInfo | None:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown page timezone: {name!r}")
        return None


def _as_int(value) -> int | None:
    # bool is an int subclass but never a valid policy value
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


# ── Time helpers ─────────────────────────────────────────────────────────


def time_to_minutes(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    """Inverse of time_to_minutes; minutes must be within one day."""
    return time(minutes // 60, minutes % 60)


def time_str_to_minutes(time_str: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hour, minute = time_str.split(":")[:2]
    return int(hour) * 60 + int(minute)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def parse_time(value: str) -> time:
    """Parse "HH:MM" (24h). Raises ValueError on anything else."""
    parts = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValueError("Time must be in HH:MM format")
    return time(int(parts[0]), int(parts[1]))
