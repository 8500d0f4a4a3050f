# backend/bookpage/services/slots/__init__.py
"""
Slots calculation module.

Level 1: Windows + exceptions + notice (cached in Redis Sorted Sets)
Level 2: Booking conflicts (calculated on-the-fly)
"""

from .policy import SlotPolicy, ALLOWED_SLOT_DURATIONS
from .calculator import Slot, compute_slots
from .redis_store import SlotsRedisStore
from .invalidator import invalidate_page_cache
from .availability import calculate_calendar, load_day_slots

__all__ = [
    "SlotPolicy",
    "ALLOWED_SLOT_DURATIONS",
    "Slot",
    "compute_slots",
    "SlotsRedisStore",
    "invalidate_page_cache",
    "calculate_calendar",
    "load_day_slots",
]
