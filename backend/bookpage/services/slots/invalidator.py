# backend/bookpage/services/slots/invalidator.py
"""
Cache invalidation for booking page slots.

Triggers:
✓ Page policy / timezone / activation changed → invalidate all dates
✓ Availability window created/deleted → invalidate all dates
✓ Exception created/deleted → invalidate the exception date

Does NOT trigger:
✗ Booking created / status changed (Level 2 calculates on-the-fly)
"""

import logging
from datetime import date
from redis import Redis
from redis.exceptions import RedisError

from .redis_store import SlotsRedisStore

logger = logging.getLogger(__name__)


def invalidate_page_cache(
    redis: Redis | None,
    booking_page_id: int,
    dates: list[date] | None = None,
) -> int:
    """
    Invalidate cached slots for a booking page.

    Args:
        redis: Redis client (None = cache disabled, nothing to do)
        booking_page_id: Booking page ID
        dates: Specific dates to invalidate,
               or None to invalidate all cached dates

    Returns:
        Number of deleted cache keys
    """
    if redis is None:
        return 0

    store = SlotsRedisStore(redis)
    try:
        return store.delete_day_slots(booking_page_id, dates)
    except RedisError:
        # Stale entries would outlive a config change; make it loud
        logger.exception(f"Failed to invalidate slots cache for page {booking_page_id}")
        return 0
