# backend/bookpage/services/slots/redis_store.py
"""
Redis storage for Level 1 slots using Sorted Sets.

Key format: slots:page:{booking_page_id}:{date}
Value: Sorted Set where member = "HH:MM-HH:MM", score = expire_ts
       (unix timestamp after which the slot breaks the minimum notice).

Query: ZRANGEBYSCORE key {now_ts} +inf → only slots still far enough ahead.
Sentinel: "__empty__" with score=0 marks "calculated, zero slots".
"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from redis import Redis

from .calculator import Slot
from .policy import format_time, parse_time


EMPTY_SENTINEL = "__empty__"


def encode_slot(slot: Slot) -> str:
    return f"{format_time(slot.start_time)}-{format_time(slot.end_time)}"


def decode_slot(member: str | bytes) -> Slot:
    if isinstance(member, bytes):
        member = member.decode()
    start, end = member.split("-")
    return Slot(parse_time(start), parse_time(end))


class SlotsRedisStore:
    """Redis storage wrapper using Sorted Sets for slot data."""

    KEY_PREFIX = "slots:page"

    # Keep keys at most this long past the end of their day
    KEY_GRACE_SECONDS = 60

    def __init__(self, redis: Redis):
        self.redis = redis

    def _key(self, booking_page_id: int, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{booking_page_id}:{dt.isoformat()}"

    # ── Write ────────────────────────────────────────────────────────────

    def store_day_slots(
        self,
        booking_page_id: int,
        dt: date,
        slots: list[tuple[Slot, float]],
        tz: tzinfo = timezone.utc,
    ) -> None:
        """
        Store calculated Level 1 slots for a day.

        Args:
            booking_page_id: Booking page ID
            dt: Target date
            slots: List of (slot, expire_ts) pairs.
                   Empty list → sentinel is stored.
            tz: Page timezone; an empty day expires at its local midnight
        """
        self.store_multiple_days(booking_page_id, {dt: slots}, tz=tz)

    def store_multiple_days(
        self,
        booking_page_id: int,
        days_slots: dict[date, list[tuple[Slot, float]]],
        tz: tzinfo = timezone.utc,
    ) -> None:
        """Batch store slots for multiple days via pipeline."""
        if not days_slots:
            return

        pipe = self.redis.pipeline()
        for dt, slots in days_slots.items():
            key = self._key(booking_page_id, dt)
            pipe.delete(key)

            if slots:
                mapping = {encode_slot(slot): expire_ts for slot, expire_ts in slots}
                pipe.zadd(key, mapping)
                max_expire = max(expire_ts for _, expire_ts in slots)
                # Key lives until the last slot expires + grace
                pipe.expireat(key, int(max_expire) + self.KEY_GRACE_SECONDS)
            else:
                # Empty day: sentinel so EXISTS returns True
                pipe.zadd(key, {EMPTY_SENTINEL: 0})
                end_of_day = datetime.combine(dt + timedelta(days=1), datetime.min.time(), tzinfo=tz)
                pipe.expireat(key, int(end_of_day.timestamp()) + self.KEY_GRACE_SECONDS)

        pipe.execute()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_available_slots(
        self,
        booking_page_id: int,
        dt: date,
        now: datetime,
    ) -> list[Slot] | None:
        """
        Get Level 1 slots whose notice deadline has not passed yet.

        Returns:
            Sorted list of slots, or None on cache miss.
        """
        key = self._key(booking_page_id, dt)
        if not self.redis.exists(key):
            return None

        members = self.redis.zrangebyscore(key, now.timestamp(), "+inf")
        slots = [
            decode_slot(m) for m in members
            if (m.decode() if isinstance(m, bytes) else m) != EMPTY_SENTINEL
        ]
        return sorted(slots)

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_day_slots(
        self,
        booking_page_id: int,
        dates: list[date] | None = None,
    ) -> int:
        """
        Delete cached slots.

        Args:
            booking_page_id: Booking page ID
            dates: Specific dates, or None to delete all for the page.

        Returns:
            Number of deleted keys.
        """
        if dates:
            keys = [self._key(booking_page_id, dt) for dt in dates]
        else:
            pattern = f"{self.KEY_PREFIX}:{booking_page_id}:*"
            keys = list(self.redis.scan_iter(pattern))

        if not keys:
            return 0

        return self.redis.delete(*keys)
