"""
Tests for the database-backed read path and its Redis cache.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bookpage.models import BookingExceptions
from bookpage.services.slots import (
    SlotsRedisStore,
    calculate_calendar,
    invalidate_page_cache,
    load_day_slots,
)


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def target(now):
    return now.date() + timedelta(days=3)


class BrokenRedis:
    """Every command fails as if the server were down."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RedisConnectionError("Connection refused")
        return fail


def test_cached_equals_uncached(db, make_page, add_booking, fake_redis, now, target):
    page = make_page()
    add_booking(page, target, time(10, 0), time(10, 30))

    direct = load_day_slots(db, page, target, now)
    cold = load_day_slots(db, page, target, now, redis=fake_redis)
    warm = load_day_slots(db, page, target, now, redis=fake_redis)

    assert direct == cold == warm
    assert len(direct) == 5


def test_miss_populates_cache(db, make_page, fake_redis, now, target):
    page = make_page()
    store = SlotsRedisStore(fake_redis)
    assert store.get_available_slots(page.id, target, now) is None

    load_day_slots(db, page, target, now, redis=fake_redis)

    cached = fake_redis.zrange(f"slots:page:{page.id}:{target.isoformat()}", 0, -1, withscores=True)
    assert [member for member, _ in cached] == [
        "09:00-09:30", "09:30-10:00", "10:00-10:30", "10:30-11:00", "11:00-11:30", "11:30-12:00",
    ]
    # Zero notice: a slot expires when it starts
    assert cached[0][1] == datetime.combine(target, time(9, 0), tzinfo=timezone.utc).timestamp()


def test_bookings_are_never_cached(db, make_page, add_booking, fake_redis, now, target):
    page = make_page()
    load_day_slots(db, page, target, now, redis=fake_redis)

    add_booking(page, target, time(9, 0), time(9, 30))
    slots = load_day_slots(db, page, target, now, redis=fake_redis)

    assert time(9, 0) not in [s.start_time for s in slots]


def test_exception_invalidation(db, make_page, fake_redis, now, target):
    page = make_page()
    assert load_day_slots(db, page, target, now, redis=fake_redis)

    db.add(BookingExceptions(booking_page_id=page.id, exception_date=target, reason="Closed"))
    db.commit()
    deleted = invalidate_page_cache(fake_redis, page.id, [target])

    assert deleted == 1
    assert load_day_slots(db, page, target, now, redis=fake_redis) == []


def test_invalidate_all_dates(db, make_page, fake_redis, now, target):
    page = make_page()
    other = make_page(slug="other")
    for offset in range(3):
        load_day_slots(db, page, target + timedelta(days=offset), now, redis=fake_redis)
    load_day_slots(db, other, target, now, redis=fake_redis)

    assert invalidate_page_cache(fake_redis, page.id) == 3
    assert SlotsRedisStore(fake_redis).get_available_slots(other.id, target, now) is not None


def test_invalidate_without_redis_is_noop():
    assert invalidate_page_cache(None, 1) == 0


def test_empty_day_uses_sentinel(db, make_page, fake_redis, now, target):
    page = make_page(windows=[])

    assert load_day_slots(db, page, target, now, redis=fake_redis) == []
    assert fake_redis.exists(f"slots:page:{page.id}:{target.isoformat()}")
    assert load_day_slots(db, page, target, now, redis=fake_redis) == []


def test_notice_applied_to_cached_slots(db, make_page, fake_redis, target):
    page = make_page(min_notice_hours=24)
    early = datetime.combine(target - timedelta(days=2), time(8, 0), tzinfo=timezone.utc)
    late = datetime.combine(target - timedelta(days=1), time(10, 0), tzinfo=timezone.utc)

    assert len(load_day_slots(db, page, target, early, redis=fake_redis)) == 6
    # Same cache entry; slots before 10:00 on target day are now inside the notice
    slots = load_day_slots(db, page, target, late, redis=fake_redis)
    assert [s.start_time for s in slots] == [time(10, 0), time(10, 30), time(11, 0), time(11, 30)]


def test_out_of_horizon_not_cached(db, make_page, fake_redis, now):
    page = make_page(max_days_ahead=5)
    far = now.date() + timedelta(days=10)

    assert load_day_slots(db, page, far, now, redis=fake_redis) == []
    assert not fake_redis.exists(f"slots:page:{page.id}:{far.isoformat()}")


def test_redis_failure_falls_back(db, make_page, now, target):
    page = make_page()
    assert len(load_day_slots(db, page, target, now, redis=BrokenRedis())) == 6


def test_invalidate_swallows_redis_failure():
    assert invalidate_page_cache(BrokenRedis(), 1, [date(2026, 10, 19)]) == 0


def test_calendar_counts(db, make_page, add_booking, now):
    today = now.date()
    page = make_page(max_days_ahead=5)
    add_booking(page, today + timedelta(days=2), time(9, 0), time(9, 30))
    db.add(BookingExceptions(booking_page_id=page.id, exception_date=today + timedelta(days=3)))
    db.commit()

    calendar = calculate_calendar(db, page, today - timedelta(days=3), today + timedelta(days=30), now)

    assert calendar["start_date"] == today
    assert calendar["end_date"] == today + timedelta(days=5)
    counts = {d["date"]: d["open_slots_count"] for d in calendar["days"]}
    assert counts[today + timedelta(days=1)] == 6
    assert counts[today + timedelta(days=2)] == 5
    assert counts[today + timedelta(days=3)] == 0
    assert len(calendar["days"]) == 6


def test_empty_day_expires_at_page_local_midnight(fake_redis, now):
    kiritimati = ZoneInfo("Pacific/Kiritimati")  # UTC+14
    day = now.date() + timedelta(days=3)
    store = SlotsRedisStore(fake_redis)

    store.store_day_slots(7, day, [], tz=kiritimati)

    local_midnight = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=kiritimati)
    expected_ttl = local_midnight.timestamp() + SlotsRedisStore.KEY_GRACE_SECONDS - datetime.now(timezone.utc).timestamp()
    assert abs(fake_redis.ttl(f"slots:page:7:{day.isoformat()}") - expected_ttl) <= 5
