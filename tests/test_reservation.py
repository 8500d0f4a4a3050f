"""
Tests for slot reservation: validation, re-validation and the uniqueness guard.
"""

import json
import threading
from datetime import date, datetime, time, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker

from bookpage.database import build_engine
from bookpage.models import Base, BookingAvailability, BookingExceptions, BookingPages, Bookings
from bookpage.services.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationFailedError,
)
from bookpage.services.reservation import ProspectInfo, create_booking

MONDAY = date(2026, 10, 19)
NOW = datetime(2026, 10, 12, 8, 0, tzinfo=timezone.utc)


def prospect(**overrides):
    values = {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": None,
        "qualification_answers": None,
    }
    values.update(overrides)
    return ProspectInfo(**values)


class TestCreateBooking:

    def test_success_returns_persisted_row(self, db, make_page):
        page = make_page()

        booking = create_booking(db, page, MONDAY, time(10, 0), prospect(name="  Jane Doe "), NOW)

        assert booking.id is not None
        assert booking.status == "confirmed"
        assert booking.start_time == time(10, 0)
        assert booking.end_time == time(10, 30)
        assert booking.prospect_name == "Jane Doe"
        assert db.query(Bookings).count() == 1

    def test_answers_stored_as_json_map(self, db, make_page):
        page = make_page(qualification_fields=[
            {"id": "company", "type": "text", "label": "Company", "required": True},
        ])

        booking = create_booking(
            db, page, MONDAY, time(9, 0),
            prospect(qualification_answers={"company": "Acme", "extra": "ignored"}),
            NOW,
        )

        assert json.loads(booking.qualification_answers) == {"company": "Acme"}

    def test_same_slot_twice_conflicts(self, db, make_page):
        page = make_page()
        create_booking(db, page, MONDAY, time(10, 0), prospect(), NOW)

        with pytest.raises(ConflictError) as exc_info:
            create_booking(db, page, MONDAY, time(10, 0), prospect(email="bob@example.com"), NOW)

        assert exc_info.value.code == "slot_unavailable"
        assert exc_info.value.http_status == 409

    def test_off_grid_start_conflicts(self, db, make_page):
        page = make_page()

        with pytest.raises(ConflictError):
            create_booking(db, page, MONDAY, time(10, 15), prospect(), NOW)

    def test_blocked_date_conflicts(self, db, make_page):
        page = make_page()
        db.add(BookingExceptions(booking_page_id=page.id, exception_date=MONDAY))
        db.commit()

        with pytest.raises(ConflictError):
            create_booking(db, page, MONDAY, time(10, 0), prospect(), NOW)

    def test_inside_notice_conflicts(self, db, make_page):
        page = make_page(min_notice_hours=24)
        now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

        with pytest.raises(ConflictError):
            create_booking(db, page, MONDAY, time(11, 0), prospect(), now)

    def test_invalid_policy_conflicts(self, db, make_page):
        page = make_page(timezone="Nowhere/Land")

        with pytest.raises(ConflictError):
            create_booking(db, page, MONDAY, time(10, 0), prospect(), NOW)

    def test_cancelled_booking_frees_slot(self, db, make_page, add_booking):
        page = make_page()
        add_booking(page, MONDAY, time(10, 0), time(10, 30), status="cancelled")

        booking = create_booking(db, page, MONDAY, time(10, 0), prospect(), NOW)

        assert booking.status == "confirmed"

    def test_inactive_page(self, db, make_page):
        page = make_page(is_active=0)

        with pytest.raises(NotFoundError) as exc_info:
            create_booking(db, page, MONDAY, time(10, 0), prospect(), NOW)

        assert exc_info.value.code == "page_inactive"

    def test_storage_failure(self, db, make_page, monkeypatch):
        page = make_page()

        def broken_commit():
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", broken_commit)

        with pytest.raises(StorageError):
            create_booking(db, page, MONDAY, time(10, 0), prospect(), NOW)


class TestValidation:

    def test_all_failing_fields_reported(self, db, make_page):
        page = make_page(qualification_fields=[
            {"id": "company", "type": "text", "label": "Company", "required": True},
            {"id": "budget", "type": "select", "label": "Budget", "options": ["a", "b"]},
        ])

        with pytest.raises(ValidationFailedError) as exc_info:
            create_booking(
                db, page, MONDAY, time(10, 0),
                ProspectInfo(
                    name="",
                    email="nope",
                    phone="abc",
                    qualification_answers={"budget": "c"},
                ),
                NOW,
            )

        assert exc_info.value.fields == {
            "prospect_name": "required",
            "prospect_email": "invalid_email",
            "prospect_phone": "invalid_phone",
            "qualification_answers.company": "required",
            "qualification_answers.budget": "invalid_choice",
        }
        assert db.query(Bookings).count() == 0

    def test_missing_required_answer_is_not_a_conflict(self, db, make_page, add_booking):
        page = make_page(qualification_fields=[
            {"id": "company", "type": "text", "label": "Company", "required": True},
        ])
        add_booking(page, MONDAY, time(10, 0), time(10, 30))

        # Validation runs before slot re-validation
        with pytest.raises(ValidationFailedError):
            create_booking(db, page, MONDAY, time(10, 0), prospect(), NOW)

    def test_name_too_long(self, db, make_page):
        page = make_page()

        with pytest.raises(ValidationFailedError) as exc_info:
            create_booking(db, page, MONDAY, time(10, 0), prospect(name="x" * 201), NOW)

        assert exc_info.value.fields == {"prospect_name": "too_long"}

    def test_email_is_normalized(self, db, make_page):
        page = make_page()
        booking = create_booking(db, page, MONDAY, time(10, 0), prospect(email=" Jane@Example.COM "), NOW)

        assert booking.prospect_email == "jane@example.com"


class TestUniqueIndex:

    def test_two_live_bookings_same_slot_rejected(self, db, make_page, add_booking):
        page = make_page()
        add_booking(page, MONDAY, time(10, 0), time(10, 30))

        with pytest.raises(IntegrityError):
            add_booking(page, MONDAY, time(10, 0), time(10, 30), email="other@example.com")

    def test_cancelled_rows_do_not_count(self, db, make_page, add_booking):
        page = make_page()
        add_booking(page, MONDAY, time(10, 0), time(10, 30), status="cancelled")
        add_booking(page, MONDAY, time(10, 0), time(10, 30), status="cancelled")
        add_booking(page, MONDAY, time(10, 0), time(10, 30))

        assert db.query(Bookings).count() == 3


def test_concurrent_reservations_single_winner(tmp_path):
    """N threads race for one slot: exactly one wins, the rest conflict."""
    engine = build_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 30},
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False)

    with Session() as setup:
        page = BookingPages(
            slug="race",
            title="Race",
            slot_duration=30,
            buffer_minutes=0,
            min_notice_hours=0,
            max_days_ahead=30,
            timezone="UTC",
        )
        page.availability = [BookingAvailability(day_of_week=0, start_time=time(9, 0), end_time=time(12, 0))]
        setup.add(page)
        setup.commit()
        page_id = page.id

    workers = 8
    barrier = threading.Barrier(workers)
    outcomes = []
    lock = threading.Lock()

    def attempt(i):
        with Session() as session:
            page = session.get(BookingPages, page_id)
            barrier.wait()
            try:
                create_booking(
                    session, page, MONDAY, time(10, 0),
                    prospect(email=f"p{i}@example.com"), NOW,
                )
                result = "ok"
            except ConflictError:
                result = "conflict"
            with lock:
                outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert len(outcomes) == workers
    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == workers - 1

    with Session() as check:
        live = check.query(Bookings).filter(Bookings.status != "cancelled").all()
        assert len(live) == 1

    engine.dispose()


def test_booking_created_event(db, make_page, fake_redis, monkeypatch):
    from bookpage.services import events

    monkeypatch.setattr(events.settings, "events_enabled", True)
    monkeypatch.setattr(events, "redis_client", fake_redis)
    page = make_page()

    booking = create_booking(db, page, MONDAY, time(10, 0), prospect(), NOW)

    event = json.loads(fake_redis.lpop(events.P2P_QUEUE))
    assert event["type"] == "booking_created"
    assert event["booking_id"] == booking.id
    assert event["start_time"] == "10:00"


def test_event_failure_does_not_fail_booking(db, make_page, monkeypatch):
    from bookpage.services import events

    class DownRedis:
        def rpush(self, *args):
            raise ConnectionError("Connection refused")

    monkeypatch.setattr(events.settings, "events_enabled", True)
    monkeypatch.setattr(events, "redis_client", DownRedis())

    booking = create_booking(db, make_page(), MONDAY, time(10, 0), prospect(), NOW)

    assert booking.id is not None
