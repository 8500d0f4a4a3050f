"""Shared test fixtures and helpers."""

import os

# Settings are read at import time: pin them before bookpage is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SLOTS_CACHE_ENABLED"] = "false"
os.environ["EVENTS_ENABLED"] = "false"

import json
from datetime import time
from types import SimpleNamespace

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bookpage.database import build_engine, get_db
from bookpage.main import app
from bookpage.models import Base, BookingAvailability, BookingPages, Bookings
from bookpage.redis_client import get_redis

WEEKDAYS = range(7)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: None
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_page(db):
    """Insert a booking page with windows; returns the committed row."""
    def _make_page(
        slug="discovery-call",
        windows=None,
        qualification_fields=None,
        **overrides,
    ):
        values = {
            "slug": slug,
            "title": "Discovery call",
            "slot_duration": 30,
            "buffer_minutes": 0,
            "min_notice_hours": 0,
            "max_days_ahead": 30,
            "timezone": "UTC",
            "is_active": 1,
            "qualification_fields": json.dumps(qualification_fields or []),
        }
        values.update(overrides)
        page = BookingPages(**values)

        if windows is None:
            windows = [(day, time(9, 0), time(12, 0)) for day in WEEKDAYS]
        page.availability = [
            BookingAvailability(day_of_week=day, start_time=start, end_time=end)
            for day, start, end in windows
        ]

        db.add(page)
        db.commit()
        db.refresh(page)
        return page

    return _make_page


@pytest.fixture
def add_booking(db):
    def _add_booking(page, day, start, end, status="confirmed", email="guest@example.com"):
        booking = Bookings(
            booking_page_id=page.id,
            date=day,
            start_time=start,
            end_time=end,
            status=status,
            prospect_name="Guest",
            prospect_email=email,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _add_booking


def make_policy_page(**overrides) -> SimpleNamespace:
    """Plain page object for the pure slot computer."""
    values = {
        "id": 1,
        "slot_duration": 30,
        "buffer_minutes": 0,
        "min_notice_hours": 24,
        "max_days_ahead": 14,
        "timezone": "Europe/Paris",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def make_window(day_of_week: int, start: time, end: time, is_active: int = 1) -> SimpleNamespace:
    return SimpleNamespace(
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        is_active=is_active,
    )


def make_booking(day, start: time, end: time, status: str = "confirmed", booking_page_id: int = 1) -> SimpleNamespace:
    return SimpleNamespace(
        booking_page_id=booking_page_id,
        date=day,
        start_time=start,
        end_time=end,
        status=status,
    )
