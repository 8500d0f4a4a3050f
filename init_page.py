import json
import os
from datetime import time

from dotenv import load_dotenv
from sqlalchemy import inspect
from sqlalchemy.orm import sessionmaker

from bookpage.config import Settings
from bookpage.database import build_engine
from bookpage.models import BookingAvailability, BookingPages
from bookpage.services.slug import slugify


# ======================================================
# ENV
# ======================================================

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
PAGE_TITLE = os.getenv("PAGE_TITLE", "Discovery call")
PAGE_SLUG = os.getenv("PAGE_SLUG") or slugify(PAGE_TITLE)
PAGE_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Europe/Paris")

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set")


# ======================================================
# DEFAULTS
# ======================================================

# Mon..Fri, 09:00-12:00 and 14:00-18:00
DEFAULT_WINDOWS = [
    (day, start, end)
    for day in range(5)
    for start, end in ((time(9, 0), time(12, 0)), (time(14, 0), time(18, 0)))
]

DEFAULT_QUESTIONS = [
    {"id": "company", "type": "text", "label": "Company", "required": True},
    {
        "id": "budget",
        "type": "select",
        "label": "Budget",
        "required": False,
        "options": ["< 5k", "5k-20k", "> 20k"],
    },
]


# ======================================================
# MAIN LOGIC
# ======================================================

def main():
    # Same resolution as the app: relative sqlite paths are repo-root based
    engine = build_engine(Settings(database_url=DATABASE_URL).resolved_database_url)

    if not inspect(engine).has_table("booking_pages"):
        raise RuntimeError("Tables not found, run `alembic upgrade head` first")

    Session = sessionmaker(bind=engine)
    with Session() as db:
        page = db.query(BookingPages).filter(BookingPages.slug == PAGE_SLUG).first()

        if page:
            print(f"[BOOTSTRAP] Booking page '{PAGE_SLUG}' already exists, nothing to do")
            return

        page = BookingPages(
            slug=PAGE_SLUG,
            title=PAGE_TITLE,
            slot_duration=30,
            buffer_minutes=0,
            min_notice_hours=24,
            max_days_ahead=30,
            timezone=PAGE_TIMEZONE,
            qualification_fields=json.dumps(DEFAULT_QUESTIONS),
        )
        page.availability = [
            BookingAvailability(day_of_week=day, start_time=start, end_time=end)
            for day, start, end in DEFAULT_WINDOWS
        ]
        db.add(page)
        db.commit()

        print(f"[BOOTSTRAP] Booking page created: /{PAGE_SLUG} (id={page.id})")


# ======================================================
# ENTRYPOINT
# ======================================================

if __name__ == "__main__":
    main()
