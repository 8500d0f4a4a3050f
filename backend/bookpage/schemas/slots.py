# backend/bookpage/schemas/slots.py
"""
Pydantic schemas for the public booking flow.
"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..services.qualification import QualificationField, parse_fields
from ..services.slots.policy import format_time, parse_time


class PublicPage(BaseModel):
    """Booking page as shown to prospects."""
    slug: str
    title: str
    description: Optional[str] = None
    brand_color: Optional[str] = None
    slot_duration: int
    max_days_ahead: int
    timezone: str
    qualification_fields: list[QualificationField] = []

    model_config = {"from_attributes": True}

    @field_validator("qualification_fields", mode="before")
    @classmethod
    def load_fields(cls, value):
        return parse_fields(value)


class SlotRead(BaseModel):
    start_time: str  # "HH:MM"
    end_time: str    # "HH:MM"


class DaySlotsResponse(BaseModel):
    slug: str
    date: date
    slots: list[SlotRead]


class CalendarDay(BaseModel):
    """Status of a single day in calendar."""
    date: date
    has_slots: bool
    open_slots_count: int = 0


class CalendarResponse(BaseModel):
    slug: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days: list[CalendarDay]


class PublicBookingCreate(BaseModel):
    """
    Prospect's booking request.

    Contact fields are checked by the reservation service so that every
    failing field is reported at once.
    """
    slug: str = Field(min_length=1)
    date: date
    start_time: time

    prospect_name: Optional[str] = None
    prospect_email: Optional[str] = None
    prospect_phone: Optional[str] = None
    qualification_answers: Optional[dict] = None

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_start(cls, value):
        if isinstance(value, str):
            return parse_time(value)
        raise ValueError("Time must be in HH:MM format")


class PublicBookingResponse(BaseModel):
    booking_id: int
    date: date
    start_time: str
    end_time: str
    prospect_name: str
    status: str

    @classmethod
    def from_booking(cls, booking) -> "PublicBookingResponse":
        return cls(
            booking_id=booking.id,
            date=booking.date,
            start_time=format_time(booking.start_time),
            end_time=format_time(booking.end_time),
            prospect_name=booking.prospect_name,
            status=booking.status,
        )
