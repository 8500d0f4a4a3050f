# backend/bookpage/schemas/booking_pages.py

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from ..config import settings
from ..services.qualification import QualificationField, parse_fields
from ..services.slots import ALLOWED_SLOT_DURATIONS


def _check_duration(value: Optional[int]) -> Optional[int]:
    if value is not None and value not in ALLOWED_SLOT_DURATIONS:
        raise ValueError(f"slot_duration must be one of {ALLOWED_SLOT_DURATIONS}")
    return value


def _check_timezone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {value}")
    return value


class BookingPageCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$", max_length=100)
    description: Optional[str] = None
    brand_color: Optional[str] = None

    slot_duration: int = 30
    buffer_minutes: int = Field(0, ge=0, le=240)
    min_notice_hours: int = Field(24, ge=0)
    max_days_ahead: int = Field(30, ge=1, le=365)
    timezone: str = Field(default_factory=lambda: settings.default_timezone)

    qualification_fields: list[QualificationField] = []

    model_config = {"from_attributes": True}

    @field_validator("slot_duration")
    @classmethod
    def check_duration(cls, value):
        return _check_duration(value)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value):
        return _check_timezone(value)


class BookingPageUpdate(BaseModel):
    is_active: Optional[bool] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    brand_color: Optional[str] = None

    slot_duration: Optional[int] = None
    buffer_minutes: Optional[int] = Field(None, ge=0, le=240)
    min_notice_hours: Optional[int] = Field(None, ge=0)
    max_days_ahead: Optional[int] = Field(None, ge=1, le=365)
    timezone: Optional[str] = None

    qualification_fields: Optional[list[QualificationField]] = None

    model_config = {"from_attributes": True}

    @field_validator("slot_duration")
    @classmethod
    def check_duration(cls, value):
        return _check_duration(value)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value):
        return _check_timezone(value)


class BookingPageRead(BaseModel):
    id: int
    slug: str
    title: str
    description: Optional[str] = None
    brand_color: Optional[str] = None

    slot_duration: int
    buffer_minutes: int
    min_notice_hours: int
    max_days_ahead: int
    timezone: str

    is_active: bool
    qualification_fields: list[QualificationField] = []

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("qualification_fields", mode="before")
    @classmethod
    def load_fields(cls, value):
        return parse_fields(value)


class BookingPageStats(BaseModel):
    booking_page_id: int
    total: int
    upcoming: int
    completed: int
    cancelled: int
    no_show: int
    by_status: dict[str, int]
