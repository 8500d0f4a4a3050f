# backend/bookpage/schemas/bookings.py

import json
from datetime import date, datetime, time
from typing import Literal, Optional
from pydantic import BaseModel, field_validator


class BookingRead(BaseModel):
    id: int
    booking_page_id: int

    date: date
    start_time: time
    end_time: time
    status: str

    prospect_name: str
    prospect_email: str
    prospect_phone: Optional[str] = None
    qualification_answers: dict[str, str] = {}
    notes: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("qualification_answers", mode="before")
    @classmethod
    def load_answers(cls, value):
        if isinstance(value, str):
            return json.loads(value) if value else {}
        return value


class BookingStatusUpdate(BaseModel):
    status: Literal["confirmed", "completed", "cancelled", "no_show"]
    notes: Optional[str] = None
