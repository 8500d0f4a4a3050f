# backend/bookpage/schemas/booking_exceptions.py

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel


class ExceptionCreate(BaseModel):
    booking_page_id: int
    exception_date: date
    reason: Optional[str] = None

    model_config = {"from_attributes": True}


class ExceptionRead(BaseModel):
    id: int
    booking_page_id: int
    exception_date: date
    reason: Optional[str] = None

    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
