# backend/bookpage/schemas/booking_availability.py

from datetime import time
from pydantic import BaseModel, Field, model_validator


class AvailabilityCreate(BaseModel):
    booking_page_id: int
    day_of_week: int = Field(ge=0, le=6)  # 0=Mon .. 6=Sun
    start_time: time
    end_time: time
    is_active: bool = True

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def check_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityRead(BaseModel):
    id: int
    booking_page_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool

    model_config = {"from_attributes": True}
