"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_uuid


class SlotSelection(BaseModel):
    """One selected slot unit, e.g. {"start": "09:00", "end": "09:30"}"""

    start: time
    end: time


class BookingCreate(BaseModel):
    ground_id: str
    booking_date: date
    slots: list[SlotSelection] = Field(min_length=1)

    @field_validator("ground_id")
    @classmethod
    def check_ground_id(cls, v):
        if not validate_uuid(v):
            raise ValueError("Invalid ground id")
        return v


class AdminBookingCreate(BookingCreate):
    """Walk-in / offline booking recorded by staff; defaults to the admin's own id"""

    user_id: Optional[str] = None


class BookingReschedule(BaseModel):
    booking_date: date
    slots: list[SlotSelection] = Field(min_length=1)


class BookingActionRequest(BaseModel):
    booking_id: str
    action: Literal["confirm", "reject", "cancel"]


class GroundSummary(BaseModel):
    id: str
    name: str
    category: str

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    id: str
    ground_id: str
    user_id: str
    booking_date: date
    start_time: time
    end_time: time
    hours: float
    status: str
    payment_status: str
    total_amount: Decimal
    booked_by_admin: bool
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[str] = None
    cancelled_by: Optional[str] = None
    created_at: Optional[datetime] = None
    ground: Optional[GroundSummary] = None

    class Config:
        from_attributes = True


class ActionResponse(BaseModel):
    success: bool = True
    message: str
    booking: Optional[BookingResponse] = None


class SlotResponse(BaseModel):
    start: time
    end: time
    price: Decimal
    state: str
    available: bool
    booking_id: Optional[str] = None


class AvailabilityResponse(BaseModel):
    ground_id: str
    booking_date: date
    category: str
    slots: list[SlotResponse]
