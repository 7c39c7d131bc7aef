"""Ground domain schemas - Pydantic models for validation"""

from datetime import datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_ground_name
from ..scheduling.slots import GroundCategory


class GroundCreate(BaseModel):
    name: str
    category: GroundCategory
    location: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    price_per_hour: Optional[Decimal] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return validate_ground_name(v)


class GroundUpdate(BaseModel):
    """Partial update; category is fixed at creation because bookings are priced by it"""

    name: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    price_per_hour: Optional[Decimal] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return validate_ground_name(v)


class GroundResponse(BaseModel):
    id: str
    name: str
    category: str
    location: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    price_per_hour: Optional[Decimal] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SlotTemplateResponse(BaseModel):
    start: time
    end: time
    price: Decimal
