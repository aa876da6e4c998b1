"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from eventflow.schemas.common import UtcDatetime


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    short_description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=50)
    venue: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    start_date: UtcDatetime
    end_date: UtcDatetime
    image_url: Optional[str] = Field(None, max_length=255)


class EventCreate(EventBase):
    max_attendees: int = Field(100, gt=0, le=1_000_000)
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    is_free: Optional[bool] = None
    is_featured: bool = False
    is_published: bool = True

    @model_validator(mode="after")
    def check_schedule(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    short_description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=50)
    venue: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    image_url: Optional[str] = Field(None, max_length=255)
    max_attendees: Optional[int] = Field(None, gt=0, le=1_000_000)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_free: Optional[bool] = None
    is_featured: Optional[bool] = None
    is_published: Optional[bool] = None


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    short_description: Optional[str]
    category: Optional[str]
    venue: str
    address: Optional[str]
    city: Optional[str]
    country: Optional[str]
    start_date: datetime
    end_date: datetime
    image_url: Optional[str]
    max_attendees: int
    current_attendees: int
    price: Decimal
    is_free: bool
    is_featured: bool
    is_published: bool
    organizer_id: Optional[int]
    created_at: datetime

    model_config = {"from_attributes": True}


class EventFilters(BaseModel):
    category: Optional[str] = None
    is_featured: Optional[bool] = None
    organizer_id: Optional[int] = None
    start_date_from: Optional[datetime] = None
    start_date_to: Optional[datetime] = None
