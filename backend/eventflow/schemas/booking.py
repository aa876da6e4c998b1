"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    event_id: int
    ticket_id: int
    quantity: int = Field(default=1, gt=0, le=50)
    notes: Optional[str] = Field(None, max_length=1000)


class BookingResponse(BaseModel):
    id: int
    user_id: int
    event_id: int
    ticket_id: int
    quantity: int
    total_amount: Decimal
    booking_reference: str
    status: str
    notes: Optional[str]
    attended: bool
    checkin_time: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCreated(BaseModel):
    booking: BookingResponse
    payment_required: bool
    amount: Decimal


class BookingStats(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    cancelled: int = 0
    refunded: int = 0
    attended: int = 0
