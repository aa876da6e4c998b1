"""
Pydantic schemas for the payment endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from eventflow.schemas.booking import BookingResponse


class ConfirmPaymentRequest(BaseModel):
    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")

    model_config = {"populate_by_name": True}


class PaymentIntentResponse(BaseModel):
    free: bool = False
    client_secret: Optional[str] = None
    payment_intent_id: Optional[str] = None
    amount: Optional[Decimal] = None


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    user_id: int
    amount: Decimal
    currency: str
    stripe_payment_id: Optional[str]
    status: str
    receipt_url: Optional[str]
    paid_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentConfirmation(BaseModel):
    booking: BookingResponse
    payment: PaymentResponse
