"""
Pydantic schemas for ticket types.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from eventflow.schemas.common import UtcDatetime


class TicketCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(..., gt=0, le=1_000_000)
    sale_start: Optional[UtcDatetime] = None
    sale_end: Optional[UtcDatetime] = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_sale_window(self):
        if self.sale_start and self.sale_end and self.sale_end < self.sale_start:
            raise ValueError("sale_end must not be before sale_start")
        return self


class TicketUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(None, ge=0, le=1_000_000)
    sale_start: Optional[UtcDatetime] = None
    sale_end: Optional[UtcDatetime] = None
    is_active: Optional[bool] = None


class TicketResponse(BaseModel):
    id: int
    event_id: int
    name: str
    description: Optional[str]
    price: Decimal
    quantity: int
    available_quantity: int
    sale_start: Optional[datetime]
    sale_end: Optional[datetime]
    is_active: bool

    model_config = {"from_attributes": True}
