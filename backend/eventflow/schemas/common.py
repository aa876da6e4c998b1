"""
Response envelope shared by every endpoint, and field types reused across schemas.

    {"success": true, "message": "...", "data": {...}, "pagination": {...}}
"""

import math
from datetime import datetime, timezone
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import AfterValidator, BaseModel

T = TypeVar("T")


def _to_utc(value: datetime) -> datetime:
    # Offset-less input is taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_to_utc)]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: str = "OK"
    data: Optional[T] = None
    pagination: Optional[Pagination] = None


def ok(data=None, message: str = "OK", pagination: Optional[Pagination] = None) -> dict:
    return {"success": True, "message": message, "data": data, "pagination": pagination}
