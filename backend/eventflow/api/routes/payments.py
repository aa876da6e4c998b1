"""
Payment history endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.security import Identity, get_current_identity
from eventflow.db.session import get_db
from eventflow.schemas.common import Envelope, Pagination, ok
from eventflow.schemas.payment import PaymentResponse
from eventflow.services import payment_service

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("/my-payments", response_model=Envelope[list[PaymentResponse]])
async def my_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    payments, total = await payment_service.get_user_payments(db, identity.user_id, page, limit)
    return ok(payments, pagination=Pagination.build(page, limit, total))
