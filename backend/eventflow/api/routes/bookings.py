"""
Booking endpoints with concurrency-safe ticket reservation.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.security import Identity, get_current_identity
from eventflow.db.session import get_db
from eventflow.schemas.booking import BookingCreate, BookingCreated, BookingResponse, BookingStats
from eventflow.schemas.common import Envelope, Pagination, ok
from eventflow.schemas.payment import (
    ConfirmPaymentRequest,
    PaymentConfirmation,
    PaymentIntentResponse,
    PaymentResponse,
)
from eventflow.services import booking_service, payment_service
from eventflow.services.gateway_factory import get_payment_gateway
from eventflow.services.interfaces.payment_gateway import PaymentGateway

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=Envelope[BookingCreated], status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve tickets for an event.

    Inventory and event capacity are taken atomically; when the last units
    are contended exactly one request wins and the rest get a 409.
    """
    booking = await booking_service.create_booking(db, identity, booking_data)
    created = BookingCreated(
        booking=BookingResponse.model_validate(booking),
        payment_required=booking.total_amount > 0,
        amount=booking.total_amount,
    )
    return ok(created, "Booking created successfully")


@router.get("/my-bookings", response_model=Envelope[list[BookingResponse]])
async def my_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    bookings, total = await booking_service.get_user_bookings(db, identity.user_id, page, limit)
    return ok(bookings, pagination=Pagination.build(page, limit, total))


@router.get("/stats", response_model=Envelope[BookingStats])
async def booking_stats(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return ok(await booking_service.get_user_stats(db, identity.user_id))


@router.get("/reference/{reference}", response_model=Envelope[BookingResponse])
async def booking_by_reference(
    reference: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.get_booking_by_reference(db, reference, identity)
    return ok(booking)


@router.get("/event/{event_id}", response_model=Envelope[list[BookingResponse]])
async def event_bookings(
    event_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Bookings of one event, for its organizer or an admin."""
    bookings, total = await booking_service.get_event_bookings(db, event_id, identity, page, limit)
    return ok(bookings, pagination=Pagination.build(page, limit, total))


@router.get("/{booking_id}", response_model=Envelope[BookingResponse])
async def get_booking(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.get_booking(db, booking_id, identity)
    return ok(booking)


@router.post("/{booking_id}/cancel", response_model=Envelope[BookingResponse])
async def cancel_booking(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking, release its tickets and refund it if it was paid."""
    booking = await booking_service.cancel_booking(db, booking_id, identity, gateway)
    return ok(booking, "Booking cancelled successfully")


@router.post("/{booking_id}/payment-intent", response_model=Envelope[PaymentIntentResponse])
async def create_payment_intent(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    intent = await payment_service.request_payment(db, booking_id, identity, gateway)
    message = "Booking confirmed (free event)" if intent.free else "Payment intent created"
    return ok(intent, message)


@router.post("/{booking_id}/confirm-payment", response_model=Envelope[PaymentConfirmation])
async def confirm_payment(
    booking_id: int,
    payload: ConfirmPaymentRequest,
    identity: Identity = Depends(get_current_identity),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    booking, payment = await payment_service.confirm_payment(
        db, booking_id, payload.payment_intent_id, identity, gateway
    )
    confirmation = PaymentConfirmation(
        booking=BookingResponse.model_validate(booking),
        payment=PaymentResponse.model_validate(payment),
    )
    return ok(confirmation, "Payment confirmed successfully")


@router.post("/{booking_id}/check-in", response_model=Envelope[BookingResponse])
async def check_in(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.check_in(db, booking_id, identity)
    return ok(booking, "Checked in successfully")
