"""
Payment flow for bookings.

A booking moves pending -> confirmed only here. Paid bookings are
confirmed after the processor reports the intent as succeeded for the
right booking and amount; free bookings are confirmed on request.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.config import get_settings
from eventflow.core.exceptions import (
    ConflictError,
    PaymentVerificationError,
    ValidationError,
)
from eventflow.core.logging import get_logger
from eventflow.core.metrics import record_payment_operation
from eventflow.core.security import Identity
from eventflow.models.booking import Booking
from eventflow.models.event import Event
from eventflow.models.payment import Payment, PaymentStatus
from eventflow.models.user import User
from eventflow.schemas.payment import PaymentIntentResponse
from eventflow.services import email_service
from eventflow.services.booking_service import get_booking, transition_booking
from eventflow.services.booking_state import BookingStateMachine, BookingStatus
from eventflow.services.interfaces.payment_gateway import PaymentGateway

logger = get_logger(__name__)
settings = get_settings()

CENT = Decimal("0.01")


def _ensure_payable(booking: Booking) -> None:
    if booking.status == BookingStatus.CONFIRMED.value:
        raise ConflictError("Booking is already confirmed")
    BookingStateMachine.validate_transition(booking.status, BookingStatus.CONFIRMED)


async def _notify_confirmed(db: AsyncSession, booking: Booking) -> None:
    user = await db.get(User, booking.user_id)
    event = await db.get(Event, booking.event_id)
    if user is None or event is None:
        return
    await email_service.send_booking_confirmation(user.email, booking.booking_reference, event.title)


async def request_payment(
    db: AsyncSession, booking_id: int, identity: Identity, gateway: PaymentGateway
) -> PaymentIntentResponse:
    """
    Start paying for a pending booking.

    Returns the processor's client secret, or `free=True` after confirming
    a zero-amount booking directly.
    """
    booking = await get_booking(db, booking_id, identity, lock=True, action="pay for")
    _ensure_payable(booking)

    if Decimal(booking.total_amount) <= 0:
        try:
            await transition_booking(db, booking, BookingStatus.CONFIRMED)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        record_payment_operation("free", "success")
        logger.info("free_booking_confirmed", booking_id=booking.id)
        await _notify_confirmed(db, booking)
        return PaymentIntentResponse(free=True, amount=Decimal("0"))

    intent = await gateway.create_intent(
        amount=booking.total_amount,
        currency=settings.PAYMENT_CURRENCY,
        metadata={
            "booking_id": str(booking.id),
            "booking_reference": booking.booking_reference,
            "user_id": str(booking.user_id),
            "user_email": identity.email,
        },
    )
    record_payment_operation("intent", "success")
    logger.info(
        "payment_intent_created",
        booking_id=booking.id,
        payment_intent_id=intent.external_id,
        amount=str(booking.total_amount),
    )
    return PaymentIntentResponse(
        free=False,
        client_secret=intent.client_secret,
        payment_intent_id=intent.external_id,
        amount=booking.total_amount,
    )


async def confirm_payment(
    db: AsyncSession,
    booking_id: int,
    payment_intent_id: str,
    identity: Identity,
    gateway: PaymentGateway,
) -> tuple[Booking, Payment]:
    """
    Record a succeeded intent and confirm the booking.

    Replaying an intent that already confirmed this booking returns the
    existing records. An intent that did not succeed, belongs to another
    booking or carries a different amount writes nothing.
    """
    if not payment_intent_id:
        raise ValidationError("Please provide paymentIntentId")

    try:
        booking = await get_booking(db, booking_id, identity, lock=True, action="pay for")

        existing = (
            await db.execute(
                select(Payment)
                .where(Payment.stripe_payment_id == payment_intent_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
        if existing is not None:
            if existing.booking_id != booking.id:
                raise ConflictError("Payment intent belongs to another booking")
            if existing.status == PaymentStatus.SUCCEEDED and booking.status == BookingStatus.CONFIRMED.value:
                await db.commit()
                record_payment_operation("confirm", "replay")
                logger.info("payment_confirm_replayed", booking_id=booking.id, payment_id=existing.id)
                return booking, existing
            raise ConflictError("Payment intent has already been used")

        _ensure_payable(booking)

        verification = await gateway.verify_intent(payment_intent_id)
        if not verification.succeeded:
            raise PaymentVerificationError("Payment verification failed")
        intent_booking = verification.metadata.get("booking_id")
        if intent_booking is not None and intent_booking != str(booking.id):
            raise PaymentVerificationError("Payment intent does not belong to this booking")
        if Decimal(verification.amount).quantize(CENT) != Decimal(booking.total_amount).quantize(CENT):
            raise PaymentVerificationError("Paid amount does not match booking total")
        if verification.currency and verification.currency.lower() != settings.PAYMENT_CURRENCY.lower():
            raise PaymentVerificationError("Payment currency does not match")

        await transition_booking(db, booking, BookingStatus.CONFIRMED)
        payment = Payment(
            booking_id=booking.id,
            user_id=booking.user_id,
            amount=verification.amount,
            currency=verification.currency or settings.PAYMENT_CURRENCY,
            stripe_payment_id=payment_intent_id,
            stripe_customer_id=verification.customer_id,
            payment_method="card",
            status=PaymentStatus.SUCCEEDED,
            receipt_url=verification.receipt_url,
            paid_at=datetime.now(timezone.utc),
        )
        db.add(payment)
        await db.flush()
        await db.refresh(payment)
        await db.commit()

    except PaymentVerificationError as e:
        await db.rollback()
        record_payment_operation("confirm", "failure")
        logger.warning(
            "payment_verification_failed",
            booking_id=booking_id,
            payment_intent_id=payment_intent_id,
            reason=e.message,
        )
        raise
    except IntegrityError:
        # Same intent recorded by a concurrent confirm
        await db.rollback()
        record_payment_operation("confirm", "failure")
        raise ConflictError("Payment has already been recorded")
    except Exception:
        await db.rollback()
        raise

    record_payment_operation("confirm", "success")
    logger.info(
        "payment_confirmed",
        booking_id=booking.id,
        payment_id=payment.id,
        payment_intent_id=payment_intent_id,
        amount=str(payment.amount),
    )
    await _notify_confirmed(db, booking)
    return booking, payment


async def get_user_payments(
    db: AsyncSession, user_id: int, page: int = 1, limit: int = 10
) -> tuple[list[Payment], int]:
    total = (
        await db.execute(select(func.count()).select_from(Payment).where(Payment.user_id == user_id))
    ).scalar()
    result = await db.execute(
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total
