"""
Booking service: create, read, cancel and check in.

TRANSACTION MODEL
=================

Create and cancel are each one database transaction that this module
commits itself:

  create:  lock ticket row -> validate -> conditional ticket decrement
           -> conditional event increment -> insert booking -> COMMIT
  cancel:  lock booking row -> conditional status UPDATE -> ticket release
           -> event release -> mark payment refunded -> FLUSH
           -> processor refund (if paid) -> COMMIT

Any failure rolls the whole transaction back before the exception leaves
this module, so the inventory and capacity counters never reflect a
half-applied booking. Lock order is always booking -> ticket -> event.

See inventory_service for why the conditional UPDATEs, not the reads,
are what prevent overselling.
"""

import secrets
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func, case, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.exceptions import (
    CapacityExceededError,
    ConflictError,
    EventFlowError,
    InsufficientInventoryError,
    NotFoundError,
    ValidationError,
)
from eventflow.core.logging import get_logger
from eventflow.core.metrics import (
    booking_latency,
    record_booking_attempt,
    record_cancellation,
    record_payment_operation,
)
from eventflow.core.permissions import Action, authorize, is_allowed
from eventflow.core.security import Identity
from eventflow.models.booking import Booking
from eventflow.models.event import Event
from eventflow.models.payment import Payment, PaymentStatus
from eventflow.models.ticket import Ticket
from eventflow.schemas.booking import BookingCreate, BookingStats
from eventflow.services import inventory_service
from eventflow.services.booking_state import BookingStateMachine, BookingStatus
from eventflow.services.event_service import get_event
from eventflow.services.interfaces.payment_gateway import PaymentGateway

logger = get_logger(__name__)


def generate_booking_reference() -> str:
    """BK-<48 random bits as hex>-<last 6 digits of the ms clock>"""
    return f"BK-{secrets.token_hex(6).upper()}-{str(int(time.time() * 1000))[-6:]}"


async def _fetch(db: AsyncSession, model, pk: int, lock: bool = False):
    """Load a row, bypassing any stale copy in the identity map."""
    query = select(model).where(model.id == pk).execution_options(populate_existing=True)
    if lock:
        query = query.with_for_update()
    return (await db.execute(query)).scalar_one_or_none()


async def create_booking(db: AsyncSession, identity: Identity, booking_data: BookingCreate) -> Booking:
    """
    Reserve `quantity` units of a ticket type for the caller.

    The booking starts `pending`; it becomes `confirmed` through the
    payment flow (or immediately, for free bookings, on payment request).
    """
    quantity = booking_data.quantity
    start = time.perf_counter()

    try:
        event = await _fetch(db, Event, booking_data.event_id)
        if event is None or not is_allowed(identity, Action.BOOK_EVENT, event):
            raise NotFoundError("Event not found or not available")

        ticket = await _fetch(db, Ticket, booking_data.ticket_id, lock=True)
        if ticket is None or ticket.event_id != event.id:
            raise ValidationError("Invalid ticket for this event")

        if not inventory_service.check_available(ticket, quantity):
            raise InsufficientInventoryError("Ticket not available or sold out")
        if not inventory_service.has_capacity(event, quantity):
            raise CapacityExceededError("Event has reached maximum capacity")

        await inventory_service.reserve(db, ticket, quantity)
        await inventory_service.reserve_capacity(db, event, quantity)

        booking = Booking(
            user_id=identity.user_id,
            event_id=event.id,
            ticket_id=ticket.id,
            quantity=quantity,
            total_amount=Decimal(ticket.price) * quantity,
            booking_reference=generate_booking_reference(),
            status=BookingStatus.PENDING.value,
            notes=booking_data.notes,
        )
        db.add(booking)
        await db.flush()
        await db.refresh(booking)
        await db.commit()

    except EventFlowError as e:
        await db.rollback()
        record_booking_attempt("conflict" if isinstance(e, ConflictError) else "rejected")
        logger.warning(
            "booking_rejected",
            user_id=identity.user_id,
            event_id=booking_data.event_id,
            ticket_id=booking_data.ticket_id,
            requested=quantity,
            reason=e.message,
        )
        raise
    except Exception:
        await db.rollback()
        record_booking_attempt("error")
        logger.exception("booking_failed", event_id=booking_data.event_id, ticket_id=booking_data.ticket_id)
        raise

    booking_latency.observe(time.perf_counter() - start)
    record_booking_attempt("success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        reference=booking.booking_reference,
        user_id=identity.user_id,
        event_id=booking.event_id,
        ticket_id=booking.ticket_id,
        quantity=quantity,
        total_amount=str(booking.total_amount),
    )
    return booking


async def get_booking(
    db: AsyncSession,
    booking_id: int,
    identity: Identity,
    lock: bool = False,
    action: str = "view",
) -> Booking:
    booking = await _fetch(db, Booking, booking_id, lock=lock)
    if not booking:
        raise NotFoundError("Booking not found")
    authorize(identity, Action.ACCESS_BOOKING, booking, f"You do not have permission to {action} this booking")
    return booking


async def get_booking_by_reference(db: AsyncSession, reference: str, identity: Identity) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.booking_reference == reference)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found")
    authorize(identity, Action.ACCESS_BOOKING, booking, "You do not have permission to view this booking")
    return booking


async def get_user_bookings(
    db: AsyncSession, user_id: int, page: int = 1, limit: int = 10
) -> tuple[list[Booking], int]:
    """Get a page of a user's bookings, newest first."""
    total = (
        await db.execute(select(func.count()).select_from(Booking).where(Booking.user_id == user_id))
    ).scalar()
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def get_event_bookings(
    db: AsyncSession, event_id: int, identity: Identity, page: int = 1, limit: int = 20
) -> tuple[list[Booking], int]:
    event = await get_event(db, event_id)
    authorize(identity, Action.MANAGE_EVENT, event, "You do not have permission to view these bookings")

    total = (
        await db.execute(select(func.count()).select_from(Booking).where(Booking.event_id == event.id))
    ).scalar()
    result = await db.execute(
        select(Booking)
        .where(Booking.event_id == event.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def get_user_stats(db: AsyncSession, user_id: int) -> BookingStats:
    def count_status(status: BookingStatus):
        return func.coalesce(func.sum(case((Booking.status == status.value, 1), else_=0)), 0)

    row = (
        await db.execute(
            select(
                func.count(Booking.id),
                count_status(BookingStatus.PENDING),
                count_status(BookingStatus.CONFIRMED),
                count_status(BookingStatus.CANCELLED),
                count_status(BookingStatus.REFUNDED),
                func.coalesce(func.sum(case((Booking.attended.is_(True), 1), else_=0)), 0),
            ).where(Booking.user_id == user_id)
        )
    ).one()
    total, pending, confirmed, cancelled, refunded, attended = (int(value or 0) for value in row)
    return BookingStats(
        total=total,
        pending=pending,
        confirmed=confirmed,
        cancelled=cancelled,
        refunded=refunded,
        attended=attended,
    )


ALREADY_CANCELLED = "Booking is already cancelled"


async def transition_booking(
    db: AsyncSession,
    booking: Booking,
    to_status: BookingStatus,
    conflict_message: str = "Booking was changed by another request",
) -> None:
    """
    Move a booking to `to_status` with a conditional UPDATE.

    The row only changes if its stored status still allows the move, so of
    two requests racing on one booking exactly one gets rowcount 1. This
    holds even where the database ignores FOR UPDATE.
    """
    BookingStateMachine.validate_transition(booking.status, to_status)
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status.in_(BookingStateMachine.sources(to_status)))
        .values(status=to_status.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("booking_transition_lost", booking_id=booking.id, to_status=to_status.value)
        raise ConflictError(conflict_message)
    await db.refresh(booking)


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    identity: Identity,
    gateway: Optional[PaymentGateway] = None,
) -> Booking:
    """
    Cancel a booking and give its tickets and capacity back.

    Every database change is flushed before a succeeded payment is
    refunded, so only the commit can fail once money has moved. The refund
    carries an idempotency key derived from the payment, and a retried
    cancel after a failed commit gets the same refund back instead of a
    second one. If the processor refuses, nothing is cancelled.
    """
    try:
        booking = await get_booking(db, booking_id, identity, lock=True, action="cancel")

        if BookingStateMachine.is_terminal(booking.status):
            raise ConflictError(ALREADY_CANCELLED)
        await transition_booking(db, booking, BookingStatus.CANCELLED, ALREADY_CANCELLED)

        ticket = await _fetch(db, Ticket, booking.ticket_id, lock=True)
        if ticket is not None:
            await inventory_service.release(db, ticket, booking.quantity)
        event = await _fetch(db, Event, booking.event_id)
        if event is not None:
            await inventory_service.release_capacity(db, event, booking.quantity)

        payment = (
            await db.execute(
                select(Payment)
                .where(Payment.booking_id == booking.id, Payment.status == PaymentStatus.SUCCEEDED)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        ).scalars().first()

        needs_refund = payment is not None and bool(payment.stripe_payment_id)
        if needs_refund and gateway is None:
            raise ConflictError("Paid bookings cannot be cancelled without a payment processor")
        if payment is not None:
            payment.status = PaymentStatus.REFUNDED
        await db.flush()

        if needs_refund:
            payment.stripe_refund_id = await gateway.refund(
                payment.stripe_payment_id, idempotency_key=f"refund-{payment.id}"
            )
        await db.commit()

    except Exception:
        await db.rollback()
        raise

    refunded = payment is not None
    record_cancellation(refunded)
    if refunded:
        record_payment_operation("refund", "success")
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        by=identity.user_id,
        event_id=booking.event_id,
        tickets_released=booking.quantity,
        refunded=refunded,
    )
    return booking


async def check_in(db: AsyncSession, booking_id: int, identity: Identity) -> Booking:
    """Mark a confirmed booking as attended (organizer or admin only)."""
    booking = await _fetch(db, Booking, booking_id, lock=True)
    if not booking:
        raise NotFoundError("Booking not found")

    event = await get_event(db, booking.event_id)
    authorize(identity, Action.MANAGE_ATTENDANCE, event, "You do not have permission to check in this booking")

    if booking.status != BookingStatus.CONFIRMED.value:
        raise ConflictError("Only confirmed bookings can be checked in")
    if booking.attended:
        raise ConflictError("Booking is already checked in")

    booking.attended = True
    booking.checkin_time = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(booking)

    logger.info("booking_checked_in", booking_id=booking.id, event_id=event.id, by=identity.user_id)
    return booking
