"""
Ticket inventory and event capacity counters.

CONCURRENCY STRATEGY: Atomic Conditional Update
===============================================

Problem:
  Two users try to book the last ticket simultaneously.
  Both read available_quantity=1, both decrement, both succeed.
  Result: Overselling.

Solution:
  The guard and the write are a single statement:

    UPDATE tickets SET available_quantity = available_quantity - :q
    WHERE id = :id AND available_quantity >= :q

    UPDATE events SET current_attendees = current_attendees + :q
    WHERE id = :id AND current_attendees + :q <= max_attendees

  The database evaluates the WHERE clause against the row it is about to
  write, so whichever transaction reaches the row second sees the first
  one's decrement and matches zero rows. rowcount == 0 means "rejected";
  the caller rolls back and nothing of the booking survives.

  The earlier reads (check_available / has_capacity) only exist to pick a
  precise error message. They are never what prevents overselling.

  CHECK constraints on both tables are the last line of defence.

Every function here runs inside the caller's transaction and never commits.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.exceptions import CapacityExceededError, InsufficientInventoryError
from eventflow.core.logging import get_logger
from eventflow.models.event import Event
from eventflow.models.ticket import Ticket

logger = get_logger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise DB datetimes; some drivers hand back naive UTC values."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def in_sale_window(ticket: Ticket, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    sale_start = as_utc(ticket.sale_start)
    sale_end = as_utc(ticket.sale_end)
    if sale_start and sale_start > now:
        return False
    if sale_end and sale_end < now:
        return False
    return True


def check_available(ticket: Ticket, quantity: int, now: Optional[datetime] = None) -> bool:
    """Active, on sale, and enough units left."""
    if ticket is None or not ticket.is_active:
        return False
    if not in_sale_window(ticket, now):
        return False
    return ticket.available_quantity >= quantity


def has_capacity(event: Event, quantity: int) -> bool:
    return event.current_attendees + quantity <= event.max_attendees


async def reserve(db: AsyncSession, ticket: Ticket, quantity: int) -> None:
    result = await db.execute(
        update(Ticket)
        .where(
            Ticket.id == ticket.id,
            Ticket.is_active.is_(True),
            Ticket.available_quantity >= quantity,
        )
        .values(available_quantity=Ticket.available_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("ticket_reserve_rejected", ticket_id=ticket.id, requested=quantity)
        raise InsufficientInventoryError("Ticket not available or sold out")
    await db.refresh(ticket)


async def release(db: AsyncSession, ticket: Ticket, quantity: int) -> None:
    result = await db.execute(
        update(Ticket)
        .where(Ticket.id == ticket.id, Ticket.available_quantity + quantity <= Ticket.quantity)
        .values(available_quantity=Ticket.available_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("ticket_release_out_of_bounds", ticket_id=ticket.id, quantity=quantity)
    await db.refresh(ticket)


async def reserve_capacity(db: AsyncSession, event: Event, quantity: int) -> None:
    result = await db.execute(
        update(Event)
        .where(
            Event.id == event.id,
            Event.current_attendees + quantity <= Event.max_attendees,
        )
        .values(current_attendees=Event.current_attendees + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("event_capacity_rejected", event_id=event.id, requested=quantity)
        raise CapacityExceededError("Event has reached maximum capacity")
    await db.refresh(event)


async def release_capacity(db: AsyncSession, event: Event, quantity: int) -> None:
    result = await db.execute(
        update(Event)
        .where(Event.id == event.id, Event.current_attendees >= quantity)
        .values(current_attendees=Event.current_attendees - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("event_capacity_release_out_of_bounds", event_id=event.id, quantity=quantity)
    await db.refresh(event)
