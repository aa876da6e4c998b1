"""
Ticket type management for an event.
"""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from eventflow.core.logging import get_logger
from eventflow.core.permissions import Action, authorize, is_allowed
from eventflow.core.security import Identity
from eventflow.models.booking import Booking
from eventflow.models.event import Event
from eventflow.models.ticket import Ticket
from eventflow.schemas.ticket import TicketCreate, TicketUpdate
from eventflow.services.event_service import get_event, get_visible_event
from eventflow.services.inventory_service import as_utc

logger = get_logger(__name__)


async def get_ticket(db: AsyncSession, ticket_id: int) -> Ticket:
    result = await db.execute(select(Ticket).where(Ticket.id == ticket_id))
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise NotFoundError("Ticket not found")
    return ticket


async def list_event_tickets(
    db: AsyncSession, event_id: int, identity: Optional[Identity]
) -> list[Ticket]:
    """Active ticket types, cheapest first. Managers also see inactive ones."""
    event = await get_visible_event(db, event_id, identity)

    query = select(Ticket).where(Ticket.event_id == event.id)
    if not is_allowed(identity, Action.MANAGE_EVENT, event):
        query = query.where(Ticket.is_active.is_(True))
    result = await db.execute(query.order_by(Ticket.price.asc(), Ticket.id.asc()))
    return list(result.scalars().all())


async def create_ticket(
    db: AsyncSession, event_id: int, ticket_data: TicketCreate, identity: Identity
) -> Ticket:
    event = await get_event(db, event_id)
    authorize(identity, Action.MANAGE_EVENT, event, "You do not have permission to manage tickets for this event")

    ticket = Ticket(
        event_id=event.id,
        **ticket_data.model_dump(),
        available_quantity=ticket_data.quantity,
    )
    db.add(ticket)
    await db.flush()
    await db.refresh(ticket)

    logger.info("ticket_created", ticket_id=ticket.id, event_id=event.id, quantity=ticket.quantity)
    return ticket


async def _owning_event(db: AsyncSession, ticket: Ticket) -> Event:
    return await get_event(db, ticket.event_id)


async def update_ticket(
    db: AsyncSession, ticket_id: int, updates: TicketUpdate, identity: Identity
) -> Ticket:
    ticket = await get_ticket(db, ticket_id)
    event = await _owning_event(db, ticket)
    authorize(identity, Action.MANAGE_EVENT, event, "You do not have permission to manage tickets for this event")

    changes = updates.model_dump(exclude_unset=True)
    for field in ("name", "price", "quantity", "is_active"):
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be null")

    sale_start = as_utc(changes.get("sale_start", ticket.sale_start))
    sale_end = as_utc(changes.get("sale_end", ticket.sale_end))
    if sale_start and sale_end and sale_end < sale_start:
        raise ValidationError("sale_end must not be before sale_start")

    new_quantity = changes.pop("quantity", None)
    if new_quantity is not None and new_quantity != ticket.quantity:
        # Resize inventory in one statement so units sold meanwhile are respected
        delta = new_quantity - ticket.quantity
        result = await db.execute(
            update(Ticket)
            .where(Ticket.id == ticket.id, Ticket.available_quantity + delta >= 0)
            .values(quantity=new_quantity, available_quantity=Ticket.available_quantity + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            sold = ticket.quantity - ticket.available_quantity
            raise ConflictError(f"quantity cannot be lower than tickets already sold ({sold})")
        await db.refresh(ticket)

    for field, value in changes.items():
        setattr(ticket, field, value)
    await db.flush()
    await db.refresh(ticket)

    logger.info("ticket_updated", ticket_id=ticket.id, fields=sorted(updates.model_fields_set))
    return ticket


async def delete_ticket(db: AsyncSession, ticket_id: int, identity: Identity) -> None:
    ticket = await get_ticket(db, ticket_id)
    event = await _owning_event(db, ticket)
    authorize(identity, Action.MANAGE_EVENT, event, "You do not have permission to manage tickets for this event")

    live_bookings = (
        await db.execute(
            select(func.count())
            .select_from(Booking)
            .where(Booking.ticket_id == ticket.id, Booking.status.in_(("pending", "confirmed")))
        )
    ).scalar()
    if live_bookings:
        raise ConflictError("Ticket has active bookings; deactivate it instead")

    await db.delete(ticket)
    await db.flush()
    logger.info("ticket_deleted", ticket_id=ticket_id, event_id=event.id)
