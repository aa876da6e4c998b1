"""
Ticket type endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.security import Identity, get_current_identity, get_optional_identity
from eventflow.db.session import get_db
from eventflow.schemas.common import Envelope, ok
from eventflow.schemas.ticket import TicketCreate, TicketResponse, TicketUpdate
from eventflow.services import ticket_service

router = APIRouter(tags=["Tickets"])


@router.get("/events/{event_id}/tickets", response_model=Envelope[list[TicketResponse]])
async def list_tickets(
    event_id: int,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
):
    tickets = await ticket_service.list_event_tickets(db, event_id, identity)
    return ok(tickets)


@router.post(
    "/events/{event_id}/tickets",
    response_model=Envelope[TicketResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_ticket(
    event_id: int,
    ticket_data: TicketCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    ticket = await ticket_service.create_ticket(db, event_id, ticket_data, identity)
    return ok(ticket, "Ticket created successfully")


@router.put("/tickets/{ticket_id}", response_model=Envelope[TicketResponse])
async def update_ticket(
    ticket_id: int,
    updates: TicketUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    ticket = await ticket_service.update_ticket(db, ticket_id, updates, identity)
    return ok(ticket, "Ticket updated successfully")


@router.delete("/tickets/{ticket_id}", response_model=Envelope[None])
async def delete_ticket(
    ticket_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    await ticket_service.delete_ticket(db, ticket_id, identity)
    return ok(message="Ticket deleted successfully")
