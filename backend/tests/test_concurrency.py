"""
Contention tests for the booking path.

Each competing request gets its own session, the way two API workers would.
The outcome must not depend on FOR UPDATE: SQLite ignores it, so these run
against the default test database too.
"""

import asyncio

import pytest
from sqlalchemy import select, func

from eventflow.core.exceptions import InsufficientInventoryError
from eventflow.models.booking import Booking
from eventflow.models.event import Event
from eventflow.models.ticket import Ticket
from eventflow.schemas.booking import BookingCreate
from eventflow.services import booking_service

from conftest import identity_for, make_event, make_ticket, make_user


async def attempt(session_factory, identity, event_id, ticket_id, quantity=1):
    async with session_factory() as session:
        return await booking_service.create_booking(
            session, identity, BookingCreate(event_id=event_id, ticket_id=ticket_id, quantity=quantity)
        )


async def cancel(session_factory, identity, booking_id):
    async with session_factory() as session:
        return await booking_service.cancel_booking(session, booking_id, identity)


@pytest.mark.asyncio
async def test_last_unit_goes_to_exactly_one_buyer(session_factory, db_session, test_user, other_user, admin_user):
    event = await make_event(db_session, admin_user)
    ticket = await make_ticket(db_session, event, quantity=1)

    results = await asyncio.gather(
        attempt(session_factory, identity_for(test_user), event.id, ticket.id),
        attempt(session_factory, identity_for(other_user), event.id, ticket.id),
        return_exceptions=True,
    )

    winners = [r for r in results if isinstance(r, Booking)]
    losers = [r for r in results if isinstance(r, InsufficientInventoryError)]
    assert len(winners) == 1
    assert len(losers) == 1

    async with session_factory() as session:
        remaining = await session.get(Ticket, ticket.id)
        assert remaining.available_quantity == 0


@pytest.mark.asyncio
async def test_burst_never_oversells(session_factory, db_session, admin_user):
    event = await make_event(db_session, admin_user, max_attendees=8)
    ticket = await make_ticket(db_session, event, quantity=10)
    buyers = [await make_user(db_session, f"buyer{i}@example.com") for i in range(20)]

    results = await asyncio.gather(
        *(attempt(session_factory, identity_for(buyer), event.id, ticket.id) for buyer in buyers),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, Booking)]
    assert 0 < len(successes) <= 8

    async with session_factory() as session:
        stored = await session.get(Ticket, ticket.id)
        counted = await session.get(Event, event.id)
        booked = (
            await session.execute(
                select(func.coalesce(func.sum(Booking.quantity), 0)).where(Booking.ticket_id == ticket.id)
            )
        ).scalar()

    # The counters always agree with the bookings that were written
    assert booked == len(successes)
    assert counted.current_attendees == booked
    assert stored.available_quantity == 10 - booked


@pytest.mark.asyncio
async def test_concurrent_cancel_releases_once(
    session_factory, db_session, test_user, other_user, admin_user
):
    """Another buyer's units stay sold when one booking is cancelled twice at once."""
    event = await make_event(db_session, admin_user)
    ticket = await make_ticket(db_session, event, quantity=5)
    identity = identity_for(test_user)
    booking = await attempt(session_factory, identity, event.id, ticket.id, quantity=2)
    await attempt(session_factory, identity_for(other_user), event.id, ticket.id, quantity=2)

    results = await asyncio.gather(
        cancel(session_factory, identity, booking.id),
        cancel(session_factory, identity, booking.id),
        return_exceptions=True,
    )

    assert sum(isinstance(r, Booking) for r in results) == 1

    async with session_factory() as session:
        stored = await session.get(Ticket, ticket.id)
        counted = await session.get(Event, event.id)
    assert stored.available_quantity == 3
    assert counted.current_attendees == 2
