"""
Tests for booking endpoints: reservation, inventory bookkeeping, cancellation
and check-in.
"""

import pytest
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from httpx import AsyncClient

from conftest import headers_for, make_event, make_ticket


async def book(client, headers, event, ticket, quantity=1, **extra):
    return await client.post(
        "/api/v1/bookings",
        json={"event_id": event.id, "ticket_id": ticket.id, "quantity": quantity, **extra},
        headers=headers,
    )


async def ticket_state(client, headers, event_id, ticket_id):
    tickets = (await client.get(f"/api/v1/events/{event_id}/tickets", headers=headers)).json()["data"]
    return next(ticket for ticket in tickets if ticket["id"] == ticket_id)


async def attendees(client, event_id):
    return (await client.get(f"/api/v1/events/{event_id}")).json()["data"]["current_attendees"]


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, auth_headers, admin_headers, test_user, test_event, test_ticket):
    """Booking takes units from the ticket and places from the event."""
    response = await book(client, auth_headers, test_event, test_ticket, quantity=2, notes="Aisle please")
    assert response.status_code == 201
    data = response.json()["data"]
    booking = data["booking"]
    assert booking["user_id"] == test_user.id
    assert booking["status"] == "pending"
    assert booking["quantity"] == 2
    assert booking["notes"] == "Aisle please"
    assert Decimal(booking["total_amount"]) == Decimal("50.00")
    assert booking["booking_reference"].startswith("BK-")
    assert data["payment_required"] is True
    assert Decimal(data["amount"]) == Decimal("50.00")

    ticket = await ticket_state(client, admin_headers, test_event.id, test_ticket.id)
    assert ticket["available_quantity"] == 8
    assert await attendees(client, test_event.id) == 2


@pytest.mark.asyncio
async def test_create_booking_unauthenticated(client: AsyncClient, test_event, test_ticket):
    response = await book(client, {}, test_event, test_ticket)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_sold_out_ticket(client: AsyncClient, auth_headers, test_event, sold_out_ticket):
    response = await book(client, auth_headers, test_event, sold_out_ticket)
    assert response.status_code == 409
    assert response.json()["message"] == "Ticket not available or sold out"


@pytest.mark.asyncio
async def test_book_more_than_available(client: AsyncClient, auth_headers, admin_headers, test_event, test_ticket):
    response = await book(client, auth_headers, test_event, test_ticket, quantity=11)
    assert response.status_code == 409

    ticket = await ticket_state(client, admin_headers, test_event.id, test_ticket.id)
    assert ticket["available_quantity"] == 10


@pytest.mark.asyncio
async def test_quantity_bounds_validated(client: AsyncClient, auth_headers, test_event, test_ticket):
    assert (await book(client, auth_headers, test_event, test_ticket, quantity=0)).status_code == 422
    assert (await book(client, auth_headers, test_event, test_ticket, quantity=51)).status_code == 422


@pytest.mark.asyncio
async def test_last_unit_goes_to_exactly_one_booking(
    client: AsyncClient, auth_headers, other_headers, admin_headers, db_session, test_event
):
    ticket = await make_ticket(db_session, test_event, quantity=1)

    first = await book(client, auth_headers, test_event, ticket)
    second = await book(client, other_headers, test_event, ticket)

    assert sorted([first.status_code, second.status_code]) == [201, 409]
    state = await ticket_state(client, admin_headers, test_event.id, ticket.id)
    assert state["available_quantity"] == 0


@pytest.mark.asyncio
async def test_capacity_exceeded_leaves_counters_untouched(
    client: AsyncClient, auth_headers, admin_headers, db_session, admin_user
):
    """max 100 with 99 booked: a 2-unit booking fails and nothing moves."""
    event = await make_event(db_session, admin_user, max_attendees=100, current_attendees=99)
    ticket = await make_ticket(db_session, event, quantity=10)

    response = await book(client, auth_headers, event, ticket, quantity=2)
    assert response.status_code == 409
    assert response.json()["message"] == "Event has reached maximum capacity"

    state = await ticket_state(client, admin_headers, event.id, ticket.id)
    assert state["available_quantity"] == 10
    assert await attendees(client, event.id) == 99


@pytest.mark.asyncio
async def test_ticket_from_another_event_rejected(
    client: AsyncClient, auth_headers, db_session, admin_user, test_event
):
    elsewhere = await make_event(db_session, admin_user, title="Elsewhere")
    foreign_ticket = await make_ticket(db_session, elsewhere)

    response = await book(client, auth_headers, test_event, foreign_ticket)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid ticket for this event"


@pytest.mark.asyncio
async def test_unpublished_event_not_bookable(
    client: AsyncClient, auth_headers, admin_headers, db_session, admin_user
):
    draft = await make_event(db_session, admin_user, is_published=False)
    ticket = await make_ticket(db_session, draft)

    response = await book(client, auth_headers, draft, ticket)
    assert response.status_code == 404
    assert response.json()["message"] == "Event not found or not available"

    # Admins may book unpublished events
    assert (await book(client, admin_headers, draft, ticket)).status_code == 201


@pytest.mark.asyncio
async def test_inactive_and_out_of_window_tickets_rejected(
    client: AsyncClient, auth_headers, db_session, test_event
):
    now = datetime.now(timezone.utc)
    inactive = await make_ticket(db_session, test_event, name="Off", is_active=False)
    not_yet = await make_ticket(
        db_session, test_event, name="Later", sale_start=now + timedelta(days=1)
    )
    ended = await make_ticket(
        db_session, test_event, name="Gone",
        sale_start=now - timedelta(days=10), sale_end=now - timedelta(days=1),
    )

    for ticket in (inactive, not_yet, ended):
        response = await book(client, auth_headers, test_event, ticket)
        assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancel_restores_inventory_once(
    client: AsyncClient, auth_headers, admin_headers, test_event, test_ticket
):
    created = await book(client, auth_headers, test_event, test_ticket, quantity=3)
    booking_id = created.json()["data"]["booking"]["id"]

    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"

    ticket = await ticket_state(client, admin_headers, test_event.id, test_ticket.id)
    assert ticket["available_quantity"] == 10
    assert await attendees(client, test_event.id) == 0

    again = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert again.status_code == 409
    assert again.json()["message"] == "Booking is already cancelled"

    ticket = await ticket_state(client, admin_headers, test_event.id, test_ticket.id)
    assert ticket["available_quantity"] == 10
    assert await attendees(client, test_event.id) == 0


@pytest.mark.asyncio
async def test_cancel_someone_elses_booking_forbidden(
    client: AsyncClient, auth_headers, other_headers, admin_headers, test_event, test_ticket
):
    created = await book(client, auth_headers, test_event, test_ticket)
    booking_id = created.json()["data"]["booking"]["id"]

    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=other_headers)
    assert response.status_code == 403

    # Admins may cancel any booking
    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=admin_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_cancel_missing_booking(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/bookings/99999/cancel", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_booking_access(
    client: AsyncClient, auth_headers, other_headers, admin_headers, test_event, test_ticket
):
    created = await book(client, auth_headers, test_event, test_ticket)
    booking = created.json()["data"]["booking"]

    own = await client.get(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)
    assert own.status_code == 200
    assert own.json()["data"]["booking_reference"] == booking["booking_reference"]

    assert (await client.get(f"/api/v1/bookings/{booking['id']}", headers=other_headers)).status_code == 403
    assert (await client.get(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)).status_code == 200

    by_ref = await client.get(
        f"/api/v1/bookings/reference/{booking['booking_reference']}", headers=auth_headers
    )
    assert by_ref.status_code == 200
    assert by_ref.json()["data"]["id"] == booking["id"]

    unknown = await client.get("/api/v1/bookings/reference/BK-000000000000-000000", headers=auth_headers)
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_my_bookings_and_stats(client: AsyncClient, auth_headers, other_headers, test_event, test_ticket):
    first = await book(client, auth_headers, test_event, test_ticket)
    await book(client, auth_headers, test_event, test_ticket, quantity=2)
    await book(client, other_headers, test_event, test_ticket)
    await client.post(f"/api/v1/bookings/{first.json()['data']['booking']['id']}/cancel", headers=auth_headers)

    mine = await client.get("/api/v1/bookings/my-bookings?limit=1", headers=auth_headers)
    assert mine.status_code == 200
    assert len(mine.json()["data"]) == 1
    assert mine.json()["pagination"]["total"] == 2
    assert mine.json()["pagination"]["pages"] == 2

    stats = await client.get("/api/v1/bookings/stats", headers=auth_headers)
    assert stats.json()["data"] == {
        "total": 2, "pending": 1, "confirmed": 0, "cancelled": 1, "refunded": 0, "attended": 0,
    }


@pytest.mark.asyncio
async def test_event_bookings_for_managers_only(
    client: AsyncClient, auth_headers, admin_headers, test_event, test_ticket
):
    await book(client, auth_headers, test_event, test_ticket)

    assert (await client.get(f"/api/v1/bookings/event/{test_event.id}", headers=auth_headers)).status_code == 403

    response = await client.get(f"/api/v1/bookings/event/{test_event.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_check_in(
    client: AsyncClient, auth_headers, admin_headers, test_event, free_ticket
):
    created = await book(client, auth_headers, test_event, free_ticket)
    booking_id = created.json()["data"]["booking"]["id"]

    pending = await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=admin_headers)
    assert pending.status_code == 409

    confirmed = await client.post(f"/api/v1/bookings/{booking_id}/payment-intent", headers=auth_headers)
    assert confirmed.json()["data"]["free"] is True

    not_organizer = await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=auth_headers)
    assert not_organizer.status_code == 403

    response = await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["attended"] is True
    assert response.json()["data"]["checkin_time"] is not None

    twice = await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=admin_headers)
    assert twice.status_code == 409

    stats = await client.get("/api/v1/bookings/stats", headers=auth_headers)
    assert stats.json()["data"]["attended"] == 1


@pytest.mark.asyncio
async def test_organizer_checks_in_own_event(client: AsyncClient, db_session, test_user, other_user):
    event = await make_event(db_session, test_user, price=Decimal("0"), is_free=True)
    ticket = await make_ticket(db_session, event, price=Decimal("0"))
    guest = headers_for(other_user)

    created = await book(client, guest, event, ticket)
    booking_id = created.json()["data"]["booking"]["id"]
    await client.post(f"/api/v1/bookings/{booking_id}/payment-intent", headers=guest)

    response = await client.post(f"/api/v1/bookings/{booking_id}/check-in", headers=headers_for(test_user))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_responses_carry_request_id(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc123"
