"""
Event service handling CRUD operations and listings.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from eventflow.core.logging import get_logger
from eventflow.core.permissions import Action, authorize
from eventflow.core.security import Identity
from eventflow.models.event import Event
from eventflow.schemas.event import EventCreate, EventFilters, EventUpdate
from eventflow.services.inventory_service import as_utc

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate, organizer: Identity) -> Event:
    """Create a new event with no attendees yet."""
    authorize(organizer, Action.CREATE_EVENT)

    data = event_data.model_dump()
    if data["is_free"] is None:
        data["is_free"] = data["price"] == 0
    if not data["short_description"]:
        data["short_description"] = data["description"][:200]
    if not data["category"]:
        data["category"] = "General"

    event = Event(**data, current_attendees=0, organizer_id=organizer.user_id)
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, title=event.title, capacity=event.max_attendees)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError("Event not found")
    return event


async def get_visible_event(db: AsyncSession, event_id: int, identity: Optional[Identity]) -> Event:
    event = await get_event(db, event_id)
    authorize(identity, Action.VIEW_EVENT, event, "You do not have permission to view this event")
    return event


def _visibility_clause(identity: Optional[Identity]):
    """Published events for everyone, plus own drafts for organizers; admins see all."""
    if identity is not None and identity.is_admin:
        return None
    if identity is not None:
        return or_(Event.is_published.is_(True), Event.organizer_id == identity.user_id)
    return Event.is_published.is_(True)


async def list_events(
    db: AsyncSession,
    identity: Optional[Identity],
    filters: EventFilters,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Event], int]:
    """List events ordered by start date with pagination."""
    query = select(Event)

    visibility = _visibility_clause(identity)
    if visibility is not None:
        query = query.where(visibility)
    if filters.category:
        query = query.where(Event.category == filters.category)
    if filters.is_featured is not None:
        query = query.where(Event.is_featured.is_(filters.is_featured))
    if filters.organizer_id is not None:
        query = query.where(Event.organizer_id == filters.organizer_id)
    if filters.start_date_from:
        query = query.where(Event.start_date >= filters.start_date_from)
    if filters.start_date_to:
        query = query.where(Event.start_date <= filters.start_date_to)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.start_date.asc(), Event.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(events_query)
    return list(result.scalars().all()), total


async def list_upcoming(db: AsyncSession, limit: int = 6, featured_only: bool = False) -> list[Event]:
    query = select(Event).where(
        Event.is_published.is_(True),
        Event.start_date > datetime.now(timezone.utc),
    )
    if featured_only:
        query = query.where(Event.is_featured.is_(True))
    result = await db.execute(query.order_by(Event.start_date.asc()).limit(limit))
    return list(result.scalars().all())


async def list_categories(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(Event.category)
        .where(Event.is_published.is_(True), Event.category.is_not(None))
        .distinct()
        .order_by(Event.category)
    )
    return [category for category in result.scalars().all() if category]


async def update_event(db: AsyncSession, event_id: int, updates: EventUpdate, identity: Identity) -> Event:
    event = await get_event(db, event_id)
    authorize(identity, Action.MANAGE_EVENT, event, "You do not have permission to update this event")

    changes = updates.model_dump(exclude_unset=True)
    for field in ("title", "venue", "description", "max_attendees", "price",
                  "start_date", "end_date", "is_free", "is_featured", "is_published"):
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be null")

    start = as_utc(changes.get("start_date", event.start_date))
    end = as_utc(changes.get("end_date", event.end_date))
    if end < start:
        raise ValidationError("end_date must not be before start_date")

    # Shrinking capacity below attendees already booked would break the counter invariant
    new_max = changes.get("max_attendees")
    if new_max is not None and new_max < event.current_attendees:
        raise ConflictError(
            f"max_attendees cannot be lower than current attendees ({event.current_attendees})"
        )

    for field, value in changes.items():
        setattr(event, field, value)
    await db.flush()
    await db.refresh(event)

    logger.info("event_updated", event_id=event.id, fields=sorted(changes))
    return event


async def delete_event(db: AsyncSession, event_id: int, identity: Identity) -> None:
    """Delete an event; its tickets, bookings and payments go with it."""
    event = await get_event(db, event_id)
    authorize(identity, Action.MANAGE_EVENT, event, "You do not have permission to delete this event")

    await db.delete(event)
    await db.flush()
    logger.info("event_deleted", event_id=event_id, by=identity.user_id)
