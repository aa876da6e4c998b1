"""
Event endpoints. Counters are always read live from the database.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventflow.core.security import Identity, get_current_identity, get_optional_identity, require_role
from eventflow.db.session import get_db
from eventflow.models.user import UserRole
from eventflow.schemas.common import Envelope, Pagination, ok
from eventflow.schemas.event import EventCreate, EventFilters, EventResponse, EventUpdate
from eventflow.services import event_service

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("", response_model=Envelope[list[EventResponse]])
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    is_featured: Optional[bool] = None,
    organizer_id: Optional[int] = None,
    start_date_from: Optional[datetime] = None,
    start_date_to: Optional[datetime] = None,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    List events ordered by start date.

    Anonymous callers see published events; signed-in callers also see
    their own drafts, admins see everything.
    """
    filters = EventFilters(
        category=category,
        is_featured=is_featured,
        organizer_id=organizer_id,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
    )
    events, total = await event_service.list_events(db, identity, filters, page, limit)
    return ok(events, pagination=Pagination.build(page, limit, total))


@router.get("/featured", response_model=Envelope[list[EventResponse]])
async def featured_events(
    limit: int = Query(6, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    events = await event_service.list_upcoming(db, limit, featured_only=True)
    return ok(events)


@router.get("/upcoming", response_model=Envelope[list[EventResponse]])
async def upcoming_events(
    limit: int = Query(6, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    events = await event_service.list_upcoming(db, limit)
    return ok(events)


@router.get("/categories", response_model=Envelope[list[str]])
async def event_categories(db: AsyncSession = Depends(get_db)):
    return ok(await event_service.list_categories(db))


@router.get("/organizer/{organizer_id}", response_model=Envelope[list[EventResponse]])
async def organizer_events(
    organizer_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
):
    filters = EventFilters(organizer_id=organizer_id)
    events, total = await event_service.list_events(db, identity, filters, page, limit)
    return ok(events, pagination=Pagination.build(page, limit, total))


@router.get("/{event_id}", response_model=Envelope[EventResponse])
async def get_event(
    event_id: int,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.get_visible_event(db, event_id, identity)
    return ok(event)


@router.post("", response_model=Envelope[EventResponse], status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    identity: Identity = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Admin only."""
    event = await event_service.create_event(db, event_data, identity)
    return ok(event, "Event created successfully")


@router.put("/{event_id}", response_model=Envelope[EventResponse])
async def update_event(
    event_id: int,
    updates: EventUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.update_event(db, event_id, updates, identity)
    return ok(event, "Event updated successfully")


@router.delete("/{event_id}", response_model=Envelope[None])
async def delete_event(
    event_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    await event_service.delete_event(db, event_id, identity)
    return ok(message="Event deleted successfully")
