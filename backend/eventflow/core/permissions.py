"""
Capability checks for (identity, resource) pairs.

All "is this caller allowed to touch this object" decisions live here so
routes and services never compare role strings themselves.
"""

from enum import Enum
from typing import Any, Optional

from eventflow.core.exceptions import ForbiddenError
from eventflow.core.security import Identity


class Action(str, Enum):
    CREATE_EVENT = "create_event"
    MANAGE_EVENT = "manage_event"
    VIEW_EVENT = "view_event"
    BOOK_EVENT = "book_event"
    ACCESS_BOOKING = "access_booking"
    MANAGE_ATTENDANCE = "manage_attendance"


def _is_organizer(identity: Optional[Identity], event: Any) -> bool:
    return identity is not None and event is not None and event.organizer_id == identity.user_id


def is_allowed(identity: Optional[Identity], action: Action, resource: Any = None) -> bool:
    """
    Decide whether `identity` may perform `action` on `resource`.

    `resource` is an Event for the event actions and a Booking for the
    booking actions. MANAGE_ATTENDANCE takes the booking's Event.
    """
    is_admin = identity is not None and identity.is_admin

    if action is Action.CREATE_EVENT:
        return is_admin

    if action in (Action.MANAGE_EVENT, Action.MANAGE_ATTENDANCE):
        return is_admin or _is_organizer(identity, resource)

    if action is Action.VIEW_EVENT:
        return bool(resource.is_published) or is_admin or _is_organizer(identity, resource)

    if action is Action.BOOK_EVENT:
        return bool(resource.is_published) or is_admin

    if action is Action.ACCESS_BOOKING:
        return is_admin or (identity is not None and resource.user_id == identity.user_id)

    return False


def authorize(
    identity: Optional[Identity],
    action: Action,
    resource: Any = None,
    message: str = "You do not have permission to perform this action",
) -> None:
    if not is_allowed(identity, action, resource):
        raise ForbiddenError(message)
