"""
Tests for the capability checks.
"""

from types import SimpleNamespace

import pytest

from eventflow.core.exceptions import ForbiddenError
from eventflow.core.permissions import Action, authorize, is_allowed
from eventflow.core.security import Identity

ADMIN = Identity(user_id=1, email="admin@example.com", role="admin")
ORGANIZER = Identity(user_id=2, email="organizer@example.com", role="user")
ATTENDEE = Identity(user_id=3, email="attendee@example.com", role="user")

published = SimpleNamespace(organizer_id=2, is_published=True)
draft = SimpleNamespace(organizer_id=2, is_published=False)
booking = SimpleNamespace(user_id=3)


def test_only_admins_create_events():
    assert is_allowed(ADMIN, Action.CREATE_EVENT)
    assert not is_allowed(ORGANIZER, Action.CREATE_EVENT)
    assert not is_allowed(None, Action.CREATE_EVENT)


@pytest.mark.parametrize("action", [Action.MANAGE_EVENT, Action.MANAGE_ATTENDANCE])
def test_event_management(action):
    assert is_allowed(ADMIN, action, published)
    assert is_allowed(ORGANIZER, action, draft)
    assert not is_allowed(ATTENDEE, action, published)
    assert not is_allowed(None, action, published)


def test_drafts_are_hidden_from_the_public():
    assert is_allowed(None, Action.VIEW_EVENT, published)
    assert not is_allowed(None, Action.VIEW_EVENT, draft)
    assert not is_allowed(ATTENDEE, Action.VIEW_EVENT, draft)
    assert is_allowed(ORGANIZER, Action.VIEW_EVENT, draft)
    assert is_allowed(ADMIN, Action.VIEW_EVENT, draft)


def test_booking_needs_published_event():
    assert is_allowed(ATTENDEE, Action.BOOK_EVENT, published)
    assert not is_allowed(ATTENDEE, Action.BOOK_EVENT, draft)
    assert is_allowed(ADMIN, Action.BOOK_EVENT, draft)


def test_booking_access():
    assert is_allowed(ATTENDEE, Action.ACCESS_BOOKING, booking)
    assert is_allowed(ADMIN, Action.ACCESS_BOOKING, booking)
    assert not is_allowed(ORGANIZER, Action.ACCESS_BOOKING, booking)
    assert not is_allowed(None, Action.ACCESS_BOOKING, booking)


def test_authorize_raises_forbidden():
    authorize(ATTENDEE, Action.ACCESS_BOOKING, booking)

    with pytest.raises(ForbiddenError) as exc_info:
        authorize(ORGANIZER, Action.ACCESS_BOOKING, booking, message="Not your booking")
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Not your booking"
