"""
Booking lifecycle.

    pending ──► confirmed ──► refunded
       │            │
       └──► cancelled ◄┘

`cancelled` and `refunded` are terminal.
"""

from enum import Enum
from typing import Dict, List, Set, Union

from eventflow.core.exceptions import InvalidStateTransitionError


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class BookingStateMachine:
    """Central table of legal booking status transitions."""

    _ALLOWED_TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
        BookingStatus.PENDING: {
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELLED,
        },
        BookingStatus.CONFIRMED: {
            BookingStatus.CANCELLED,
            BookingStatus.REFUNDED,
        },
        BookingStatus.CANCELLED: set(),
        BookingStatus.REFUNDED: set(),
    }

    @classmethod
    def can_transition(
        cls,
        from_status: Union[BookingStatus, str],
        to_status: Union[BookingStatus, str],
    ) -> bool:
        return BookingStatus(to_status) in cls._ALLOWED_TRANSITIONS[BookingStatus(from_status)]

    @classmethod
    def validate_transition(
        cls,
        from_status: Union[BookingStatus, str],
        to_status: Union[BookingStatus, str],
    ) -> None:
        """Raises InvalidStateTransitionError if the move is illegal."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                from_state=BookingStatus(from_status).value,
                to_state=BookingStatus(to_status).value,
            )

    @classmethod
    def sources(cls, to_status: Union[BookingStatus, str]) -> List[str]:
        """Statuses a booking may be in for a move to `to_status`."""
        target = BookingStatus(to_status)
        return [source.value for source, targets in cls._ALLOWED_TRANSITIONS.items() if target in targets]

    @classmethod
    def is_terminal(cls, status: Union[BookingStatus, str]) -> bool:
        return not cls._ALLOWED_TRANSITIONS[BookingStatus(status)]

    @classmethod
    def transition(cls, booking, to_status: BookingStatus) -> None:
        """Validate and apply a status change on a Booking row."""
        cls.validate_transition(booking.status, to_status)
        booking.status = to_status.value
