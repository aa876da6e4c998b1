"""
Domain exceptions.

Every error the services raise on purpose derives from EventFlowError and
carries the HTTP status it maps to. The API layer renders them in the
response envelope (see eventflow.api.errors); anything else is an
unclassified server error.
"""

from typing import Optional

from fastapi import status


class EventFlowError(Exception):
    """Base class for all expected, client-facing failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(EventFlowError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(EventFlowError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(EventFlowError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(EventFlowError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(EventFlowError):
    """Business-rule violation: the request is valid but the state forbids it."""

    status_code = status.HTTP_409_CONFLICT


class InsufficientInventoryError(ConflictError):
    """Raised when a ticket type cannot cover the requested quantity."""


class CapacityExceededError(ConflictError):
    """Raised when a booking would push an event over max_attendees."""


class InvalidStateTransitionError(ConflictError):
    """Raised when an illegal booking state transition is attempted."""

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Cannot move booking from {from_state} to {to_state}")


class PaymentVerificationError(EventFlowError):
    """The processor does not confirm that money moved for this booking."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED


class PaymentGatewayError(EventFlowError):
    """The payment processor could not be reached or rejected the call."""

    status_code = status.HTTP_502_BAD_GATEWAY
