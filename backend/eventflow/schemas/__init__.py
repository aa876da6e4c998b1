from eventflow.schemas.common import Envelope, Pagination, ok
from eventflow.schemas.user import UserCreate, UserLogin, UserResponse, AuthPayload
from eventflow.schemas.event import EventCreate, EventUpdate, EventResponse
from eventflow.schemas.ticket import TicketCreate, TicketUpdate, TicketResponse
from eventflow.schemas.booking import BookingCreate, BookingResponse
from eventflow.schemas.payment import PaymentResponse

__all__ = [
    "Envelope", "Pagination", "ok",
    "UserCreate", "UserLogin", "UserResponse", "AuthPayload",
    "EventCreate", "EventUpdate", "EventResponse",
    "TicketCreate", "TicketUpdate", "TicketResponse",
    "BookingCreate", "BookingResponse",
    "PaymentResponse",
]
