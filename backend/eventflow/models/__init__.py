from eventflow.models.user import User, UserRole
from eventflow.models.event import Event
from eventflow.models.ticket import Ticket
from eventflow.models.booking import Booking
from eventflow.models.payment import Payment, PaymentStatus
from eventflow.models.password_reset import PasswordReset

__all__ = [
    "User", "UserRole", "Event", "Ticket", "Booking",
    "Payment", "PaymentStatus", "PasswordReset",
]
