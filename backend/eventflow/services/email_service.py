"""
Outbound email.

No mail transport is wired in. Outside production the whole message is
written to the structured log so it can be picked up there; in production
only the recipient and subject are logged, since bodies carry reset links.
"""

from urllib.parse import urlencode

from eventflow.core.config import get_settings
from eventflow.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


async def send_email(to: str, subject: str, body: str) -> None:
    if settings.ENVIRONMENT == "production":
        logger.info("email_sent", to=to, subject=subject)
    else:
        logger.info("email_sent", to=to, subject=subject, body=body)


async def send_password_reset_email(email: str, token: str) -> None:
    link = f"{settings.FRONTEND_URL}/reset-password?{urlencode({'token': token})}"
    body = (
        "A password reset was requested for your EventFlow account.\n\n"
        f"Reset your password here: {link}\n\n"
        f"The link expires in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes. "
        "If you did not ask for this, ignore this email."
    )
    await send_email(email, "Reset your EventFlow password", body)


async def send_booking_confirmation(email: str, booking_reference: str, event_title: str) -> None:
    body = (
        f"Your booking {booking_reference} for {event_title} is confirmed.\n"
        "Show this reference at the entrance."
    )
    await send_email(email, f"Booking confirmed - {booking_reference}", body)
