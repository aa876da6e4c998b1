"""
Payment gateway factory.
Configures which processor backs the payment endpoints.
"""

from typing import Optional

from eventflow.core.config import get_settings
from eventflow.core.exceptions import PaymentGatewayError
from eventflow.services.interfaces.payment_gateway import PaymentGateway
from eventflow.services.stripe_gateway import StripeGateway


def build_payment_gateway() -> PaymentGateway:
    """
    Build the gateway named by the PAYMENT_GATEWAY setting.

    Only "stripe" ships with the service; tests override the
    get_payment_gateway dependency instead.
    """
    settings = get_settings()
    name = settings.PAYMENT_GATEWAY.lower()

    if name == "stripe":
        return StripeGateway(settings.STRIPE_SECRET_KEY)
    raise PaymentGatewayError(f"Unknown payment gateway: {settings.PAYMENT_GATEWAY}")


# Singleton instance
_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the process-wide gateway."""
    global _gateway
    if _gateway is None:
        _gateway = build_payment_gateway()
    return _gateway
