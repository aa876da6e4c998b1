"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .payment_gateway import IntentVerification, PaymentGateway, PaymentIntent

__all__ = ['IntentVerification', 'PaymentGateway', 'PaymentIntent']
