"""
Stripe implementation of PaymentGateway.

Amounts cross the boundary in minor units (cents). The Stripe SDK is
blocking, so every call is pushed to the threadpool to keep the event loop
free while the processor answers.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

import stripe
from starlette.concurrency import run_in_threadpool

from eventflow.core.exceptions import PaymentGatewayError
from eventflow.core.logging import get_logger
from eventflow.services.interfaces.payment_gateway import (
    IntentVerification,
    PaymentGateway,
    PaymentIntent,
)

logger = get_logger(__name__)

CENTS = Decimal(100)


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * CENTS).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / CENTS).quantize(Decimal("0.01"))


class StripeGateway(PaymentGateway):
    """Payment intents via the Stripe API."""

    def __init__(self, api_key: str):
        self._client = stripe.StripeClient(api_key) if api_key else None

    @property
    def client(self) -> stripe.StripeClient:
        # Free bookings never reach the processor, so a missing key only fails paid flows
        if self._client is None:
            raise PaymentGatewayError("Payment processor is not configured")
        return self._client

    async def create_intent(
        self, amount: Decimal, currency: str, metadata: Dict[str, str]
    ) -> PaymentIntent:
        params = {
            "amount": to_minor_units(amount),
            "currency": currency,
            "metadata": {key: str(value) for key, value in metadata.items()},
            "automatic_payment_methods": {"enabled": True},
        }
        try:
            intent = await run_in_threadpool(self.client.payment_intents.create, params=params)
        except stripe.StripeError as e:
            logger.error("stripe_intent_failed", error=str(e), amount=str(amount))
            raise PaymentGatewayError("Payment processor rejected the request") from e

        return PaymentIntent(
            external_id=intent.id,
            client_secret=intent.client_secret,
            amount=from_minor_units(intent.amount),
        )

    async def verify_intent(self, external_id: str) -> IntentVerification:
        try:
            intent = await run_in_threadpool(
                self.client.payment_intents.retrieve,
                external_id,
                params={"expand": ["latest_charge"]},
            )
        except stripe.InvalidRequestError:
            # Unknown intent id: treat as "no money moved"
            logger.warning("stripe_intent_unknown", payment_intent_id=external_id)
            return IntentVerification(
                succeeded=False, status="not_found", amount=Decimal("0"), currency=""
            )
        except stripe.StripeError as e:
            logger.error("stripe_verify_failed", payment_intent_id=external_id, error=str(e))
            raise PaymentGatewayError("Could not verify payment with the processor") from e

        charge = intent.latest_charge
        receipt_url = None if charge is None or isinstance(charge, str) else charge.receipt_url
        customer = intent.customer
        customer_id = customer if isinstance(customer, str) or customer is None else customer.id

        return IntentVerification(
            succeeded=intent.status == "succeeded",
            status=intent.status,
            amount=from_minor_units(intent.amount),
            currency=intent.currency,
            receipt_url=receipt_url,
            customer_id=customer_id,
            metadata=dict(intent.metadata or {}),
        )

    async def refund(self, external_id: str, idempotency_key: Optional[str] = None) -> str:
        options = {"idempotency_key": idempotency_key} if idempotency_key else {}
        try:
            refund = await run_in_threadpool(
                self.client.refunds.create,
                params={"payment_intent": external_id},
                options=options,
            )
        except stripe.StripeError as e:
            logger.error("stripe_refund_failed", payment_intent_id=external_id, error=str(e))
            raise PaymentGatewayError("Refund could not be issued") from e
        return refund.id
