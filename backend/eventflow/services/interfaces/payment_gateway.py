"""
Payment gateway interface.
Lets the booking flow talk to a processor without knowing which one.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional


@dataclass(frozen=True)
class PaymentIntent:
    external_id: str
    client_secret: str
    amount: Decimal


@dataclass(frozen=True)
class IntentVerification:
    succeeded: bool
    status: str
    amount: Decimal
    currency: str
    receipt_url: Optional[str] = None
    customer_id: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


class PaymentGateway(ABC):
    """
    Pass-through to an external payment processor.

    The processor's answer is the only source of truth for whether money
    moved; implementations must never infer success from client input.
    """

    @abstractmethod
    async def create_intent(
        self, amount: Decimal, currency: str, metadata: Dict[str, str]
    ) -> PaymentIntent:
        """
        Open a processor-side intent for `amount` (major currency units).

        Returns:
            PaymentIntent with the id to confirm later and the secret the
            client needs to complete payment with the processor directly
        """

    @abstractmethod
    async def verify_intent(self, external_id: str) -> IntentVerification:
        """
        Re-read an intent from the processor.

        Safe to call repeatedly; it never changes processor state.
        """

    @abstractmethod
    async def refund(self, external_id: str, idempotency_key: Optional[str] = None) -> str:
        """
        Return the funds captured by an intent. Returns the refund id.

        Calls repeated with the same `idempotency_key` must yield the same
        refund rather than a second one.
        """
