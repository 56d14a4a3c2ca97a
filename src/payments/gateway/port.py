"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and StripeGateway
(production) without changing any checkout or cancellation code.

The order engine only ever creates payment intents (before the checkout
transaction) and refunds them (on cancellation, or when a paid checkout
fails to persist). Capture happens client-side against the intent.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

# Payment reference recorded on orders whose total was fully covered by
# coupons and loyalty points. Such orders are never sent to the gateway.
FREE_ORDER_REFERENCE = "free_order"


def payment_intent_id(payment_reference: str) -> str:
    """Extract the intent id from a client secret (``pi_x_secret_y`` → ``pi_x``)."""
    if "_secret_" in payment_reference:
        return payment_reference.split("_secret_")[0]
    return payment_reference


def is_chargeable(payment_reference: str | None) -> bool:
    return bool(payment_reference) and payment_reference != FREE_ORDER_REFERENCE


@dataclass(frozen=True)
class PaymentIntentResult:
    """Result of a payment intent creation attempt."""

    success: bool
    intent_id: str | None = None
    client_secret: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    gateway_refund_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_payment_intent(
        self,
        amount: float,
        currency: str,
        payer_email: str,
        idempotency_key: str | None = None,
    ) -> PaymentIntentResult:
        """Create a payment intent the client will confirm."""
        ...

    @abstractmethod
    def refund(
        self,
        payment_reference: str,
        idempotency_key: str,
    ) -> RefundResult:
        """Fully refund the payment behind ``payment_reference``.

        Repeating a call with the same idempotency key must not refund twice.
        """
        ...
