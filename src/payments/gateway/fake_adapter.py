"""Configurable fake payment gateway for development and testing.

This adapter simulates a real payment gateway without any external calls.
It can be configured at runtime to succeed or fail, making it useful for:
- Automated tests with predictable outcomes (e.g. a failing refund)
- Development without real gateway credentials

Refunds honour idempotency keys the way Stripe does: a repeated key returns
the first result instead of refunding again.
"""

from uuid import uuid4

from payments.gateway.port import (
    PaymentGateway,
    PaymentIntentResult,
    RefundResult,
    payment_intent_id,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []
        self._refunds: dict[str, RefundResult] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    @property
    def refunded_references(self) -> list[str]:
        return [
            call["payment_intent_id"]
            for call in self.calls
            if call["method"] == "refund" and call["executed"]
        ]

    def create_payment_intent(
        self,
        amount: float,
        currency: str,
        payer_email: str,
        idempotency_key: str | None = None,
    ) -> PaymentIntentResult:
        self.calls.append(
            {
                "method": "create_payment_intent",
                "amount": amount,
                "currency": currency,
                "payer_email": payer_email,
                "idempotency_key": idempotency_key,
            }
        )

        if not self.should_succeed:
            return PaymentIntentResult(
                success=False,
                gateway_status="failed",
                failure_reason=self.failure_reason,
            )

        intent_id = f"pi_fake_{uuid4().hex[:12]}"
        return PaymentIntentResult(
            success=True,
            intent_id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            gateway_status="requires_payment_method",
        )

    def refund(self, payment_reference: str, idempotency_key: str) -> RefundResult:
        if idempotency_key in self._refunds:
            self.calls.append(
                {
                    "method": "refund",
                    "payment_intent_id": payment_intent_id(payment_reference),
                    "idempotency_key": idempotency_key,
                    "executed": False,
                }
            )
            return self._refunds[idempotency_key]

        self.calls.append(
            {
                "method": "refund",
                "payment_intent_id": payment_intent_id(payment_reference),
                "idempotency_key": idempotency_key,
                "executed": self.should_succeed,
            }
        )

        if not self.should_succeed:
            return RefundResult(success=False, failure_reason=self.failure_reason)

        result = RefundResult(
            success=True,
            gateway_refund_id=f"re_fake_{uuid4().hex[:12]}",
            gateway_status="succeeded",
        )
        self._refunds[idempotency_key] = result
        return result
