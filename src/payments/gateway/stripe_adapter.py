"""Stripe payment gateway adapter.

Creates PaymentIntents with automatic payment methods and issues full
refunds against them through the stripe-python SDK. Amounts are sent in
the currency's minor unit.
"""

import stripe
import structlog

from payments.gateway.port import (
    PaymentGateway,
    PaymentIntentResult,
    RefundResult,
    payment_intent_id,
)

logger = structlog.get_logger(__name__)

# Refund states Stripe reports for a refund that will go through
_ACCEPTED_REFUND_STATUSES = {"succeeded", "pending"}


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    def create_payment_intent(
        self,
        amount: float,
        currency: str,
        payer_email: str,
        idempotency_key: str | None = None,
    ) -> PaymentIntentResult:
        try:
            intent = stripe.PaymentIntent.create(
                amount=round(amount * 100),
                currency=currency,
                receipt_email=payer_email or None,
                automatic_payment_methods={"enabled": True},
                api_key=self.api_key,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe payment intent creation failed", error=str(exc))
            return PaymentIntentResult(success=False, gateway_status="failed", failure_reason=str(exc))

        return PaymentIntentResult(
            success=True,
            intent_id=intent.id,
            client_secret=intent.client_secret,
            gateway_status=intent.status,
        )

    def refund(self, payment_reference: str, idempotency_key: str) -> RefundResult:
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_intent_id(payment_reference),
                api_key=self.api_key,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe refund failed", payment_reference=payment_reference, error=str(exc))
            return RefundResult(success=False, failure_reason=str(exc))

        if refund.status not in _ACCEPTED_REFUND_STATUSES:
            return RefundResult(
                success=False,
                gateway_refund_id=refund.id,
                gateway_status=refund.status,
                failure_reason=f"Refund ended with status {refund.status}",
            )
        return RefundResult(success=True, gateway_refund_id=refund.id, gateway_status=refund.status)
