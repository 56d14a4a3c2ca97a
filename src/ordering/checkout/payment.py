"""Payment aggregate — one gateway payment intent and the order it paid for.

A payment opened for a quoted total can back exactly one order. Checkout
claims it in the same unit of work that writes the order, so a second
checkout presenting the same reference conflicts on the claim and is
rejected. A payment is only refunded while nothing has claimed it.

State Machine:
    open → claimed (checkout committed) → refunded (order cancelled)
    open → refunding → refunded (checkout failed, refund issued)
    refunding → open (the refund was rejected by the gateway)
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import PaymentError
from payments.gateway.port import payment_intent_id

logger = structlog.get_logger(__name__)

# Amounts are rounded to cents on both sides, so only float noise may differ
_AMOUNT_TOLERANCE = 0.005


class PaymentStatus(Enum):
    OPEN = "open"
    CLAIMED = "claimed"
    REFUNDING = "refunding"
    REFUNDED = "refunded"


@ordering.aggregate
class Payment:
    reference = String(required=True, max_length=255)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=10)
    payer_email = String(max_length=255)
    status = String(choices=PaymentStatus, default=PaymentStatus.OPEN.value)
    order_id = String(max_length=255)
    refund_reference = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    def claim(self, reference: str, order_id: str, total: float) -> None:
        """Tie this payment to ``order_id``. Raises PaymentError when it cannot pay for it."""
        if self.reference != reference:
            raise PaymentError("Payment reference does not match the payment intent")
        if self.status != PaymentStatus.OPEN.value:
            raise PaymentError("This payment has already been used")
        if abs(self.amount - total) > _AMOUNT_TOLERANCE:
            raise PaymentError(f"Payment of {self.amount:.2f} does not cover the order total of {total:.2f}")
        self.status = PaymentStatus.CLAIMED.value
        self.order_id = order_id
        self.updated_at = datetime.now(UTC)

    def start_refund(self) -> bool:
        """Reserve an unclaimed payment for a refund. False when it is not refundable."""
        if self.status != PaymentStatus.OPEN.value:
            return False
        self.status = PaymentStatus.REFUNDING.value
        self.updated_at = datetime.now(UTC)
        return True

    def reopen(self) -> None:
        if self.status == PaymentStatus.REFUNDING.value:
            self.status = PaymentStatus.OPEN.value
            self.updated_at = datetime.now(UTC)

    def mark_refunded(self, refund_reference: str | None) -> None:
        self.status = PaymentStatus.REFUNDED.value
        self.refund_reference = refund_reference
        self.updated_at = datetime.now(UTC)


def load_payment(payment_reference: str) -> Payment | None:
    try:
        return current_domain.repository_for(Payment).get(payment_intent_id(payment_reference))
    except ObjectNotFoundError:
        return None


def claim_payment(payment_reference: str, order_id: str, total: float) -> Payment:
    payment = load_payment(payment_reference)
    if payment is None:
        raise PaymentError("Unknown payment reference")
    payment.claim(payment_reference, order_id, total)
    current_domain.repository_for(Payment).add(payment)
    return payment


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@ordering.command(part_of="Payment")
class RecordPaymentIntent:
    payment_id = Identifier(required=True)
    reference = String(required=True, max_length=255)
    amount = Float(required=True)
    currency = String(max_length=10)
    payer_email = String(max_length=255)


@ordering.command(part_of="Payment")
class StartPaymentRefund:
    payment_id = Identifier(required=True)


@ordering.command(part_of="Payment")
class CompletePaymentRefund:
    payment_id = Identifier(required=True)
    refund_reference = String(max_length=255)


@ordering.command(part_of="Payment")
class ReopenPayment:
    payment_id = Identifier(required=True)


@ordering.command_handler(part_of=Payment)
class PaymentHandler:
    @handle(RecordPaymentIntent)
    def record_payment_intent(self, command):
        now = datetime.now(UTC)
        payment = Payment(
            id=str(command.payment_id),
            reference=command.reference,
            amount=command.amount,
            currency=command.currency,
            payer_email=command.payer_email,
            created_at=now,
            updated_at=now,
        )
        current_domain.repository_for(Payment).add(payment)
        return payment

    @handle(StartPaymentRefund)
    def start_refund(self, command):
        repo = current_domain.repository_for(Payment)
        try:
            payment = repo.get(str(command.payment_id))
        except ObjectNotFoundError:
            return False
        if not payment.start_refund():
            return False
        repo.add(payment)
        return True

    @handle(CompletePaymentRefund)
    def complete_refund(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(str(command.payment_id))
        payment.mark_refunded(command.refund_reference)
        repo.add(payment)
        return payment

    @handle(ReopenPayment)
    def reopen(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(str(command.payment_id))
        payment.reopen()
        repo.add(payment)
        return payment
