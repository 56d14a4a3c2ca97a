"""Order cancellation — compensating a committed order.

Cancelling reverses everything checkout did to shared resources: the
payment is refunded, spent loyalty points go back to the buyer and every
consumed model and charm is restocked. The steps run in a fixed order so no
failure can leave a refunded order on the fulfilment path:

1. ``RequestCancellation`` guards the stored order (exists, not terminal,
   reason given) and flags it ``cancellation_pending``. While the flag is
   set, status changes along the fulfilment path are rejected.
2. Refund through the gateway, keyed ``cancel-<order id>`` so a resumed
   cancellation never refunds twice. A rejected refund clears the flag
   (``AbandonCancellation``) and stops with nothing else written.
3. ``CompleteCancellation`` restores points and stock, marks the payment
   refunded and writes the new status with the cancellation metadata.
   Should it fail, the refund reference is recorded on its own
   (``RecordRefund``) and the order stays flagged, so running the
   cancellation again completes it without a second refund.
4. After commit, the cancellation mail is enqueued on a best-effort basis.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from notifications.outbox import enqueue_mail
from notifications.templates.order_cancellation import OrderCancellationTemplate
from ordering.checkout.payment import Payment, load_payment
from ordering.domain import ordering
from ordering.errors import PaymentError
from ordering.order.order import Order
from ordering.rewards.account import LoyaltyAccount
from ordering.rewards.accrual import load_account
from ordering.stock.ledger import aggregate_order_items, read_stock, restore_stock
from ordering.utils.processing import process_now
from payments.gateway.port import PaymentGateway

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class RequestCancellation:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@ordering.command(part_of="Order")
class AbandonCancellation:
    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class CompleteCancellation:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    refund_reference = String(max_length=255)


@ordering.command(part_of="Order")
class RecordRefund:
    order_id = Identifier(required=True)
    refund_reference = String(required=True, max_length=255)


def load_order(order_id: str) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise ObjectNotFoundError({"_entity": f"Order {order_id} not found"}) from None


def compensate(order: Order, reason: str, refund_reference: str | None) -> Order:
    """Give back points and stock, then close the order. Runs inside one unit of work."""
    demand = aggregate_order_items(item.to_dict() for item in order.ordered_items())
    records = read_stock(demand)
    buyer = load_account(order.user_id) if order.user_id and order.points_used else None
    payment = load_payment(order.payment_reference) if order.was_paid else None

    order.cancel(reason, refund_reference)

    if buyer is not None:
        buyer.credit(order.points_used)
        current_domain.repository_for(LoyaltyAccount).add(buyer)
    elif order.points_used:
        logger.warning("Buyer account missing, spent points not restored", order_id=str(order.id))
    restore_stock(demand, records)
    if payment is not None:
        payment.mark_refunded(order.refund_reference)
        current_domain.repository_for(Payment).add(payment)

    current_domain.repository_for(Order).add(order)
    return order


def cancel_order(gateway: PaymentGateway, order_id: str, reason: str) -> Order:
    order = process_now(RequestCancellation(order_id=order_id, reason=reason))

    refund_reference = order.refund_reference
    if order.was_paid and not refund_reference:
        result = gateway.refund(order.payment_reference, idempotency_key=f"cancel-{order_id}")
        if not result.success:
            logger.warning("Refund rejected, order left unchanged", order_id=order_id, reason=result.failure_reason)
            process_now(AbandonCancellation(order_id=order_id))
            raise PaymentError(f"Refund failed: {result.failure_reason}")
        refund_reference = result.gateway_refund_id

    try:
        cancelled = process_now(
            CompleteCancellation(order_id=order_id, reason=reason, refund_reference=refund_reference)
        )
    except Exception:
        logger.error("Order refunded but not cancelled, left pending", order_id=order_id)
        if refund_reference:
            process_now(RecordRefund(order_id=order_id, refund_reference=refund_reference))
        raise

    logger.info(
        "Order cancelled",
        order_id=order_id,
        order_number=cancelled.order_number,
        refunded=cancelled.was_paid,
        points_restored=cancelled.points_used,
    )

    _notify_cancellation(cancelled)
    return cancelled


def _notify_cancellation(order: Order) -> None:
    context = {
        "order_number": order.order_number,
        "reason": order.cancellation_reason,
        "refunded": order.was_paid,
    }
    try:
        enqueue_mail(order.customer_email, OrderCancellationTemplate.mail_type, context)
    except Exception as e:
        # The cancellation itself has committed; a lost mail is not rolled back
        logger.error("Cancellation mail could not be enqueued", order_id=str(order.id), error=str(e))


@ordering.command_handler(part_of=Order)
class CancellationHandler:
    @handle(RequestCancellation)
    def request_cancellation(self, command):
        order = load_order(str(command.order_id))
        order.request_cancellation(command.reason)
        current_domain.repository_for(Order).add(order)
        return order

    @handle(AbandonCancellation)
    def abandon_cancellation(self, command):
        order = load_order(str(command.order_id))
        order.abandon_cancellation()
        current_domain.repository_for(Order).add(order)
        return order

    @handle(CompleteCancellation)
    def complete_cancellation(self, command):
        order = load_order(str(command.order_id))
        return compensate(order, command.reason, command.refund_reference)

    @handle(RecordRefund)
    def record_refund(self, command):
        order = load_order(str(command.order_id))
        order.record_refund(command.refund_reference)
        current_domain.repository_for(Order).add(order)
        return order
