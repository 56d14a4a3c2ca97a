"""Order status and fulfilment annotations — commands and handlers.

Status changes along the fulfilment path and per-item completion flags are
small updates of the stored order, each in its own unit of work.
Cancellation is routed to the compensator in ``ordering.order.cancellation``.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.cancellation import cancel_order, load_order
from ordering.order.order import Order, OrderStatus
from ordering.utils.processing import process_now
from payments.gateway.port import PaymentGateway

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    shipping_carrier = String(max_length=100)
    tracking_number = String(max_length=255)


@ordering.command(part_of="Order")
class SetItemCompletion:
    order_id = Identifier(required=True)
    item_index = Integer(required=True)
    is_completed = Boolean(required=True)


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        valid = ", ".join(status.value for status in OrderStatus)
        raise ValidationError({"status": [f"must be one of: {valid}"]}) from None


def change_order_status(
    gateway: PaymentGateway,
    order_id: str,
    status: str,
    carrier: str | None = None,
    tracking_number: str | None = None,
    cancellation_reason: str | None = None,
) -> Order:
    if parse_status(status) == OrderStatus.CANCELLED:
        return cancel_order(gateway, order_id, cancellation_reason)

    order = process_now(
        ChangeOrderStatus(order_id=order_id, status=status, shipping_carrier=carrier, tracking_number=tracking_number)
    )
    logger.info("Order status changed", order_id=order_id, status=order.status)
    return order


def set_item_completion(order_id: str, item_index: int, is_completed: bool) -> Order:
    order = process_now(SetItemCompletion(order_id=order_id, item_index=item_index, is_completed=is_completed))
    logger.info("Order item completion set", order_id=order_id, item_index=item_index, is_completed=is_completed)
    return order


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_status(self, command):
        order = load_order(str(command.order_id))
        order.advance_to(
            parse_status(command.status),
            carrier=command.shipping_carrier,
            tracking_number=command.tracking_number,
        )
        current_domain.repository_for(Order).add(order)
        return order

    @handle(SetItemCompletion)
    def set_item_completion(self, command):
        order = load_order(str(command.order_id))
        order.set_item_completion(command.item_index, command.is_completed)
        current_domain.repository_for(Order).add(order)
        return order
