"""The checkout unit of work.

Runs inside the ``PlaceOrder`` handler, so everything it writes commits
together or not at all, and a version conflict re-runs it against fresh
reads. It has no external side effects:

    reads     stock items, buyer account, creator accounts, creations,
              order numbers in use, the payment
    validate  stock sufficiency, points balance, free-order eligibility,
              payment ownership and amount
    writes    stock decrements, points debit, creator credits and mails,
              sales counts, the payment claim, the order, confirmation mail
"""

from datetime import UTC, datetime
from uuid import uuid4

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from notifications.outbox import enqueue_mail
from notifications.templates.order_confirmation import OrderConfirmationTemplate
from ordering.cart.cart import parse_cart
from ordering.checkout.payment import claim_payment
from ordering.checkout.request import CheckoutRequest, validate_request
from ordering.errors import InsufficientPoints, PaymentError
from ordering.order.builder import build_order, reserve_order_number
from ordering.order.order import DeliveryMethod, Order
from ordering.pricing.calculator import line_price, order_total
from ordering.pricing.discounts import (
    PointsSpend,
    check_minimum_purchase,
    compute_discount,
    resolve_points_spend,
    validate_coupon,
)
from ordering.rewards.account import LoyaltyAccount
from ordering.rewards.accrual import (
    apply_awards,
    compute_awards,
    count_creation_sales,
    load_account,
    read_creations,
    read_creators,
)
from ordering.stock.ledger import aggregate_demand, decrement_stock, find_shortages, read_stock
from payments.gateway.port import FREE_ORDER_REFERENCE, is_chargeable

logger = structlog.get_logger(__name__)


def checkout_unit(request: CheckoutRequest) -> Order:
    now = datetime.now(UTC)
    lines = parse_cart(request.cart)
    delivery_method = validate_request(request)

    prices = [line_price(line) for line in lines]
    subtotal = sum(prices)
    coupon = None
    if request.coupon_code and request.coupon_code.strip():
        coupon = validate_coupon(request.coupon_code, now)
        check_minimum_purchase(coupon, subtotal)
    coupon_discount = compute_discount(coupon, subtotal)

    # Reads
    demand = aggregate_demand(lines)
    records = read_stock(demand)
    buyer = load_account(request.user_id) if request.user_id and request.points_requested else None
    awards = compute_awards(lines)
    creators = read_creators(awards, known={request.user_id: buyer} if buyer else None)
    creations = read_creations(lines)
    order_number = reserve_order_number(now)

    # Validation
    shortage = find_shortages(demand, records)
    if shortage is not None:
        logger.info(
            "Checkout rejected for stock",
            unavailable_model_ids=shortage.unavailable_model_ids,
            unavailable_charm_ids=shortage.unavailable_charm_ids,
        )
        raise shortage

    points = PointsSpend(points=0, value=0.0)
    if request.points_requested:
        if buyer is None:
            raise ObjectNotFoundError({"_entity": f"User {request.user_id} not found"})
        if buyer.balance < request.points_requested:
            raise InsufficientPoints(request.points_requested, buyer.balance)
        points = resolve_points_spend(request.points_requested, buyer.balance, subtotal - coupon_discount)

    total = order_total(subtotal, coupon_discount, points.value)
    if request.payment_reference == FREE_ORDER_REFERENCE and total > 0:
        raise PaymentError(f"A payment of {total:.2f} is required for this order")

    order_id = uuid4().hex
    if is_chargeable(request.payment_reference):
        claim_payment(request.payment_reference, order_id, total)

    # Writes
    decrement_stock(demand, records, now)
    if points.points:
        buyer.redeem(points.points)
        current_domain.repository_for(LoyaltyAccount).add(buyer)
    apply_awards(awards, creators)
    count_creation_sales(lines, creations)

    order = build_order(
        order_id=order_id,
        order_number=order_number,
        customer_email=request.customer_email.strip(),
        lines=lines,
        prices=prices,
        subtotal=subtotal,
        coupon_discount=coupon_discount,
        points_used=points.points,
        points_value=points.value,
        payment_reference=request.payment_reference,
        delivery_method=delivery_method,
        shipping_address=request.shipping_address if delivery_method == DeliveryMethod.HOME else None,
        coupon_code=coupon.code if coupon else None,
        coupon_id=coupon.id if coupon else None,
        user_id=request.user_id,
        now=now,
    )
    current_domain.repository_for(Order).add(order)

    enqueue_mail(
        order.customer_email,
        OrderConfirmationTemplate.mail_type,
        {
            "order_number": order_number,
            "total_price": order.total_price,
            "items": [item.to_dict() for item in order.ordered_items()],
            "locale": request.locale,
        },
    )
    return order
