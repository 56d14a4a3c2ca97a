"""Order record builder.

Assembles the Order snapshot from priced cart lines and the resolved
discounts, and generates the human-shareable order number
``PREFIX-YYMMDD-XXXXXX``. The random suffix alone does not guarantee
uniqueness, so every number is checked against the stored orders by the
same unit of work that writes the order, and a taken number is replaced
before anything is written. ``Order.order_number`` is also declared unique,
so the repository rejects a duplicate that slips past the check.
"""

import json
import secrets
import string
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from ordering import settings
from ordering.cart.cart import CartLine
from ordering.errors import OrderNumberExhausted
from ordering.order.order import DeliveryMethod, Order, OrderItem, OrderStatus, ShippingAddress
from ordering.pricing.calculator import round_money

logger = structlog.get_logger(__name__)

SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 6
MAX_NUMBER_ATTEMPTS = 10


def generate_order_number(now: datetime | None = None, prefix: str | None = None) -> str:
    now = now or datetime.now(UTC)
    suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{prefix or settings.ORDER_NUMBER_PREFIX}-{now:%y%m%d}-{suffix}"


def order_number_taken(order_number: str) -> bool:
    repo = current_domain.repository_for(Order)
    return bool(repo._dao.query.filter(order_number=order_number).all().items)


def reserve_order_number(now: datetime, generate=generate_order_number) -> str:
    """Draw numbers until one is free. Read-only: the order itself is written later."""
    for _ in range(MAX_NUMBER_ATTEMPTS):
        candidate = generate(now)
        if not order_number_taken(candidate):
            return candidate
        logger.warning("Order number collision, drawing again", order_number=candidate)
    raise OrderNumberExhausted(f"No free order number after {MAX_NUMBER_ATTEMPTS} attempts")


def build_items(lines: list[CartLine], prices: list[float]) -> list[OrderItem]:
    return [
        OrderItem(
            position=position,
            model_id=line.model_id,
            model_name=line.model_name,
            jewelry_type_id=line.jewelry_type.value,
            jewelry_type_name=line.jewelry_type_name,
            charms=json.dumps(
                [
                    {"charm_id": charm.charm_id, "name": charm.name, "with_clasp": charm.with_clasp}
                    for charm in line.charms
                ]
            ),
            price=round_money(price),
            preview_image=line.preview_image,
            is_completed=False,
            creator_id=line.creator_id,
            creator_name=line.creator_name,
            creation_id=line.creation_id,
            creation_name=line.creation_name,
        )
        for position, (line, price) in enumerate(zip(lines, prices, strict=True))
    ]


def build_order(
    *,
    order_id: str,
    order_number: str,
    customer_email: str,
    lines: list[CartLine],
    prices: list[float],
    subtotal: float,
    coupon_discount: float,
    points_used: int,
    points_value: float,
    payment_reference: str,
    delivery_method: DeliveryMethod,
    shipping_address: dict | None,
    coupon_code: str | None = None,
    coupon_id: str | None = None,
    user_id: str | None = None,
    now: datetime | None = None,
) -> Order:
    """Snapshot a checkout into an Order in its initial state.

    Amounts arrive unrounded and are rounded to cents here; the total is
    derived from the rounded components so the stored record always
    satisfies ``total = max(0, subtotal - discount - points value)``.
    """
    now = now or datetime.now(UTC)
    subtotal = round_money(subtotal)
    coupon_discount = round_money(coupon_discount)
    points_value = round_money(points_value)
    total_price = round_money(max(0.0, subtotal - coupon_discount - points_value))

    return Order(
        id=order_id,
        order_number=order_number,
        customer_email=customer_email,
        user_id=user_id,
        status=OrderStatus.SUBMITTED.value,
        items=build_items(lines, prices),
        subtotal=subtotal,
        coupon_discount=coupon_discount,
        points_used=points_used,
        points_value=points_value,
        total_price=total_price,
        payment_reference=payment_reference,
        delivery_method=delivery_method.value,
        shipping_address=ShippingAddress(**shipping_address) if shipping_address else None,
        coupon_code=coupon_code,
        coupon_id=coupon_id,
        created_at=now,
        updated_at=now,
    )
