"""Order aggregate — the immutable record of a completed checkout.

An Order is created exactly once, by the checkout transaction, and is never
deleted. Afterwards only its status, shipping carrier/tracking fields,
per-item completion flags and cancellation metadata may change.

State Machine:
    commandée → en cours de préparation → expédiée → livrée
    any non-terminal state → annulée
    livrée and annulée are terminal; a transition to the current state is
    rejected rather than ignored.

Cancellation is two-phase. ``request_cancellation`` flags the order
``cancellation_pending`` before the payment is refunded; while the flag is
set the fulfilment path is closed, so the order cannot slip into a terminal
state between the refund and the compensating write.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from payments.gateway.port import is_chargeable


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    SUBMITTED = "commandée"
    PREPARING = "en cours de préparation"
    SHIPPED = "expédiée"
    DELIVERED = "livrée"
    CANCELLED = "annulée"


class DeliveryMethod(Enum):
    HOME = "home"
    PICKUP = "pickup"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.SUBMITTED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

TERMINAL_STATES = {status for status, targets in _VALID_TRANSITIONS.items() if not targets}

# Persisted amounts are rounded to cents, so the total may drift by float noise only
_TOTAL_TOLERANCE = 0.005


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where a home-delivered order is shipped, captured at checkout time."""

    name = String(required=True, max_length=255)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """Snapshot of one cart line at purchase time.

    Names and price are copied so later catalogue edits never change what
    the customer bought. ``charms`` holds a JSON list of
    ``{charm_id, name, with_clasp}``.
    """

    position = Integer(required=True, min_value=0)
    model_id = String(required=True, max_length=255)
    model_name = String(max_length=255)
    jewelry_type_id = String(required=True, max_length=50)
    jewelry_type_name = String(max_length=255)
    charms = Text()
    price = Float(required=True, min_value=0.0)
    preview_image = String(max_length=1000)
    is_completed = Boolean(default=False)
    creator_id = String(max_length=255)
    creator_name = String(max_length=255)
    creation_id = String(max_length=255)
    creation_name = String(max_length=255)

    @property
    def charm_list(self) -> list[dict]:
        return json.loads(self.charms) if self.charms else []

    def to_dict(self) -> dict:
        return {
            "model_id": self.model_id,
            "model_name": self.model_name,
            "jewelry_type_id": self.jewelry_type_id,
            "jewelry_type_name": self.jewelry_type_name,
            "charms": self.charm_list,
            "price": self.price,
            "preview_image": self.preview_image,
            "is_completed": bool(self.is_completed),
            "creator_id": self.creator_id,
            "creator_name": self.creator_name,
            "creation_id": self.creation_id,
            "creation_name": self.creation_name,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    customer_email = String(required=True, max_length=255)
    user_id = String(max_length=255)
    status = String(choices=OrderStatus, default=OrderStatus.SUBMITTED.value)
    items = HasMany(OrderItem)
    subtotal = Float(required=True, min_value=0.0)
    coupon_discount = Float(default=0.0)
    points_used = Integer(default=0)
    points_value = Float(default=0.0)
    total_price = Float(required=True, min_value=0.0)
    payment_reference = String(required=True, max_length=255)
    delivery_method = String(choices=DeliveryMethod, default=DeliveryMethod.HOME.value)
    shipping_address = ValueObject(ShippingAddress)
    coupon_code = String(max_length=100)
    coupon_id = String(max_length=255)
    shipping_carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    cancellation_reason = String(max_length=500)
    refund_reference = String(max_length=255)
    cancellation_pending = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_its_components(self):
        expected = max(0.0, (self.subtotal or 0.0) - (self.coupon_discount or 0.0) - (self.points_value or 0.0))
        if abs((self.total_price or 0.0) - expected) > _TOTAL_TOLERANCE:
            raise ValidationError(
                {"total_price": [f"Total {self.total_price} does not match subtotal minus discounts ({expected:.2f})"]}
            )

    @invariant.post
    def home_delivery_requires_an_address(self):
        if self.delivery_method == DeliveryMethod.HOME.value and self.shipping_address is None:
            raise ValidationError({"shipping_address": ["A shipping address is required for home delivery"]})

    @invariant.post
    def shipped_orders_must_be_trackable(self):
        if self.status == OrderStatus.SHIPPED.value and not (self.shipping_carrier and self.tracking_number):
            raise ValidationError({"tracking_number": ["Shipped orders need a carrier and a tracking number"]})

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATES

    @property
    def was_paid(self) -> bool:
        return is_chargeable(self.payment_reference)

    def ordered_items(self) -> list[OrderItem]:
        return sorted(self.items, key=lambda item: item.position)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus):
        current = self.current_status
        if target_status == current:
            raise ValidationError({"status": [f"Order is already {current.value}"]})
        if current in TERMINAL_STATES:
            raise ValidationError({"status": [f"Order is {current.value} and can no longer change"]})
        if target_status not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def advance_to(self, target_status: OrderStatus, carrier: str | None = None, tracking_number: str | None = None):
        """Move along the fulfilment path. Cancellation goes through ``cancel``."""
        if target_status == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Use cancellation to cancel an order"]})
        if self.cancellation_pending:
            raise ValidationError({"status": ["Order is being cancelled and can no longer change"]})
        self._assert_can_transition(target_status)

        if target_status == OrderStatus.SHIPPED:
            if not carrier or not tracking_number:
                raise ValidationError({"tracking_number": ["Carrier and tracking number are required to ship"]})
            self.shipping_carrier = carrier
            self.tracking_number = tracking_number

        self.status = target_status.value
        self.updated_at = datetime.now(UTC)

    def assert_can_cancel(self, reason: str | None):
        self._assert_can_transition(OrderStatus.CANCELLED)
        if not reason or not reason.strip():
            raise ValidationError({"cancellation_reason": ["A cancellation reason is required"]})

    def request_cancellation(self, reason: str | None):
        """Close the fulfilment path ahead of the refund. Re-requesting resumes it."""
        self.assert_can_cancel(reason)
        self.cancellation_pending = True
        self.updated_at = datetime.now(UTC)

    def abandon_cancellation(self):
        if self.cancellation_pending and not self.refund_reference:
            self.cancellation_pending = False
            self.updated_at = datetime.now(UTC)

    def record_refund(self, refund_reference: str):
        if not self.refund_reference:
            self.refund_reference = refund_reference
            self.updated_at = datetime.now(UTC)

    def cancel(self, reason: str, refund_reference: str | None = None):
        self.assert_can_cancel(reason)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason.strip()
        self.refund_reference = refund_reference or self.refund_reference
        self.cancellation_pending = False
        self.updated_at = datetime.now(UTC)

    def set_item_completion(self, index: int, is_completed: bool) -> OrderItem:
        if self.current_status == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Items of a cancelled order cannot be updated"]})
        items = self.ordered_items()
        if index < 0 or index >= len(items):
            raise ValidationError({"item_index": [f"Order has no item at index {index}"]})
        item = items[index]
        item.is_completed = is_completed
        self.updated_at = datetime.now(UTC)
        return item


    # -------------------------------------------------------------------
    # Representation
    # -------------------------------------------------------------------
    def to_dict(self) -> dict:
        address = self.shipping_address
        return {
            "id": str(self.id),
            "order_number": self.order_number,
            "customer_email": self.customer_email,
            "user_id": self.user_id,
            "status": self.status,
            "items": [item.to_dict() for item in self.ordered_items()],
            "subtotal": self.subtotal,
            "coupon_discount": self.coupon_discount,
            "points_used": self.points_used,
            "points_value": self.points_value,
            "total_price": self.total_price,
            "payment_reference": self.payment_reference,
            "delivery_method": self.delivery_method,
            "shipping_address": (
                {
                    "name": address.name,
                    "address_line1": address.address_line1,
                    "address_line2": address.address_line2,
                    "city": address.city,
                    "postal_code": address.postal_code,
                    "country": address.country,
                }
                if address is not None
                else None
            ),
            "coupon_code": self.coupon_code,
            "coupon_id": self.coupon_id,
            "shipping_carrier": self.shipping_carrier,
            "tracking_number": self.tracking_number,
            "cancellation_reason": self.cancellation_reason,
            "refund_reference": self.refund_reference,
            "cancellation_pending": bool(self.cancellation_pending),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
