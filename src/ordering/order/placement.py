"""Order placement — command and handler.

The handler is the checkout unit of work. Preview uploads and the payment
intent happen before the command is sent, in ``CheckoutService``, so the
cart it carries already points at stored preview images.
"""

import json

from protean import handle
from protean.fields import Integer, String, Text

from ordering.checkout.request import CheckoutRequest
from ordering.checkout.unit import checkout_unit
from ordering.domain import ordering
from ordering.order.order import DeliveryMethod, Order


@ordering.command(part_of="Order")
class PlaceOrder:
    cart = Text(required=True)  # JSON: list of cart line dicts
    customer_email = String(required=True, max_length=255)
    payment_reference = String(required=True, max_length=255)
    delivery_method = String(max_length=20, default=DeliveryMethod.HOME.value)
    shipping_address = Text()  # JSON: address dict
    coupon_code = String(max_length=100)
    points_requested = Integer(default=0)
    user_id = String(max_length=255)
    locale = String(max_length=10)

    @classmethod
    def from_request(cls, request: CheckoutRequest) -> "PlaceOrder":
        return cls(
            cart=json.dumps(request.cart),
            customer_email=request.customer_email,
            payment_reference=request.payment_reference,
            delivery_method=request.delivery_method,
            shipping_address=json.dumps(request.shipping_address) if request.shipping_address else None,
            coupon_code=request.coupon_code,
            points_requested=request.points_requested,
            user_id=request.user_id,
            locale=request.locale,
        )


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        request = CheckoutRequest(
            cart=json.loads(command.cart),
            customer_email=command.customer_email,
            payment_reference=command.payment_reference,
            delivery_method=command.delivery_method or DeliveryMethod.HOME.value,
            shipping_address=json.loads(command.shipping_address) if command.shipping_address else None,
            coupon_code=command.coupon_code,
            points_requested=command.points_requested or 0,
            user_id=command.user_id,
            locale=command.locale,
        )
        return checkout_unit(request)
