"""Checkout request and its up-front validation."""

from dataclasses import dataclass

from protean.exceptions import ValidationError

from ordering.order.order import DeliveryMethod, ShippingAddress


@dataclass(frozen=True)
class CheckoutRequest:
    cart: list
    customer_email: str
    payment_reference: str
    delivery_method: str = DeliveryMethod.HOME.value
    shipping_address: dict | None = None
    coupon_code: str | None = None
    points_requested: int = 0
    user_id: str | None = None
    locale: str | None = None


def validate_points_request(points_requested: int, user_id: str | None) -> None:
    if not isinstance(points_requested, int) or isinstance(points_requested, bool) or points_requested < 0:
        raise ValidationError({"points_requested": ["must be a non-negative integer"]})
    if points_requested and not user_id:
        raise ValidationError({"points_requested": ["Sign in to redeem reward points"]})


def validate_request(request: CheckoutRequest) -> DeliveryMethod:
    email = (request.customer_email or "").strip()
    if not email or "@" not in email:
        raise ValidationError({"customer_email": ["A valid email address is required"]})
    if not request.payment_reference:
        raise ValidationError({"payment_reference": ["is required"]})
    validate_points_request(request.points_requested, request.user_id)

    try:
        delivery_method = DeliveryMethod(request.delivery_method)
    except ValueError:
        raise ValidationError({"delivery_method": ["must be one of: home, pickup"]}) from None

    if delivery_method == DeliveryMethod.HOME:
        if not request.shipping_address:
            raise ValidationError({"shipping_address": ["A shipping address is required for home delivery"]})
        # Raises ValidationError for missing or unknown address fields
        ShippingAddress(**request.shipping_address)
    return delivery_method
