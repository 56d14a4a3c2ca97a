"""FastAPI routes for the Ordering domain — checkout, orders, coupons and stock."""

import json

from fastapi import APIRouter, Header

from identity.verifier import get_verifier
from identity.verifier.port import InvalidToken, VerifiedIdentity
from ordering import settings
from ordering.api.schemas import (
    AdminOrderResponse,
    ChangeStatusRequest,
    CouponResponse,
    CouponValidateRequest,
    ItemCompletionRequest,
    OrderLookupRequest,
    OrderLookupResponse,
    OrderPlacedResponse,
    OrderResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
    PlaceOrderRequest,
    QuoteRequest,
    QuoteResponse,
    RestockRequest,
    StatusResponse,
)
from ordering.checkout.service import CheckoutRequest, checkout_service
from ordering.errors import Forbidden, Unauthenticated
from ordering.order.lookup import find_order_by_number, list_orders, send_order_history
from ordering.order.order import Order
from ordering.order.status import change_order_status as change_status
from ordering.order.status import set_item_completion as mark_item_completion
from ordering.pricing.discounts import check_minimum_purchase, compute_discount, validate_coupon
from ordering.stock.restock import SetStockLevels
from ordering.utils.processing import process_now
from payments.gateway import get_gateway


# ---------------------------------------------------------------------------
# Identity helpers
# ---------------------------------------------------------------------------
def _verified_identity(authorization: str) -> VerifiedIdentity | None:
    """Verify a ``Bearer`` token for this request; None when no token was sent."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Malformed authorization header")
    try:
        return get_verifier().verify_token(token.strip())
    except InvalidToken as exc:
        raise Unauthenticated(str(exc)) from exc


def _require_admin(authorization: str) -> VerifiedIdentity:
    identity = _verified_identity(authorization)
    if identity is None:
        raise Unauthenticated("Authentication required")
    if identity.uid not in settings.ADMIN_UIDS:
        raise Forbidden("Back-office access required")
    return identity


def _redeeming_user(points_requested: int, authorization: str) -> str | None:
    identity = _verified_identity(authorization)
    if points_requested and identity is None:
        raise Unauthenticated("Sign in to redeem reward points")
    return identity.uid if identity else None


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(**order.to_dict())


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/quote", response_model=QuoteResponse)
async def quote_cart(body: QuoteRequest, authorization: str = Header(default="")) -> QuoteResponse:
    user_id = _redeeming_user(body.points_requested, authorization)
    quote = checkout_service().quote(
        [line.model_dump() for line in body.cart],
        coupon_code=body.coupon_code,
        points_requested=body.points_requested,
        user_id=user_id,
    )
    return QuoteResponse(**quote.to_dict())


@checkout_router.post("/payment-intent", status_code=201, response_model=PaymentIntentResponse)
async def create_payment_intent(
    body: PaymentIntentRequest, authorization: str = Header(default="")
) -> PaymentIntentResponse:
    user_id = _redeeming_user(body.points_requested, authorization)
    service = checkout_service()
    quote = service.quote(
        [line.model_dump() for line in body.cart],
        coupon_code=body.coupon_code,
        points_requested=body.points_requested,
        user_id=user_id,
    )
    intent = service.create_payment_intent(quote, body.customer_email)
    return PaymentIntentResponse(
        payment_reference=intent.payment_reference,
        amount=intent.amount,
        currency=intent.currency,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderPlacedResponse)
async def place_order(body: PlaceOrderRequest, authorization: str = Header(default="")) -> OrderPlacedResponse:
    user_id = _redeeming_user(body.points_requested, authorization)
    request = CheckoutRequest(
        cart=[line.model_dump() for line in body.cart],
        customer_email=body.customer_email,
        payment_reference=body.payment_reference,
        delivery_method=body.delivery_method,
        shipping_address=body.shipping_address.model_dump() if body.shipping_address else None,
        coupon_code=body.coupon_code,
        points_requested=body.points_requested,
        user_id=user_id,
        locale=body.locale,
    )
    order = checkout_service().place_order(request)
    return OrderPlacedResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_email=order.customer_email,
        total_price=order.total_price,
    )


@order_router.get("", response_model=list[AdminOrderResponse])
async def list_all_orders(authorization: str = Header(default="")) -> list[AdminOrderResponse]:
    _require_admin(authorization)
    return [AdminOrderResponse(**order) for order in list_orders()]


@order_router.post("/lookup", status_code=202, response_model=OrderLookupResponse)
async def mail_order_history(body: OrderLookupRequest) -> OrderLookupResponse:
    send_order_history(body.email, body.locale)
    return OrderLookupResponse()


@order_router.get("/{order_number}", response_model=OrderResponse)
async def track_order(order_number: str) -> OrderResponse:
    return _order_response(find_order_by_number(order_number))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def change_order_status(
    order_id: str, body: ChangeStatusRequest, authorization: str = Header(default="")
) -> OrderResponse:
    _require_admin(authorization)
    order = change_status(
        get_gateway(),
        order_id,
        body.status,
        carrier=body.shipping_carrier,
        tracking_number=body.tracking_number,
        cancellation_reason=body.cancellation_reason,
    )
    return _order_response(order)


@order_router.put("/{order_id}/items/{item_index}", response_model=OrderResponse)
async def set_item_completion(
    order_id: str, item_index: int, body: ItemCompletionRequest, authorization: str = Header(default="")
) -> OrderResponse:
    _require_admin(authorization)
    return _order_response(mark_item_completion(order_id, item_index, body.is_completed))


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("/validate", response_model=CouponResponse)
async def validate_coupon_code(body: CouponValidateRequest) -> CouponResponse:
    coupon = validate_coupon(body.code)
    discount = None
    if body.subtotal is not None:
        check_minimum_purchase(coupon, body.subtotal)
        discount = round(compute_discount(coupon, body.subtotal), 2)
    return CouponResponse(
        code=coupon.code,
        discount_type=coupon.discount_type.value,
        value=coupon.value,
        min_purchase=coupon.min_purchase,
        discount=discount,
    )


# ---------------------------------------------------------------------------
# Stock Router
# ---------------------------------------------------------------------------
stock_router = APIRouter(prefix="/stock", tags=["stock"])


@stock_router.post("/restock", response_model=StatusResponse)
async def restock(body: RestockRequest, authorization: str = Header(default="")) -> StatusResponse:
    _require_admin(authorization)
    levels = [level.model_dump() for level in body.items]
    process_now(SetStockLevels(levels=json.dumps(levels)))
    return StatusResponse()
