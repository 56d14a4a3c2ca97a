"""Checkout — turns a priced cart into a persisted order.

Everything with external side effects happens outside the unit of work:
coupon validation, preview image uploads and payment intent creation run
before it, and the refund of a payment whose order could not be persisted
runs after it. The unit itself is the ``PlaceOrder`` handler
(see ``ordering.checkout.unit``), which claims the payment together with
the order so one payment can never back two orders.
"""

import base64
import binascii
from dataclasses import dataclass, field, replace
from uuid import uuid4

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering import settings
from ordering.cart.cart import parse_cart
from ordering.checkout.payment import CompletePaymentRefund, RecordPaymentIntent, ReopenPayment, StartPaymentRefund
from ordering.checkout.request import CheckoutRequest, validate_points_request, validate_request
from ordering.errors import InsufficientPoints, PaymentError, PreviewUploadFailed
from ordering.order.order import Order
from ordering.order.placement import PlaceOrder
from ordering.pricing.calculator import line_price, order_total, round_money
from ordering.pricing.discounts import (
    AppliedCoupon,
    PointsSpend,
    check_minimum_purchase,
    compute_discount,
    resolve_points_spend,
    validate_coupon,
)
from ordering.rewards.accrual import load_account
from ordering.utils.processing import process_now
from payments.gateway import get_gateway
from payments.gateway.port import FREE_ORDER_REFERENCE, PaymentGateway, is_chargeable, payment_intent_id
from storage.blob import get_blob_storage
from storage.blob.port import BlobStorage

__all__ = ["CheckoutRequest", "CheckoutService", "PaymentIntent", "Quote", "checkout_service"]

logger = structlog.get_logger(__name__)

PREVIEW_FOLDER = "order-previews"


@dataclass(frozen=True)
class Quote:
    line_prices: list[float]
    subtotal: float
    coupon: AppliedCoupon | None
    coupon_discount: float
    points: PointsSpend
    total: float

    @property
    def is_free(self) -> bool:
        return self.total <= 0

    def to_dict(self) -> dict:
        return {
            "line_prices": [round_money(price) for price in self.line_prices],
            "subtotal": round_money(self.subtotal),
            "coupon_code": self.coupon.code if self.coupon else None,
            "coupon_discount": round_money(self.coupon_discount),
            "points_used": self.points.points,
            "points_value": round_money(self.points.value),
            "total": self.total,
        }


@dataclass(frozen=True)
class PaymentIntent:
    payment_reference: str
    amount: float
    currency: str = field(default_factory=lambda: settings.PAYMENT_CURRENCY)


class CheckoutService:
    def __init__(self, gateway: PaymentGateway, blob_storage: BlobStorage) -> None:
        self.gateway = gateway
        self.blob_storage = blob_storage

    # -------------------------------------------------------------------
    # Quote and payment intent (before checkout)
    # -------------------------------------------------------------------
    def quote(
        self,
        cart: list,
        coupon_code: str | None = None,
        points_requested: int = 0,
        user_id: str | None = None,
    ) -> Quote:
        """Price a cart against the current coupon and points balance.

        The balance read here is advisory; checkout re-reads it inside its
        unit of work.
        """
        lines = parse_cart(cart)
        validate_points_request(points_requested, user_id)

        prices = [line_price(line) for line in lines]
        subtotal = sum(prices)
        coupon = self._resolve_coupon(coupon_code, subtotal)
        coupon_discount = compute_discount(coupon, subtotal)

        points = PointsSpend(points=0, value=0.0)
        if points_requested:
            account = load_account(user_id)
            if account is None:
                raise ObjectNotFoundError({"_entity": f"User {user_id} not found"})
            if account.balance < points_requested:
                raise InsufficientPoints(points_requested, account.balance)
            points = resolve_points_spend(points_requested, account.balance, subtotal - coupon_discount)

        return Quote(
            line_prices=prices,
            subtotal=subtotal,
            coupon=coupon,
            coupon_discount=coupon_discount,
            points=points,
            total=order_total(subtotal, coupon_discount, points.value),
        )

    def create_payment_intent(self, quote: Quote, payer_email: str) -> PaymentIntent:
        """Open a payment for a quoted total. Free orders never reach the gateway."""
        if quote.is_free:
            return PaymentIntent(payment_reference=FREE_ORDER_REFERENCE, amount=0.0)

        result = self.gateway.create_payment_intent(
            amount=quote.total,
            currency=settings.PAYMENT_CURRENCY,
            payer_email=payer_email,
        )
        if not result.success:
            logger.warning("Payment intent rejected", reason=result.failure_reason)
            raise PaymentError(result.failure_reason or "Payment could not be initiated")

        process_now(
            RecordPaymentIntent(
                payment_id=result.intent_id,
                reference=result.client_secret,
                amount=quote.total,
                currency=settings.PAYMENT_CURRENCY,
                payer_email=payer_email,
            )
        )
        logger.info("Payment intent created", intent_id=result.intent_id, amount=quote.total)
        return PaymentIntent(payment_reference=result.client_secret, amount=quote.total)

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def place_order(self, request: CheckoutRequest) -> Order:
        """Validate, then persist the order atomically.

        Raises:
            ValidationError: malformed request, before any write.
            CouponInvalid: unusable coupon, before any write.
            StockUnavailable: itemized; nothing written.
            InsufficientPoints: balance below the requested spend; nothing written.
            PaymentError: unknown, already used or mismatched payment; nothing written.
            TransactionConflict: retries exhausted; nothing written.

        The payment behind ``request.payment_reference`` was captured by the
        client before checkout, so a failure refunds it before re-raising,
        unless an order already owns it.
        """
        try:
            order = self._place_order(request)
        except Exception:
            if is_chargeable(request.payment_reference):
                self._refund_unfulfilled_payment(request.payment_reference)
            raise

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            total_price=order.total_price,
            items=len(order.items),
        )
        return order

    def _place_order(self, request: CheckoutRequest) -> Order:
        lines = parse_cart(request.cart)
        validate_request(request)

        subtotal = sum(line_price(line) for line in lines)
        self._resolve_coupon(request.coupon_code, subtotal)
        cart = self._upload_previews(request.cart, lines)

        return process_now(PlaceOrder.from_request(replace(request, cart=cart)))

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _resolve_coupon(self, coupon_code: str | None, subtotal: float) -> AppliedCoupon | None:
        if not coupon_code or not coupon_code.strip():
            return None
        coupon = validate_coupon(coupon_code)
        check_minimum_purchase(coupon, subtotal)
        return coupon

    def _upload_previews(self, cart: list[dict], lines) -> list[dict]:
        """Move inline ``data:`` previews to blob storage, keeping only their URL."""
        uploaded = []
        for raw, line in zip(cart, lines, strict=True):
            if not line.preview_image.startswith("data:"):
                uploaded.append(raw)
                continue
            try:
                header, encoded = line.preview_image.split(",", 1)
                data = base64.b64decode(encoded) if ";base64" in header else encoded.encode()
                extension = header[len("data:") :].split(";")[0].split("/")[-1] or "png"
                url = self.blob_storage.upload(f"{PREVIEW_FOLDER}/{uuid4().hex}.{extension}", data)
            except (ValueError, binascii.Error) as exc:
                raise ValidationError({"preview_image": [f"Invalid preview image for line {line.line_id}"]}) from exc
            except OSError as exc:
                logger.error("Preview upload failed", line_id=line.line_id, error=str(exc))
                raise PreviewUploadFailed("Preview image could not be stored") from exc
            uploaded.append({**raw, "preview_image": url})
        return uploaded

    def _refund_unfulfilled_payment(self, payment_reference: str) -> None:
        intent_id = payment_intent_id(payment_reference)
        if not process_now(StartPaymentRefund(payment_id=intent_id)):
            logger.warning("Checkout failed on an unknown or already used payment, not refunded", intent_id=intent_id)
            return

        result = self.gateway.refund(payment_reference, idempotency_key=f"checkout-{intent_id}")
        if result.success:
            process_now(CompletePaymentRefund(payment_id=intent_id, refund_reference=result.gateway_refund_id))
            logger.warning("Checkout failed after payment, refunded", intent_id=intent_id)
        else:
            process_now(ReopenPayment(payment_id=intent_id))
            # Leaves a paid intent without an order; needs manual reconciliation
            logger.error(
                "Checkout failed after payment and the refund was rejected",
                intent_id=intent_id,
                reason=result.failure_reason,
            )


def checkout_service() -> CheckoutService:
    return CheckoutService(get_gateway(), get_blob_storage())
