"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CharmSchema(BaseModel):
    charm_id: str
    name: str = ""
    with_clasp: bool = False


class CartLineSchema(BaseModel):
    line_id: str | None = None
    model_id: str
    jewelry_type: str
    model_name: str = ""
    jewelry_type_name: str = ""
    charms: list[CharmSchema] = Field(default_factory=list)
    preview_image: str = ""
    creator_id: str | None = None
    creator_name: str | None = None
    creation_id: str | None = None
    creation_name: str | None = None


class ShippingAddressSchema(BaseModel):
    name: str
    address_line1: str
    address_line2: str | None = None
    city: str
    postal_code: str
    country: str


class OrderItemSchema(BaseModel):
    model_id: str
    model_name: str | None = None
    jewelry_type_id: str
    jewelry_type_name: str | None = None
    charms: list[CharmSchema] = Field(default_factory=list)
    price: float
    preview_image: str | None = None
    is_completed: bool = False
    creator_id: str | None = None
    creation_id: str | None = None
    creation_name: str | None = None


class MailLogSchema(BaseModel):
    id: str
    to: list[str]
    subject: str
    delivery: dict | None = None


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class QuoteRequest(BaseModel):
    cart: list[CartLineSchema]
    coupon_code: str | None = None
    points_requested: int = Field(default=0, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "cart": [
                        {
                            "model_id": "nk-chain-01",
                            "jewelry_type": "necklace",
                            "charms": [{"charm_id": "ch-moon"}, {"charm_id": "ch-star", "with_clasp": True}],
                        }
                    ],
                    "coupon_code": "BIENVENUE10",
                }
            ]
        }
    }


class QuoteResponse(BaseModel):
    line_prices: list[float]
    subtotal: float
    coupon_code: str | None = None
    coupon_discount: float
    points_used: int
    points_value: float
    total: float


class PaymentIntentRequest(QuoteRequest):
    customer_email: str


class PaymentIntentResponse(BaseModel):
    payment_reference: str
    amount: float
    currency: str


class PlaceOrderRequest(BaseModel):
    cart: list[CartLineSchema]
    customer_email: str
    payment_reference: str
    delivery_method: str = "home"
    shipping_address: ShippingAddressSchema | None = None
    coupon_code: str | None = None
    points_requested: int = Field(default=0, ge=0)
    locale: str | None = None


class OrderPlacedResponse(BaseModel):
    order_id: str
    order_number: str
    customer_email: str
    total_price: float


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderResponse(BaseModel):
    id: str
    order_number: str
    status: str
    customer_email: str
    items: list[OrderItemSchema]
    subtotal: float
    coupon_discount: float = 0.0
    points_used: int = 0
    points_value: float = 0.0
    total_price: float
    delivery_method: str
    shipping_address: ShippingAddressSchema | None = None
    coupon_code: str | None = None
    shipping_carrier: str | None = None
    tracking_number: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None


class AdminOrderResponse(OrderResponse):
    payment_reference: str
    refund_reference: str | None = None
    mail_history: list[MailLogSchema] = Field(default_factory=list)


class OrderLookupRequest(BaseModel):
    email: str
    locale: str | None = None


class OrderLookupResponse(BaseModel):
    status: str = "sent"


class ChangeStatusRequest(BaseModel):
    status: str
    shipping_carrier: str | None = None
    tracking_number: str | None = None
    cancellation_reason: str | None = None


class ItemCompletionRequest(BaseModel):
    is_completed: bool


# ---------------------------------------------------------------------------
# Coupons and stock
# ---------------------------------------------------------------------------
class CouponValidateRequest(BaseModel):
    code: str
    subtotal: float | None = Field(default=None, ge=0)


class CouponResponse(BaseModel):
    code: str
    discount_type: str
    value: float
    min_purchase: float | None = None
    discount: float | None = None


class StockLevelSchema(BaseModel):
    kind: str
    item_id: str
    quantity: int = Field(ge=0)


class RestockRequest(BaseModel):
    items: list[StockLevelSchema]


class StatusResponse(BaseModel):
    status: str = "ok"
