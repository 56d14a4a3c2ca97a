"""Error taxonomy of the order engine.

Malformed requests raise Protean's ``ValidationError`` and missing records
raise ``ObjectNotFoundError``; everything specific to ordering derives from
``OrderingError`` and knows how to describe itself to an API client.
"""

__all__ = [
    "OrderingError",
    "StockUnavailable",
    "InsufficientPoints",
    "CouponInvalid",
    "CouponNotFound",
    "CouponInactive",
    "CouponExpired",
    "CouponValueInvalid",
    "CouponBelowMinimum",
    "PaymentError",
    "Unauthenticated",
    "PreviewUploadFailed",
    "Forbidden",
    "TransactionConflict",
    "OrderNumberExhausted",
]


class OrderingError(Exception):
    code = "ORDERING_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class StockUnavailable(OrderingError):
    """One or more cart items cannot be covered by current stock."""

    code = "STOCK_UNAVAILABLE"

    def __init__(self, unavailable_model_ids: list[str], unavailable_charm_ids: list[str]) -> None:
        self.unavailable_model_ids = sorted(unavailable_model_ids)
        self.unavailable_charm_ids = sorted(unavailable_charm_ids)
        super().__init__("Some items in your cart are no longer in stock")

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "unavailable_model_ids": self.unavailable_model_ids,
            "unavailable_charm_ids": self.unavailable_charm_ids,
        }


class InsufficientPoints(OrderingError):
    code = "INSUFFICIENT_POINTS"

    def __init__(self, requested: int, balance: int) -> None:
        self.requested = requested
        self.balance = balance
        super().__init__(f"Insufficient reward points: {balance} available, {requested} requested")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "requested": self.requested, "balance": self.balance}


class CouponInvalid(OrderingError):
    code = "COUPON_INVALID"

    def __init__(self, coupon_code: str, message: str) -> None:
        self.coupon_code = coupon_code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "coupon_code": self.coupon_code}


class CouponNotFound(CouponInvalid):
    code = "COUPON_NOT_FOUND"

    def __init__(self, coupon_code: str) -> None:
        super().__init__(coupon_code, f"Coupon {coupon_code} is not valid")


class CouponInactive(CouponInvalid):
    code = "COUPON_INACTIVE"

    def __init__(self, coupon_code: str) -> None:
        super().__init__(coupon_code, f"Coupon {coupon_code} is no longer active")


class CouponExpired(CouponInvalid):
    code = "COUPON_EXPIRED"

    def __init__(self, coupon_code: str) -> None:
        super().__init__(coupon_code, f"Coupon {coupon_code} has expired")


class CouponValueInvalid(CouponInvalid):
    code = "COUPON_VALUE_INVALID"

    def __init__(self, coupon_code: str) -> None:
        super().__init__(coupon_code, f"Coupon {coupon_code} is misconfigured")


class CouponBelowMinimum(CouponInvalid):
    code = "COUPON_BELOW_MINIMUM"

    def __init__(self, coupon_code: str, min_purchase: float) -> None:
        self.min_purchase = min_purchase
        super().__init__(coupon_code, f"Coupon {coupon_code} requires a minimum purchase of {min_purchase:.2f}")


class PaymentError(OrderingError):
    """The payment processor rejected a charge or a refund."""

    code = "PAYMENT_ERROR"


class Unauthenticated(OrderingError):
    code = "UNAUTHENTICATED"


class PreviewUploadFailed(OrderingError):
    code = "PREVIEW_UPLOAD_FAILED"


class Forbidden(OrderingError):
    code = "FORBIDDEN"


class TransactionConflict(OrderingError):
    """Version retries were exhausted without a consistent read set."""

    code = "TRANSACTION_CONFLICT"

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Transaction could not be committed after {attempts} attempts")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "attempts": self.attempts}


class OrderNumberExhausted(OrderingError):
    """No free order number could be drawn within the attempt budget."""

    code = "ORDER_NUMBER_EXHAUSTED"
