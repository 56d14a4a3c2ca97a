"""Coupon validation and loyalty point conversion.

Coupons are looked up and checked (existence, active flag, expiry, stored
value) before checkout writes anything; an expired coupon never reaches the
unit of work. Loyalty points convert at a fixed rate and can never push a
total below zero. The balance itself is re-read and checked inside the
checkout unit of work, since it can change concurrently.
"""

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from ordering.errors import (
    CouponBelowMinimum,
    CouponExpired,
    CouponInactive,
    CouponNotFound,
    CouponValueInvalid,
)
from ordering.pricing.coupon import Coupon

logger = structlog.get_logger(__name__)

# 10 points = 1.00
POINTS_PER_CURRENCY_UNIT = 10


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class AppliedCoupon:
    id: str
    code: str
    discount_type: DiscountType
    value: float
    expires_at: datetime | None = None
    min_purchase: float | None = None
    is_active: bool = True


@dataclass(frozen=True)
class PointsSpend:
    points: int
    value: float


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def applied_coupon(record: Coupon) -> AppliedCoupon:
    """Check a stored coupon's configuration, rejecting unusable values."""
    code = normalize_code(record.code)

    try:
        discount_type = DiscountType(record.discount_type)
    except ValueError:
        raise CouponValueInvalid(code) from None

    value = record.value
    if value is None or math.isnan(value) or value < 0:
        raise CouponValueInvalid(code)

    return AppliedCoupon(
        id=str(record.id),
        code=code,
        discount_type=discount_type,
        value=float(value),
        expires_at=record.expires_at,
        min_purchase=record.min_purchase,
        is_active=record.is_active is not False,
    )


def find_coupon(code: str) -> Coupon | None:
    normalized = normalize_code(code)
    if not normalized:
        return None
    repo = current_domain.repository_for(Coupon)
    matches = repo._dao.query.filter(code=normalized).all().items
    return matches[0] if matches else None


def validate_coupon(code: str, now: datetime | None = None) -> AppliedCoupon:
    """Look up a coupon by normalized code and check it can be used right now."""
    normalized = normalize_code(code)
    record = find_coupon(normalized)
    if record is None:
        logger.info("Coupon not found", coupon_code=normalized)
        raise CouponNotFound(normalized)

    coupon = applied_coupon(record)

    if not coupon.is_active:
        raise CouponInactive(normalized)

    now = now or datetime.now(UTC)
    if coupon.expires_at is not None and coupon.expires_at < now:
        raise CouponExpired(normalized)

    return coupon


def check_minimum_purchase(coupon: AppliedCoupon, subtotal: float) -> None:
    if coupon.min_purchase is not None and subtotal < coupon.min_purchase:
        raise CouponBelowMinimum(coupon.code, coupon.min_purchase)


def compute_discount(coupon: AppliedCoupon | None, subtotal: float) -> float:
    """Discount granted by ``coupon``, never more than the subtotal itself."""
    if coupon is None or subtotal <= 0:
        return 0.0
    if coupon.discount_type is DiscountType.PERCENTAGE:
        amount = subtotal * coupon.value / 100
    else:
        amount = coupon.value
    return max(0.0, min(amount, subtotal))


def max_points_for(total: float) -> int:
    # round() first so 2.3 * 10 == 22.999... still yields 23
    return math.floor(round(max(total, 0.0) * POINTS_PER_CURRENCY_UNIT, 6))


def resolve_points_spend(requested_points: int, balance: int, total_after_coupon: float) -> PointsSpend:
    """Points actually spent and their monetary value for a requested redemption."""
    points = max(0, min(requested_points, balance, max_points_for(total_after_coupon)))
    return PointsSpend(points=points, value=points / POINTS_PER_CURRENCY_UNIT)


def points_value(points: int) -> float:
    return points / POINTS_PER_CURRENCY_UNIT
