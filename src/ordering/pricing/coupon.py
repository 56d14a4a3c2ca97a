"""Coupon aggregate — a promotional code as configured in the back office.

Values are stored as entered; ``ordering.pricing.discounts`` decides at
checkout whether a record is usable.
"""

from protean.fields import Boolean, DateTime, Float, String

from ordering.domain import ordering


@ordering.aggregate
class Coupon:
    code = String(required=True, max_length=100)
    discount_type = String(max_length=20)
    value = Float()
    expires_at = DateTime()
    min_purchase = Float()
    is_active = Boolean(default=True)
