"""Deterministic line pricing.

Every piece starts at a base price, charms are priced in two tiers and each
charm fitted with a clasp adds a surcharge. Amounts stay unrounded floats
through a whole cart; ``round_money`` is applied only when a value is
persisted or displayed.
"""

from collections.abc import Iterable

from ordering.cart.cart import CartLine

BASE_PRICE = 9.90
CHARM_PRICE = 4.00
BULK_CHARM_PRICE = 2.50
CHARMS_AT_FULL_PRICE = 5
CLASP_SURCHARGE = 1.20


def charm_tier_price(charm_count: int) -> float:
    if charm_count <= CHARMS_AT_FULL_PRICE:
        return charm_count * CHARM_PRICE
    return CHARMS_AT_FULL_PRICE * CHARM_PRICE + (charm_count - CHARMS_AT_FULL_PRICE) * BULK_CHARM_PRICE


def clasp_surcharge(line: CartLine) -> float:
    return sum(1 for charm in line.charms if charm.with_clasp) * CLASP_SURCHARGE


def line_price(line: CartLine) -> float:
    return BASE_PRICE + charm_tier_price(len(line.charms)) + clasp_surcharge(line)


def cart_subtotal(lines: Iterable[CartLine]) -> float:
    return sum(line_price(line) for line in lines)


def round_money(amount: float) -> float:
    return round(amount, 2)


def order_total(subtotal: float, coupon_discount: float, points_value: float) -> float:
    """Total owed once discounts apply, derived from the cent-rounded components."""
    return round_money(max(0.0, round_money(subtotal) - round_money(coupon_discount) - round_money(points_value)))
