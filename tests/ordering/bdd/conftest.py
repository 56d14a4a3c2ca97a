"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def cart():
    return []


@pytest.fixture()
def outcome():
    """Container for the order placed or the error raised by a When step."""
    return {"order": None, "exc": None}


@pytest.fixture()
def attempt():
    """Run a When action, recording its result or the error it raised."""

    def _attempt(outcome, action):
        try:
            outcome["order"] = action()
            outcome["exc"] = None
        except Exception as exc:  # kept for Then steps
            outcome["exc"] = exc
        return outcome

    return _attempt


# ---------------------------------------------------------------------------
# Given steps: catalogue and accounts
# ---------------------------------------------------------------------------
@given(parsers.cfparse('{quantity:d} units of the {kind} "{item_id}" are in stock'))
def _(seed, quantity, kind, item_id):
    seed.stock(kind, item_id, quantity)


@given(parsers.cfparse('the buyer "{uid}" has {points:d} reward points'))
def _(seed, uid, points):
    seed.user(uid, reward_points=points, email=f"{uid}@example.com")


@given(parsers.cfparse('a {discount_type} coupon "{code}" worth {value:g}'))
def _(seed, discount_type, code, value):
    seed.coupon(code, discount_type, value)


@given(parsers.cfparse('the cart holds a {kind} "{model_id}" with charms "{charms}"'))
def _(cart, line, kind, model_id, charms):
    cart.append(line(model_id, kind, charms=[c.strip() for c in charms.split(",") if c.strip()]))


@given(parsers.cfparse('the cart holds a plain {kind} "{model_id}"'))
def _(cart, line, kind, model_id):
    cart.append(line(model_id, kind))


# ---------------------------------------------------------------------------
# Then steps: shared assertions
# ---------------------------------------------------------------------------
@then("the order is placed")
def _(outcome):
    assert outcome["exc"] is None, f"Unexpected error: {outcome['exc']!r}"
    assert outcome["order"] is not None


@then(parsers.cfparse("the request is rejected with {error_name}"))
def _(outcome, error_name):
    assert outcome["exc"] is not None, "Expected an error but none was raised"
    assert type(outcome["exc"]).__name__ == error_name


@then(parsers.cfparse('{quantity:d} units of the {kind} "{item_id}" remain in stock'))
def _(seed, quantity, kind, item_id):
    assert seed.quantity(kind, item_id) == quantity


@then(parsers.cfparse('the buyer "{uid}" has {points:d} reward points left'))
def _(seed, uid, points):
    assert seed.points(uid) == points


@then(parsers.cfparse("{count:d} orders are stored"))
def _(seed, count):
    assert len(seed.orders()) == count


@then(parsers.cfparse('the order status is "{status}"'))
def _(seed, outcome, status):
    assert seed.order(outcome["order"].id).status == status


@then(parsers.cfparse("the order total is {total:g}"))
def _(outcome, total):
    assert outcome["order"].total_price == pytest.approx(total)


@then(parsers.cfparse("{count:d} payments were refunded"))
def _(gateway, count):
    assert len(gateway.refunded_references) == count
