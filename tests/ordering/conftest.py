import pytest
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from notifications.outbox import Mail
from ordering.cart.cart import ItemKind
from ordering.checkout.payment import Payment
from ordering.checkout.service import CheckoutRequest, CheckoutService
from ordering.order.order import Order
from ordering.pricing.coupon import Coupon
from ordering.rewards.account import LoyaltyAccount
from ordering.rewards.creation import Creation
from ordering.stock.stock import StockItem, stock_id
from payments.gateway.port import FREE_ORDER_REFERENCE, payment_intent_id


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Seeding through the repositories
# ---------------------------------------------------------------------------
class Seeder:
    """Writes catalogue, account and coupon aggregates and reads them back."""

    def _add(self, aggregate):
        current_domain.repository_for(type(aggregate)).add(aggregate)
        return aggregate

    def _get(self, aggregate_cls, identifier):
        return current_domain.repository_for(aggregate_cls).get(identifier)

    def stock(self, kind: str, item_id: str, quantity: int) -> StockItem:
        return self._add(StockItem.open(ItemKind(kind), item_id, quantity))

    def user(self, uid: str, reward_points: int = 0, email: str | None = None, name: str | None = None):
        return self._add(LoyaltyAccount(id=uid, reward_points=reward_points, email=email, name=name))

    def coupon(self, code: str, discount_type: str = "percentage", value=10, **extra) -> str:
        coupon = self._add(Coupon(code=code, discount_type=discount_type, value=value, **extra))
        return str(coupon.id)

    def creation(self, creation_id: str, sales_count: int = 0, creator_id: str | None = None) -> Creation:
        return self._add(Creation(id=creation_id, sales_count=sales_count, creator_id=creator_id))

    def set_quantity(self, kind: str, item_id: str, quantity: int) -> None:
        item = self._get(StockItem, stock_id(ItemKind(kind), item_id))
        item.restock(quantity)
        self._add(item)

    def stock_cart(self, cart: list[dict], quantity: int = 10) -> None:
        """Stock every model and charm a cart uses."""
        items = {}
        for line in cart:
            items[(line["jewelry_type"], line["model_id"])] = None
            for charm in line.get("charms", []):
                items[("charms", charm["charm_id"])] = None
        for kind, item_id in items:
            self.stock(kind, item_id, quantity)

    def quantity(self, kind: str, item_id: str) -> int | None:
        try:
            return self._get(StockItem, stock_id(ItemKind(kind), item_id)).quantity
        except ObjectNotFoundError:
            return None

    def points(self, uid: str) -> int:
        return self._get(LoyaltyAccount, uid).balance

    def sales(self, creation_id: str) -> int:
        return self._get(Creation, creation_id).sales_count

    def order(self, order_id) -> Order:
        return self._get(Order, str(order_id))

    def orders(self) -> list[Order]:
        return current_domain.repository_for(Order)._dao.query.all().items

    def delete(self, aggregate_cls, identifier) -> None:
        repo = current_domain.repository_for(aggregate_cls)
        repo._dao.delete(repo.get(identifier))

    def payment(self, payment_reference: str) -> Payment:
        return self._get(Payment, payment_intent_id(payment_reference))

    def mail(self) -> list[Mail]:
        return current_domain.repository_for(Mail)._dao.query.order_by("created_at").all().items

    def mail_to(self, address: str) -> list[Mail]:
        return [mail for mail in self.mail() if address in mail.recipients]


@pytest.fixture()
def seed():
    return Seeder()


# ---------------------------------------------------------------------------
# Cart and checkout builders
# ---------------------------------------------------------------------------
def make_line(model_id="nk-chain", jewelry_type="necklace", charms=(), **extra) -> dict:
    """A cart line dict. ``charms`` holds charm ids or ``(charm_id, with_clasp)`` pairs."""
    placed = []
    for charm in charms:
        charm_id, with_clasp = charm if isinstance(charm, tuple) else (charm, False)
        placed.append({"charm_id": charm_id, "name": charm_id.title(), "with_clasp": with_clasp})
    return {
        "model_id": model_id,
        "jewelry_type": jewelry_type,
        "model_name": model_id.title(),
        "charms": placed,
        **extra,
    }


@pytest.fixture()
def line():
    return make_line


@pytest.fixture()
def address():
    return {
        "name": "Camille Martin",
        "address_line1": "12 rue des Orfèvres",
        "address_line2": None,
        "city": "Lyon",
        "postal_code": "69002",
        "country": "France",
    }


@pytest.fixture()
def service(gateway, blob_storage):
    return CheckoutService(gateway, blob_storage)


@pytest.fixture()
def pay(service, gateway):
    """Quote a cart and open a payment for it, as the storefront does before checkout.

    Returns the payment reference the client confirmed.
    """

    def _pay(cart, coupon_code=None, points_requested=0, user_id=None, payer_email="camille@example.com"):
        quote = service.quote(cart, coupon_code=coupon_code, points_requested=points_requested, user_id=user_id)
        intent = service.create_payment_intent(quote, payer_email)
        gateway.calls.clear()
        return intent.payment_reference

    return _pay


@pytest.fixture()
def place(service, address, pay):
    """Place an order with sensible defaults; keyword arguments override them.

    Without an explicit ``payment_reference`` the cart is paid for first.
    """

    def _place(cart, **overrides):
        fields = {
            "cart": cart,
            "customer_email": "camille@example.com",
            "delivery_method": "home",
            "shipping_address": address,
        }
        fields.update(overrides)
        if "payment_reference" not in fields:
            fields["payment_reference"] = pay(
                cart,
                coupon_code=fields.get("coupon_code"),
                points_requested=fields.get("points_requested", 0),
                user_id=fields.get("user_id"),
            )
        return service.place_order(CheckoutRequest(**fields))

    return _place


@pytest.fixture()
def free_reference():
    return FREE_ORDER_REFERENCE
