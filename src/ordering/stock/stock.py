"""StockItem aggregate — the finite stock of one model or charm.

Identified by ``<kind>/<item id>`` so a necklace and a charm sharing a
catalogue id never share a counter. Quantities never go negative: checkout
validates every item of a cart before consuming any of them.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String

from ordering.cart.cart import ItemKind
from ordering.domain import ordering


def stock_id(kind: ItemKind, item_id: str) -> str:
    return f"{kind.value}/{item_id}"


@ordering.aggregate
class StockItem:
    kind = String(required=True, choices=ItemKind)
    item_id = String(required=True, max_length=255)
    name = String(max_length=255)
    quantity = Integer(default=0, min_value=0)
    last_ordered_at = DateTime()
    restocked_at = DateTime()

    @classmethod
    def open(cls, kind: ItemKind, item_id: str, quantity: int = 0, name: str | None = None) -> "StockItem":
        return cls(id=stock_id(kind, item_id), kind=kind.value, item_id=item_id, quantity=quantity, name=name)

    def consume(self, count: int, now: datetime | None = None) -> None:
        if count > self.quantity:
            raise ValidationError({"quantity": [f"Only {self.quantity} left of {self.id}"]})
        self.quantity -= count
        self.last_ordered_at = now or datetime.now(UTC)

    def restore(self, count: int) -> None:
        self.quantity += count

    def restock(self, quantity: int, now: datetime | None = None) -> None:
        if quantity < 0:
            raise ValidationError({"quantity": ["Stock quantity cannot be negative"]})
        self.quantity = quantity
        self.restocked_at = now or datetime.now(UTC)
