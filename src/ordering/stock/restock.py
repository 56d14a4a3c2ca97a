"""Restocking — back-office command and handler."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Text

from ordering.cart.cart import ItemKind
from ordering.domain import ordering
from ordering.stock.ledger import ItemKey, set_stock_levels
from ordering.stock.stock import StockItem


@ordering.command(part_of="StockItem")
class SetStockLevels:
    levels = Text(required=True)  # JSON: list of {kind, item_id, quantity}


def parse_levels(levels: list[dict]) -> dict[ItemKey, int]:
    parsed = {}
    for position, level in enumerate(levels):
        try:
            kind = ItemKind(level.get("kind"))
        except ValueError:
            raise ValidationError({f"items[{position}].kind": [f"Unknown item kind {level.get('kind')}"]}) from None
        quantity = level.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
            raise ValidationError({f"items[{position}].quantity": ["must be a non-negative integer"]})
        parsed[ItemKey(kind, level["item_id"])] = quantity
    return parsed


@ordering.command_handler(part_of=StockItem)
class RestockHandler:
    @handle(SetStockLevels)
    def set_stock_levels(self, command):
        return set_stock_levels(parse_levels(json.loads(command.levels)))
