"""Stock ledger — the shared, finite inventory of models and charms.

Each stocked item is a ``StockItem`` aggregate with a non-negative
``quantity``. Checkout consumes stock in three strictly ordered phases inside
its unit of work:

1. ``aggregate_demand`` folds the whole cart into one demand per item key, so
   a charm placed on three different pieces is read and written once.
2. ``read_stock`` loads each key exactly once.
3. ``find_shortages`` validates every key before anything is written; any
   missing record or insufficient quantity aborts the unit with an itemized
   ``StockUnavailable``. Only when all keys pass does ``decrement_stock``
   write the new quantities.

The same aggregation drives ``restore_stock`` when an order is cancelled.
Every function here is safe to re-run when a version conflict retries the
unit of work.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.cart.cart import CartLine, ItemKind
from ordering.errors import StockUnavailable
from ordering.stock.stock import StockItem, stock_id

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ItemKey:
    kind: ItemKind
    item_id: str

    @property
    def stock_id(self) -> str:
        return stock_id(self.kind, self.item_id)

    def __str__(self) -> str:
        return self.stock_id


@dataclass(frozen=True)
class Demand:
    key: ItemKey
    count: int
    name: str = ""


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------
def _accumulate(demand: dict[ItemKey, Demand], key: ItemKey, name: str) -> None:
    current = demand.get(key)
    if current is None:
        demand[key] = Demand(key=key, count=1, name=name)
    else:
        demand[key] = Demand(key=key, count=current.count + 1, name=current.name or name)


def aggregate_demand(lines: Iterable[CartLine]) -> dict[ItemKey, Demand]:
    """Fold cart lines into one demand entry per distinct stocked item."""
    demand: dict[ItemKey, Demand] = {}
    for line in lines:
        _accumulate(demand, ItemKey(line.jewelry_type, line.model_id), line.model_name)
        for charm in line.charms:
            _accumulate(demand, ItemKey(ItemKind.CHARM, charm.charm_id), charm.name)
    return demand


def aggregate_order_items(items: Iterable[dict]) -> dict[ItemKey, Demand]:
    """Same aggregation over persisted order items, for restocking."""
    demand: dict[ItemKey, Demand] = {}
    for item in items:
        _accumulate(demand, ItemKey(ItemKind(item["jewelry_type_id"]), item["model_id"]), item.get("model_name") or "")
        for charm in item.get("charms", []):
            _accumulate(demand, ItemKey(ItemKind.CHARM, charm["charm_id"]), charm.get("name") or "")
    return demand


# ---------------------------------------------------------------------------
# Read / validate / write
# ---------------------------------------------------------------------------
def get_stock(key: ItemKey) -> StockItem | None:
    try:
        return current_domain.repository_for(StockItem).get(key.stock_id)
    except ObjectNotFoundError:
        return None


def read_stock(demand: dict[ItemKey, Demand]) -> dict[ItemKey, StockItem | None]:
    return {key: get_stock(key) for key in demand}


def find_shortages(
    demand: dict[ItemKey, Demand],
    records: dict[ItemKey, StockItem | None],
) -> StockUnavailable | None:
    """Return an itemized StockUnavailable for every key that cannot be served."""
    unavailable_models: set[str] = set()
    unavailable_charms: set[str] = set()

    for key, wanted in demand.items():
        record = records.get(key)
        if record is None or record.quantity < wanted.count:
            if key.kind.is_model:
                unavailable_models.add(key.item_id)
            else:
                unavailable_charms.add(key.item_id)

    if unavailable_models or unavailable_charms:
        return StockUnavailable(list(unavailable_models), list(unavailable_charms))
    return None


def decrement_stock(
    demand: dict[ItemKey, Demand],
    records: dict[ItemKey, StockItem | None],
    now: datetime | None = None,
) -> None:
    repo = current_domain.repository_for(StockItem)
    for key, wanted in demand.items():
        record = records[key]
        record.consume(wanted.count, now)
        repo.add(record)


def restore_stock(
    demand: dict[ItemKey, Demand],
    records: dict[ItemKey, StockItem | None],
) -> list[ItemKey]:
    """Give back consumed stock; items deleted from the catalogue are skipped."""
    repo = current_domain.repository_for(StockItem)
    restored = []
    for key, wanted in demand.items():
        record = records.get(key)
        if record is None:
            logger.warning("Stock record missing during restore, skipping", item=str(key))
            continue
        record.restore(wanted.count)
        repo.add(record)
        restored.append(key)
    return restored


# ---------------------------------------------------------------------------
# Catalogue-side stock edits
# ---------------------------------------------------------------------------
def set_stock_levels(levels: dict[ItemKey, int], now: datetime | None = None) -> list[StockItem]:
    """Overwrite stock quantities, stamping ``restocked_at``. Unknown items are created."""
    for key, quantity in levels.items():
        if quantity < 0:
            raise ValueError(f"Stock quantity for {key} cannot be negative")

    now = now or datetime.now(UTC)
    repo = current_domain.repository_for(StockItem)
    items = []
    for key, quantity in levels.items():
        item = get_stock(key) or StockItem.open(key.kind, key.item_id)
        item.restock(quantity, now)
        repo.add(item)
        items.append(item)

    logger.info("Stock levels set", items=[str(key) for key in levels])
    return items
