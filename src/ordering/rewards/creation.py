"""Creation aggregate — a community design that buyers can order as-is."""

from protean.fields import Integer, String

from ordering.domain import ordering


@ordering.aggregate
class Creation:
    name = String(max_length=255)
    creator_id = String(max_length=255)
    sales_count = Integer(default=0, min_value=0)

    def record_sales(self, count: int) -> None:
        self.sales_count = (self.sales_count or 0) + count
