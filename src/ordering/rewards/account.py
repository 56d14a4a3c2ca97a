"""LoyaltyAccount aggregate — a storefront user's reward point balance.

Buyers spend points at checkout; creators earn them when their designs
sell. The account id is the verified identity's uid.
"""

from protean.fields import Integer, String

from ordering.domain import ordering
from ordering.errors import InsufficientPoints


@ordering.aggregate
class LoyaltyAccount:
    email = String(max_length=255)
    name = String(max_length=255)
    reward_points = Integer(default=0, min_value=0)

    @property
    def balance(self) -> int:
        return self.reward_points or 0

    def redeem(self, points: int) -> None:
        if points > self.balance:
            raise InsufficientPoints(points, self.balance)
        self.reward_points = self.balance - points

    def credit(self, points: int) -> None:
        self.reward_points = self.balance + points
