"""Creator reward accrual.

When a buyer purchases a creation, its creator earns loyalty points worth
5% of the line price. Awards are folded per creator so one order produces a
single credit and a single notification per creator. Everything here is
written inside the checkout unit of work: an order that fails stock
validation awards nothing, and the notification cannot outlive an aborted
checkout.
"""

import math
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from notifications.outbox import enqueue_mail
from notifications.templates.creator_reward import CreatorRewardTemplate
from ordering.cart.cart import CartLine
from ordering.pricing.calculator import line_price
from ordering.pricing.discounts import POINTS_PER_CURRENCY_UNIT
from ordering.rewards.account import LoyaltyAccount
from ordering.rewards.creation import Creation

logger = structlog.get_logger(__name__)

CREATOR_REWARD_RATE = 0.05


@dataclass(frozen=True)
class CreatorAward:
    creator_id: str
    points_earned: int
    creation_name: str
    creator_name: str | None = None


def points_for_price(price: float) -> int:
    return math.floor(round(price * CREATOR_REWARD_RATE * POINTS_PER_CURRENCY_UNIT, 6))


def compute_awards(lines: Iterable[CartLine]) -> dict[str, CreatorAward]:
    awards: dict[str, CreatorAward] = {}
    for line in lines:
        if not line.creator_id:
            continue
        points = points_for_price(line_price(line))
        if points <= 0:
            continue
        current = awards.get(line.creator_id)
        if current is None:
            awards[line.creator_id] = CreatorAward(
                creator_id=line.creator_id,
                points_earned=points,
                creation_name=line.creation_label,
                creator_name=line.creator_name,
            )
        else:
            awards[line.creator_id] = CreatorAward(
                creator_id=current.creator_id,
                points_earned=current.points_earned + points,
                creation_name=current.creation_name,
                creator_name=current.creator_name,
            )
    return awards


def load_account(uid: str) -> LoyaltyAccount | None:
    try:
        return current_domain.repository_for(LoyaltyAccount).get(uid)
    except ObjectNotFoundError:
        return None


def read_creators(
    awards: dict[str, CreatorAward],
    known: dict[str, LoyaltyAccount] | None = None,
) -> dict[str, LoyaltyAccount | None]:
    """Load each rewarded creator once, reusing accounts the caller already holds."""
    known = known or {}
    return {creator_id: known.get(creator_id) or load_account(creator_id) for creator_id in awards}


def apply_awards(
    awards: dict[str, CreatorAward],
    creators: dict[str, LoyaltyAccount | None],
) -> list[CreatorAward]:
    """Credit each creator and enqueue their notification. Returns the applied awards."""
    repo = current_domain.repository_for(LoyaltyAccount)
    applied = []
    for creator_id, award in awards.items():
        creator = creators.get(creator_id)
        if creator is None:
            logger.warning("Creator account missing, award skipped", creator_id=creator_id)
            continue

        creator.credit(award.points_earned)
        repo.add(creator)
        if creator.email:
            enqueue_mail(
                creator.email,
                CreatorRewardTemplate.mail_type,
                {
                    "creator_name": award.creator_name or creator.name or "",
                    "creation_name": award.creation_name,
                    "points": award.points_earned,
                },
            )
        applied.append(award)
    return applied


def read_creations(lines: Iterable[CartLine]) -> dict[str, Creation | None]:
    repo = current_domain.repository_for(Creation)
    creations: dict[str, Creation | None] = {}
    for creation_id in sorted({line.creation_id for line in lines if line.creation_id}):
        try:
            creations[creation_id] = repo.get(creation_id)
        except ObjectNotFoundError:
            creations[creation_id] = None
    return creations


def count_creation_sales(lines: Iterable[CartLine], creations: dict[str, Creation | None]) -> None:
    repo = current_domain.repository_for(Creation)
    sales = Counter(line.creation_id for line in lines if line.creation_id)
    for creation_id, count in sales.items():
        creation = creations.get(creation_id)
        if creation is None:
            logger.warning("Creation missing, sales count not updated", creation_id=creation_id)
            continue
        creation.record_sales(count)
        repo.add(creation)
