"""Ordering bounded context — the order transaction engine.

Handles checkout (pricing, coupons, loyalty points, stock decrement, creator
rewards and order persistence in one unit of work), the order status state
machine and cancellation compensation.

Every atomic unit is a command handler: Protean runs each handler inside a
UnitOfWork and re-runs it when the commit hits a version conflict, up to
``TRANSACTION_MAX_ATTEMPTS`` attempts in total.
"""

import os

import structlog
from protean.domain import Domain

TRANSACTION_MAX_ATTEMPTS = int(os.environ.get("TRANSACTION_MAX_ATTEMPTS", 5))

ordering = Domain(
    name="ordering",
    config={
        "server": {
            "version_retry": {
                "enabled": True,
                "max_retries": TRANSACTION_MAX_ATTEMPTS - 1,
                "base_delay_seconds": 0.01,
                "max_delay_seconds": 0.2,
            },
        },
    },
)

logger = structlog.get_logger(__name__)
