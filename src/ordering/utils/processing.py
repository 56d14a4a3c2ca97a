"""Synchronous command processing for request-scoped callers.

Routes and orchestrators run their atomic units through here. A unit whose
version retries all conflicted surfaces as ``TransactionConflict``, which the
API maps to 503.
"""

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from ordering.errors import TransactionConflict

logger = structlog.get_logger(__name__)


def max_attempts() -> int:
    retry = current_domain.config["server"]["version_retry"]
    return int(retry["max_retries"]) + 1 if retry.get("enabled", True) else 1


def process_now(command):
    """Process ``command`` synchronously and return the handler's result."""
    try:
        return current_domain.process(command, asynchronous=False)
    except ExpectedVersionError as exc:
        attempts = max_attempts()
        logger.warning("Version retries exhausted", command=command.__class__.__name__, attempts=attempts)
        raise TransactionConflict(attempts) from exc
