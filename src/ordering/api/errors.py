"""HTTP mapping of ordering errors.

Protean's own exceptions (ValidationError → 400, ObjectNotFoundError → 404)
are handled by ``protean.integrations.fastapi.register_exception_handlers``;
this module adds the ordering-specific taxonomy on top.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ordering.errors import (
    CouponInvalid,
    Forbidden,
    InsufficientPoints,
    OrderNumberExhausted,
    OrderingError,
    PaymentError,
    PreviewUploadFailed,
    StockUnavailable,
    TransactionConflict,
    Unauthenticated,
)

logger = structlog.get_logger(__name__)

# Most specific first; the first matching class wins
STATUS_CODES: list[tuple[type[Exception], int]] = [
    (Unauthenticated, 401),
    (Forbidden, 403),
    (CouponInvalid, 422),
    (PaymentError, 402),
    (StockUnavailable, 409),
    (InsufficientPoints, 409),
    (PreviewUploadFailed, 502),
    (TransactionConflict, 503),
    (OrderNumberExhausted, 503),
]


def status_code_for(exc: Exception) -> int:
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 400


async def _ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.info("Ordering request rejected", path=request.url.path, code=exc.code, status_code=status_code)
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})


def register_ordering_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderingError, _ordering_error_handler)
