"""Atelier ordering FastAPI application.

Serves the order transaction engine over HTTP. Every request runs inside the
ordering domain context so commands can be processed synchronously.

Usage:
    uvicorn app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.domain import ordering
from ordering.utils.logging import add_context, clear_context, configure_logging

configure_logging()
ordering.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Atelier Ordering API",
    description="Made-to-order jewelry storefront — checkout, orders and cancellations",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context and bind request context for logs."""
    add_context(method=request.method, path=request.url.path)
    try:
        with ordering.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers and error mapping
# ---------------------------------------------------------------------------
from ordering.api import checkout_router, coupon_router, order_router, stock_router  # noqa: E402
from ordering.api.errors import register_ordering_exception_handlers  # noqa: E402

app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(coupon_router)
app.include_router(stock_router)

register_exception_handlers(app)
register_ordering_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domains": {"ordering": {"name": ordering.name}}})
