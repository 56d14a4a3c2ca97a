import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering import settings
from ordering.api import checkout_router, coupon_router, order_router, stock_router
from ordering.api.errors import register_ordering_exception_handlers
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client(gateway, blob_storage, verifier):
    app = FastAPI()
    app.include_router(checkout_router)
    app.include_router(order_router)
    app.include_router(coupon_router)
    app.include_router(stock_router)
    register_exception_handlers(app)
    register_ordering_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def admin_headers(verifier, monkeypatch):
    verifier.register("admin-token", uid="admin-1", email="atelier@example.com")
    monkeypatch.setattr(settings, "ADMIN_UIDS", {"admin-1"})
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture()
def buyer_headers(verifier, seed):
    verifier.register("buyer-token", uid="buyer", email="camille@example.com")
    seed.user("buyer", reward_points=300, email="camille@example.com")
    return {"Authorization": "Bearer buyer-token"}
