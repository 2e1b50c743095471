"""Shared pytest fixtures.

Provides:
- An in-memory SQLite import log store
- Fake Shopify and Cybake collaborators that record every call
- A FastAPI TestClient wired to those fakes
"""

import pytest
from fastapi.testclient import TestClient

from cybake_bridge.config import Settings
from cybake_bridge.log_store import ImportLogStore
from cybake_bridge.main import create_app
from cybake_bridge.models import Order

from helpers import FakeCybake, FakeShopify, make_order


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        SHOPIFY_STORE="test-bakery.myshopify.com",
        SHOPIFY_ACCESS_TOKEN="shpat_test_token_1234",
        CYBAKE_API_URL="https://cybake.test",
        CYBAKE_API_KEY="cybake-key-abcdef",
        DATABASE_URL="sqlite://",
        WEBHOOK_SECRET="",
        SHOPIFY_WEBHOOK_SECRET="",
    )


@pytest.fixture
def store() -> ImportLogStore:
    return ImportLogStore.from_url("sqlite://")


@pytest.fixture
def order() -> Order:
    return make_order()


@pytest.fixture
def shopify(order: Order) -> FakeShopify:
    return FakeShopify({order.id: order})


@pytest.fixture
def cybake() -> FakeCybake:
    return FakeCybake()


@pytest.fixture
def client(settings, shopify, cybake, store) -> TestClient:
    app = create_app(settings=settings, shopify=shopify, cybake=cybake, store=store)
    return TestClient(app)
