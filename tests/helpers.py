"""Test doubles and sample data shared across the test suite."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from cybake_bridge.base import ImportTarget, OrderSource
from cybake_bridge.models import LineItem, Order, ShippingAddress, SubmitResult


# ============================================================================
# Fakes
# ============================================================================


class FakeShopify(OrderSource):
    def __init__(self, orders: Optional[Dict[str, Order]] = None):
        self.orders = orders or {}
        self.fetched: List[str] = []
        self.added: List[tuple] = []
        self.removed: List[tuple] = []
        self.fail_tagging = False

    def get_order(self, gid: str) -> Optional[Order]:
        self.fetched.append(gid)
        return self.orders.get(gid)

    def add_tags(self, gid: str, tags: List[str]) -> None:
        if self.fail_tagging:
            raise RuntimeError("tagging unavailable")
        self.added.append((gid, list(tags)))

    def remove_tags(self, gid: str, tags: List[str]) -> None:
        if self.fail_tagging:
            raise RuntimeError("tagging unavailable")
        self.removed.append((gid, list(tags)))

    @property
    def call_count(self) -> int:
        return len(self.fetched) + len(self.added) + len(self.removed)


class FakeCybake(ImportTarget):
    def __init__(self, result: Optional[SubmitResult] = None):
        self.result = result or SubmitResult(
            success=True, http_status=200, data={"ImportItemId": 9001}, text='{"ImportItemId": 9001}'
        )
        self.submitted: List[Dict[str, Any]] = []

    def submit(self, payload: Dict[str, Any]) -> SubmitResult:
        self.submitted.append(payload)
        return self.result


def cybake_rejection(status: int = 400, text: str = '{"Message": "Unknown product 999"}') -> SubmitResult:
    return SubmitResult(
        success=False,
        http_status=status,
        data={"Message": "Unknown product 999"},
        text=text,
        error=f"Cybake returned {status} Bad Request: {text}",
    )


# ============================================================================
# Test data
# ============================================================================


def make_order(**overrides) -> Order:
    """A complete, importable Shopify order."""
    data = dict(
        id="gid://shopify/Order/5550001",
        legacy_resource_id="5550001",
        name="#1042",
        tags=["Local Delivery", "15 June 2025", "9:00 AM - 12:00 PM", "Hove"],
        note="Please ring the bell",
        email="jane@example.com",
        phone=None,
        created_at=datetime(2025, 6, 10, 14, 30, tzinfo=timezone.utc),
        shipping_price="4.50",
        total_price="32.50",
        shipping_address=ShippingAddress(
            name="Jane Baker",
            address1="12 Church Road",
            city="Hove",
            province="East Sussex",
            zip="BN3 2AB",
            country="United Kingdom",
            phone="'07700 900123",
        ),
        line_items=[
            LineItem(sku="101", quantity=2, name="Sourdough - Large", price="6.00"),
            LineItem(sku="202.0", quantity=1, name="Croissant", price="2.50"),
            LineItem(sku="101", quantity=1, name="Sourdough - Large", price="6.00"),
        ],
    )
    data.update(overrides)
    return Order(**data)


