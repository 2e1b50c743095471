"""Tests for the import pipeline."""

from unittest.mock import MagicMock

import pytest

from cybake_bridge.importer import ImportService
from cybake_bridge.models import ImportAttempt, SubmitResult
from cybake_bridge.tags import FAILED_TAG, IMPORTED_TAG

from helpers import FakeCybake, FakeShopify, cybake_rejection, make_order

GID = "gid://shopify/Order/5550001"


@pytest.fixture
def service(shopify, cybake, store) -> ImportService:
    return ImportService(shopify, cybake, store)


def test_successful_import(service, shopify, cybake, store):
    result = service.import_order("5550001", "#1042")

    assert result.status_code == 200
    assert result.body == {"success": True, "order": "#1042", "cybake_import_id": "9001"}

    assert len(cybake.submitted) == 1
    assert cybake.submitted[0]["Orders"][0]["ExternalUniqueIdentifier"] == "SHOPIFY-1042-5550001"
    assert shopify.added == [(GID, [IMPORTED_TAG])]

    row = store.find_success("5550001")
    assert row.cybake_import_id == "9001"
    assert row.http_status == 200
    assert row.payload_sent == cybake.submitted[0]
    assert row.cybake_response == {"ImportItemId": 9001}
    assert row.order_type == "Local Delivery"
    assert row.delivery_date == "2025-06-15"


def test_gid_input_is_accepted(service, shopify):
    result = service.import_order(GID)
    assert result.status_code == 200
    assert shopify.fetched == [GID]


def test_already_imported_short_circuits(service, shopify, cybake, store):
    store.record_attempt(ImportAttempt(
        shopify_order_id="5550001", order_number="#1042", status="success", cybake_import_id="4242",
    ))

    result = service.import_order("5550001")

    assert result.status_code == 200
    assert result.body["message"] == "Order already imported"
    assert result.body["cybake_import_id"] == "4242"
    assert cybake.submitted == []
    assert shopify.call_count == 0


def test_order_not_found(cybake, store):
    service = ImportService(FakeShopify(), cybake, store)

    result = service.import_order("999", "#9999")

    assert result.status_code == 404
    assert result.body["error"] == "Order not found"
    assert cybake.submitted == []
    logs, _ = store.list_logs()
    assert logs[0].order_number == "#9999"
    assert logs[0].error_message == "Order not found in Shopify"


def test_validation_failure_is_logged_and_tagged(cybake, store):
    order = make_order(email=None, shipping_address=None)
    shopify = FakeShopify({order.id: order})
    service = ImportService(shopify, cybake, store)

    result = service.import_order("5550001")

    assert result.status_code == 400
    assert result.body["error"] == "Validation failed"
    assert result.body["details"] == ["Missing email", "Missing address", "Missing postcode"]
    assert cybake.submitted == []
    assert shopify.added == [(GID, [FAILED_TAG])]

    logs, _ = store.list_logs()
    assert logs[0].status == "failed"
    assert logs[0].error_message == "Validation: Missing email; Missing address; Missing postcode"
    assert logs[0].payload_sent["Orders"][0]["Email"] == "noemail@placeholder.com"
    assert logs[0].http_status is None


def test_cybake_rejection_returns_422(shopify, store):
    cybake = FakeCybake(cybake_rejection(400))
    service = ImportService(shopify, cybake, store)

    result = service.import_order("5550001")

    assert result.status_code == 422
    assert result.body["success"] is False
    assert result.body["error"].startswith("Cybake returned 400")
    assert shopify.added == [(GID, [FAILED_TAG])]

    logs, _ = store.list_logs()
    assert logs[0].status == "failed"
    assert logs[0].http_status == 400
    assert logs[0].payload_sent is not None


def test_network_error_recorded_as_status_zero(shopify, store):
    cybake = FakeCybake(SubmitResult(success=False, http_status=0, error="Network error calling x: timeout"))
    service = ImportService(shopify, cybake, store)

    result = service.import_order("5550001")

    assert result.status_code == 422
    logs, _ = store.list_logs()
    assert logs[0].http_status == 0
    assert logs[0].error_message == "Network error calling x: timeout"


def test_failed_reimport_does_not_downgrade_success(shopify, store):
    ImportService(shopify, FakeCybake(), store).import_order("5550001")

    # Bypass the duplicate check to force a second, failing attempt.
    store.find_success = lambda order_id: None
    result = ImportService(shopify, FakeCybake(cybake_rejection(500)), store).import_order("5550001")

    assert result.status_code == 422
    logs, total = store.list_logs()
    assert total == 1
    assert logs[0].status == "success"
    assert logs[0].cybake_import_id == "9001"


def test_tagging_failure_is_swallowed(store, cybake, order):
    shopify = FakeShopify({order.id: order})
    shopify.fail_tagging = True

    result = ImportService(shopify, cybake, store).import_order("5550001")

    assert result.status_code == 200
    assert store.find_success("5550001") is not None


def test_log_write_failure_is_swallowed(shopify, cybake):
    store = MagicMock()
    store.find_success.return_value = None
    store.record_attempt.side_effect = RuntimeError("database is locked")

    result = ImportService(shopify, cybake, store).import_order("5550001")

    assert result.status_code == 200
    assert len(cybake.submitted) == 1


def test_unexpected_error_logged_as_system_error(cybake, store):
    shopify = MagicMock()
    shopify.get_order.side_effect = RuntimeError("Shopify exploded")

    result = ImportService(shopify, cybake, store).import_order("5550001", "#1042")

    assert result.status_code == 422
    assert result.body["error"] == "Internal server error"
    assert result.body["message"] == "Shopify exploded"
    logs, _ = store.list_logs()
    assert logs[0].error_message == "System error: Shopify exploded"
    assert logs[0].order_number == "#1042"
