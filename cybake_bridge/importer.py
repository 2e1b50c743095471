"""
Order import pipeline.

duplicate check -> fetch -> transform -> validate -> submit -> log -> tag

Business failures (validation, Cybake rejection, unexpected errors) answer
with 4xx so the webhook sender never retries on its own. Retries are always
started by an operator through the retry endpoint.
"""
import logging
from typing import Optional

from .base import HandlerResult, ImportTarget, OrderSource
from .db import STATUS_FAILED, STATUS_SUCCESS
from .log_store import ImportLogStore
from .models import ImportAttempt, ImportResponse
from .tags import FAILED_TAG, IMPORTED_TAG
from .transform import numeric_order_id, order_gid, transform_order
from .validation import validate_payload

logger = logging.getLogger(__name__)


def _response(status_code: int, **fields) -> HandlerResult:
    body = ImportResponse(**fields).model_dump(exclude_none=True)
    return HandlerResult(status_code=status_code, body=body)


class ImportService:
    def __init__(self, orders: OrderSource, target: ImportTarget, store: ImportLogStore):
        self.orders = orders
        self.target = target
        self.store = store

    def import_order(self, order_id, order_name: Optional[str] = None) -> HandlerResult:
        numeric_id = numeric_order_id(order_id)
        gid = order_gid(numeric_id)
        logger.info("=== PROCESSING ORDER %s (%s) ===", numeric_id, order_name or "no name")

        try:
            return self._import(numeric_id, gid, order_name)
        except Exception as e:
            logger.error("Unhandled error importing order %s: %s", numeric_id, e, exc_info=True)
            self._log(ImportAttempt(
                shopify_order_id=numeric_id,
                order_number=order_name or "Unknown",
                status=STATUS_FAILED,
                error_message=f"System error: {e}",
            ))
            return _response(422, success=False, order=order_name, error="Internal server error", message=str(e))

    def _import(self, numeric_id: str, gid: str, order_name: Optional[str]) -> HandlerResult:
        existing = self.store.find_success(numeric_id)
        if existing:
            logger.info("Order %s already imported with Cybake ID %s", numeric_id, existing.cybake_import_id)
            return _response(
                200,
                success=True,
                order=existing.order_number,
                cybake_import_id=existing.cybake_import_id,
                message="Order already imported",
            )

        order = self.orders.get_order(gid)
        if order is None:
            logger.error("Order not found in Shopify for GID %s", gid)
            self._log(ImportAttempt(
                shopify_order_id=numeric_id,
                order_number=order_name or "Unknown",
                status=STATUS_FAILED,
                error_message="Order not found in Shopify",
            ))
            return _response(404, success=False, order=order_name, error="Order not found")

        logger.info("Shopify order fetched: %s | Tags: %s", order.name, ", ".join(order.tags))

        payload, meta = transform_order(order)
        wire = payload.to_wire()
        logger.info("Transformed: %s", meta.model_dump_json())

        errors = validate_payload(payload)
        if errors:
            error_msg = "; ".join(errors)
            logger.error("Validation failed for %s: %s", meta.order_number, error_msg)
            self._log(ImportAttempt(
                **meta.model_dump(),
                status=STATUS_FAILED,
                error_message=f"Validation: {error_msg}",
                payload_sent=wire,
            ))
            self._tag(gid, FAILED_TAG)
            return _response(
                400,
                success=False,
                order=meta.order_number,
                error="Validation failed",
                details=errors,
            )

        result = self.target.submit(wire)

        if result.success:
            self._log(ImportAttempt(
                **meta.model_dump(),
                status=STATUS_SUCCESS,
                cybake_import_id=result.import_id,
                http_status=result.http_status,
                payload_sent=wire,
                cybake_response=result.data,
            ))
            self._tag(gid, IMPORTED_TAG)
            return _response(200, success=True, order=meta.order_number, cybake_import_id=result.import_id)

        self._log(ImportAttempt(
            **meta.model_dump(),
            status=STATUS_FAILED,
            http_status=result.http_status,
            error_message=result.error,
            payload_sent=wire,
            cybake_response=result.data,
        ))
        self._tag(gid, FAILED_TAG)
        return _response(422, success=False, order=meta.order_number, error=result.error)

    def _log(self, attempt: ImportAttempt) -> None:
        # Best effort: store errors are logged, never raised.
        try:
            self.store.record_attempt(attempt)
        except Exception as e:
            logger.error("Failed to write import log for order %s: %s", attempt.shopify_order_id, e)

    def _tag(self, gid: str, tag: str) -> None:
        try:
            self.orders.add_tags(gid, [tag])
        except Exception as e:
            logger.error("Failed to tag order %s: %s", gid, e)
