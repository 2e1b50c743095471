"""
Operator-triggered retry of a failed import.

The payload stored with the failed attempt is resent unchanged. Its
ExternalUniqueIdentifier is the same as on the first attempt, so Cybake
amends rather than duplicates anything it had partly accepted.
"""
import logging
from typing import Optional

from .base import HandlerResult, ImportTarget, OrderSource
from .db import STATUS_FAILED, STATUS_SUCCESS
from .log_store import ImportLogStore
from .tags import FAILED_TAG, IMPORTED_TAG
from .transform import order_gid

logger = logging.getLogger(__name__)

RETRY_ERROR_BODY_LIMIT = 500


class RetryService:
    def __init__(self, orders: OrderSource, target: ImportTarget, store: ImportLogStore):
        self.orders = orders
        self.target = target
        self.store = store

    def retry(self, log_id: int) -> HandlerResult:
        entry = self.store.get(log_id)
        if entry is None:
            return HandlerResult(404, {"success": False, "error": "Log entry not found"})

        if entry.status == STATUS_SUCCESS:
            return HandlerResult(400, {
                "success": False,
                "order": entry.order_number,
                "error": "Order already imported successfully",
            })

        gid = order_gid(entry.shopify_order_id)

        if not entry.payload_sent:
            # Rebuilding the payload from Shopify is not supported.
            if self.orders.get_order(gid) is None:
                return HandlerResult(404, {"success": False, "error": "Order no longer exists in Shopify"})
            return HandlerResult(400, {
                "success": False,
                "order": entry.order_number,
                "error": "No stored payload and rebuild not yet supported. Please re-trigger from Shopify.",
            })

        logger.info("Retrying log %s (order %s, attempt %d)", log_id, entry.order_number, entry.retry_count + 1)
        result = self.target.submit(entry.payload_sent)

        if result.success:
            self._log(
                log_id,
                status=STATUS_SUCCESS,
                cybake_import_id=result.import_id,
                http_status=result.http_status,
                cybake_response=result.data,
                error_message=None,
            )
            self._remove_tag(gid, FAILED_TAG)
            self._add_tag(gid, IMPORTED_TAG)
            return HandlerResult(200, {
                "success": True,
                "order": entry.order_number,
                "cybake_import_id": result.import_id,
            })

        if result.http_status:
            error = (
                f"Retry failed - Cybake returned {result.http_status}: "
                f"{result.text[:RETRY_ERROR_BODY_LIMIT]}"
            )
        else:
            error = f"Retry failed - {result.error}"

        written = self._log(
            log_id,
            status=STATUS_FAILED,
            http_status=result.http_status,
            cybake_response=result.data,
            error_message=error,
        )
        # False means the order was imported by another request meanwhile.
        if written is not False:
            self._add_tag(gid, FAILED_TAG)
        return HandlerResult(422, {
            "success": False,
            "order": entry.order_number,
            "error": f"Cybake returned {result.http_status}" if result.http_status else result.error,
        })

    def _log(self, log_id: int, **fields) -> Optional[bool]:
        """Best effort: returns None when the store could not be written."""
        try:
            return self.store.update_after_retry(log_id, **fields)
        except Exception as e:
            logger.error("Failed to update import log %s: %s", log_id, e)
            return None

    def _add_tag(self, gid: str, tag: str) -> None:
        try:
            self.orders.add_tags(gid, [tag])
        except Exception as e:
            logger.error("Failed to add tag %s to %s: %s", tag, gid, e)

    def _remove_tag(self, gid: str, tag: str) -> None:
        try:
            self.orders.remove_tags(gid, [tag])
        except Exception as e:
            logger.error("Failed to remove tag %s from %s: %s", tag, gid, e)
