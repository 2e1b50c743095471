"""
Import log store.

Imports write through record_attempt(), a single conditional upsert keyed by
the Shopify order id; retries write through update_after_retry(). Neither
replaces a row that already says "success" with a "failed" outcome.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .db import (
    ERROR_MESSAGE_LIMIT,
    STATUS_FAILED,
    STATUS_SUCCESS,
    ImportLog,
    init_db,
    make_engine,
    utc_now,
)
from .models import ImportAttempt, ImportLogOut, LogSummary

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {"sqlite": sqlite_insert, "postgresql": pg_insert}


class ImportLogStore:
    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str) -> "ImportLogStore":
        store = cls(make_engine(database_url))
        store.create_tables()
        return store

    def create_tables(self) -> None:
        init_db(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    def _row_values(attempt: ImportAttempt) -> Dict[str, Any]:
        error = attempt.error_message[:ERROR_MESSAGE_LIMIT] if attempt.error_message else None
        return {
            "shopify_order_id": attempt.shopify_order_id,
            "order_number": attempt.order_number or "Unknown",
            "customer_name": attempt.customer_name or None,
            "customer_email": attempt.customer_email or None,
            "delivery_date": attempt.delivery_date or None,
            "order_type": attempt.order_type or None,
            "line_items_count": attempt.line_items_count or 0,
            "order_total": attempt.order_total,
            "status": attempt.status,
            "cybake_import_id": attempt.cybake_import_id or None,
            "http_status": attempt.http_status,
            "error_message": error,
            "payload_sent": attempt.payload_sent,
            "cybake_response": attempt.cybake_response,
            "updated_at": utc_now(),
        }

    def record_attempt(self, attempt: ImportAttempt) -> bool:
        """
        Insert or update the row for attempt.shopify_order_id.

        Returns False when the write was skipped because the order has already
        been imported successfully and this attempt failed.
        """
        values = self._row_values(attempt)

        with self.session_factory.begin() as session:
            insert = _UPSERT_DIALECTS.get(self.engine.dialect.name)
            if insert is not None:
                stmt = insert(ImportLog).values(created_at=values["updated_at"], retry_count=0, **values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["shopify_order_id"],
                    set_={key: stmt.excluded[key] for key in values if key != "shopify_order_id"},
                    where=or_(
                        ImportLog.status != STATUS_SUCCESS,
                        stmt.excluded.status != STATUS_FAILED,
                    ),
                )
                written = session.connection().execute(stmt).rowcount > 0
            else:
                written = self._record_attempt_locked(session, values)

        if written:
            logger.info("Logged %s attempt for order %s", attempt.status, attempt.shopify_order_id)
        else:
            logger.info("Skipping log update, order %s already succeeded", attempt.shopify_order_id)
        return written

    @staticmethod
    def _record_attempt_locked(session, values: Dict[str, Any]) -> bool:
        existing = session.scalars(
            select(ImportLog)
            .where(ImportLog.shopify_order_id == values["shopify_order_id"])
            .with_for_update()
        ).first()

        if existing is None:
            session.add(ImportLog(created_at=values["updated_at"], retry_count=0, **values))
            return True

        if existing.status == STATUS_SUCCESS and values["status"] == STATUS_FAILED:
            return False

        for key, value in values.items():
            setattr(existing, key, value)
        return True

    def update_after_retry(self, log_id: int, **fields) -> bool:
        """
        Apply a retry outcome to a row and bump its retry counter.

        A failed outcome is not written over a row that has meanwhile become
        successful. Returns False when the row was left untouched.
        """
        if "error_message" in fields and fields["error_message"]:
            fields["error_message"] = fields["error_message"][:ERROR_MESSAGE_LIMIT]

        stmt = update(ImportLog).where(ImportLog.id == log_id)
        if fields.get("status") == STATUS_FAILED:
            stmt = stmt.where(ImportLog.status != STATUS_SUCCESS)

        with self.session_factory.begin() as session:
            result = session.connection().execute(
                stmt.values(retry_count=ImportLog.retry_count + 1, updated_at=utc_now(), **fields)
            )
            written = result.rowcount > 0

        if not written:
            logger.info("Skipping retry update for log %s, row missing or already succeeded", log_id)
        return written

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, log_id: int) -> Optional[ImportLogOut]:
        with self.session_factory() as session:
            row = session.get(ImportLog, log_id)
            return ImportLogOut.model_validate(row) if row else None

    def find_success(self, shopify_order_id: str) -> Optional[ImportLogOut]:
        with self.session_factory() as session:
            row = session.scalars(
                select(ImportLog)
                .where(ImportLog.shopify_order_id == str(shopify_order_id))
                .where(ImportLog.status == STATUS_SUCCESS)
                .limit(1)
            ).first()
            return ImportLogOut.model_validate(row) if row else None

    def list_logs(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
    ) -> Tuple[List[ImportLogOut], int]:
        """One page of rows, newest first, plus the filtered total."""
        query = select(ImportLog)

        if status and status != "all":
            query = query.where(ImportLog.status == status)

        if search:
            needle = search.lower()
            query = query.where(or_(
                func.lower(ImportLog.order_number).contains(needle, autoescape=True),
                func.lower(ImportLog.customer_name).contains(needle, autoescape=True),
            ))

        with self.session_factory() as session:
            total = session.scalar(select(func.count()).select_from(query.subquery()))
            rows = session.scalars(
                query.order_by(ImportLog.created_at.desc(), ImportLog.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()
            return [ImportLogOut.model_validate(row) for row in rows], total or 0

    def summary(self) -> LogSummary:
        with self.session_factory() as session:
            counts = dict(session.execute(
                select(ImportLog.status, func.count()).group_by(ImportLog.status)
            ).all())

        return LogSummary(
            total=sum(counts.values()),
            success=counts.get(STATUS_SUCCESS, 0),
            failed=counts.get(STATUS_FAILED, 0),
        )
