"""SQLAlchemy model and engine setup for the import log.

One row per Shopify order. Rows are updated in place by later import and
retry attempts and are never deleted.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"

ERROR_MESSAGE_LIMIT = 5000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ImportLog(Base):
    __tablename__ = "import_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shopify_order_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    order_number: Mapped[str] = mapped_column(String(64), default="Unknown")
    customer_name: Mapped[Optional[str]] = mapped_column(String(255))
    customer_email: Mapped[Optional[str]] = mapped_column(String(255))
    delivery_date: Mapped[Optional[str]] = mapped_column(String(10))
    order_type: Mapped[Optional[str]] = mapped_column(String(255))
    line_items_count: Mapped[int] = mapped_column(Integer, default=0)
    order_total: Mapped[Optional[float]] = mapped_column(Float)
    status: Mapped[str] = mapped_column(String(16), index=True)
    cybake_import_id: Mapped[Optional[str]] = mapped_column(String(255))
    http_status: Mapped[Optional[int]] = mapped_column(Integer)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    payload_sent: Mapped[Optional[dict]] = mapped_column(JSON(none_as_null=True))
    cybake_response: Mapped[Optional[dict]] = mapped_column(JSON(none_as_null=True))
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    def __repr__(self) -> str:
        return f"<ImportLog {self.id} order={self.shopify_order_id} status={self.status}>"


def make_engine(database_url: str) -> Engine:
    """Create an engine, sharing one connection for in-memory SQLite."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)
