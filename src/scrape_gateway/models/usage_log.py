"""UsageLog model: the append-only ledger of gateway calls."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from scrape_gateway.models.base import Base, UUIDMixin


class UsageFunction(StrEnum):
    """Gateway function recorded on a ledger row."""

    SCRAPE = "scrape"
    SEARCH = "search"
    MAP = "map"
    CRAWL = "crawl"
    CLEANUP = "cleanup"


RATE_LIMIT_EXCEEDED_MESSAGE = "Rate limit exceeded"


class UsageLog(Base, UUIDMixin):
    """One row per gateway call attempt. Insert-only; rows leave only via retention sweeps.

    ``created_at`` is assigned by the database so callers cannot backdate
    rows out of the rate-limit window.
    """

    __tablename__ = "usage_logs"
    __table_args__ = (
        Index("ix_usage_logs_user_created", "user_id", "created_at"),
        Index("ix_usage_logs_function_created", "function_name", "created_at"),
        CheckConstraint(
            "function_name IN ('scrape', 'search', 'map', 'crawl', 'cleanup')",
            name="ck_usage_logs_function_name",
        ),
    )
    __mapper_args__ = {"eager_defaults": True}  # noqa: RUF012

    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    function_name: Mapped[str] = mapped_column(String(20), nullable=False)
    request_target: Mapped[str | None] = mapped_column(Text, nullable=True)
    status_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
