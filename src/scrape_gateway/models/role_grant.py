"""RoleGrant model linking a platform user to a privilege level."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from scrape_gateway.models.base import Base, UUIDMixin


class Role(StrEnum):
    """Privilege levels an operator can grant."""

    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"


class RoleGrant(Base, UUIDMixin):
    """Operator-managed role assignment. No expiry; lives until revoked."""

    __tablename__ = "role_grants"
    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_role_grants_user_role"),
        CheckConstraint("role IN ('admin', 'moderator', 'user')", name="ck_role_grants_role"),
    )
    __mapper_args__ = {"eager_defaults": True}  # noqa: RUF012

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
