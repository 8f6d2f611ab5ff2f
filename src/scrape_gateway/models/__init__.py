"""ORM model registry. Import all models so Alembic autogenerate discovers them."""

from scrape_gateway.models.role_grant import Role, RoleGrant
from scrape_gateway.models.usage_log import UsageFunction, UsageLog

__all__ = [
    "Role",
    "RoleGrant",
    "UsageFunction",
    "UsageLog",
]
