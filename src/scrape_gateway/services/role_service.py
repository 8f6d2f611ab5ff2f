"""Role grant lookups and operator-side management.

Lookups always hit the store; role grants are never cached because an
admin can be revoked between two calls.
"""

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scrape_gateway.core.exceptions import StorageUnavailable
from scrape_gateway.models.role_grant import Role, RoleGrant


async def has_role(session: AsyncSession, user_id: str, role: Role) -> bool:
    """Check whether ``user_id`` currently holds ``role``.

    Raises:
        StorageUnavailable: If the role store cannot be read.
    """
    query = select(RoleGrant.id).where(RoleGrant.user_id == user_id, RoleGrant.role == role.value).limit(1)
    try:
        result = await session.execute(query)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Role lookup failed for user {user_id}: {e}")
        raise StorageUnavailable("Role store unavailable") from e
    return result.scalar_one_or_none() is not None


async def grant_role(session: AsyncSession, user_id: str, role: Role) -> RoleGrant:
    """Grant ``role`` to ``user_id``.

    Raises:
        ValueError: If the grant already exists.
    """
    grant = RoleGrant(user_id=user_id, role=role.value)
    session.add(grant)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        msg = f"User '{user_id}' already has role '{role.value}'"
        raise ValueError(msg) from e
    logger.info(f"Granted role {role.value} to user {user_id}")
    return grant


async def revoke_role(session: AsyncSession, user_id: str, role: Role) -> bool:
    """Remove a grant. Returns False if there was nothing to remove."""
    result = await session.execute(
        delete(RoleGrant).where(RoleGrant.user_id == user_id, RoleGrant.role == role.value)
    )
    await session.commit()
    revoked = (result.rowcount or 0) > 0
    if revoked:
        logger.info(f"Revoked role {role.value} from user {user_id}")
    return revoked


async def list_role_grants(session: AsyncSession, user_id: str | None = None) -> list[RoleGrant]:
    query = select(RoleGrant).order_by(RoleGrant.user_id, RoleGrant.role)
    if user_id is not None:
        query = query.where(RoleGrant.user_id == user_id)
    result = await session.execute(query)
    return list(result.scalars().all())
