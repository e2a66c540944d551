"""Organization Service: team grouping of users inside one tenant."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stagify.database import commit_or_raise
from stagify.exceptions import DuplicateResourceError, OrganizationNotFoundError, UserNotFoundError
from stagify.models.organization import Organization
from stagify.models.user import User

logger = logging.getLogger(__name__)


async def create_organization(tenant_id: int, name: str, db: AsyncSession) -> Organization:
    existing = await db.execute(
        select(Organization.id).where(Organization.tenant_id == tenant_id, Organization.name == name)
    )
    if existing.scalar() is not None:
        raise DuplicateResourceError("Organization", "name", name)

    organization = Organization(tenant_id=tenant_id, name=name)
    db.add(organization)
    await commit_or_raise(db, "create_organization")
    await db.refresh(organization)
    logger.info("Organization created: tenant_id=%d organization_id=%d", tenant_id, organization.id)
    return organization


async def get_organization(tenant_id: int, organization_id: int, db: AsyncSession) -> Organization | None:
    result = await db.execute(
        select(Organization).where(Organization.id == organization_id, Organization.tenant_id == tenant_id)
    )
    return result.scalars().first()


async def list_organizations(tenant_id: int, db: AsyncSession) -> list[Organization]:
    result = await db.execute(
        select(Organization).where(Organization.tenant_id == tenant_id).order_by(Organization.name)
    )
    return list(result.scalars().all())


async def assign_user_to_organization(
    tenant_id: int,
    user_id: int,
    organization_id: int | None,
    db: AsyncSession,
) -> User:
    """
    Move a user into an organization, or out of any when organization_id is None.

    Both the user and the organization must belong to tenant_id.
    """
    result = await db.execute(select(User).where(User.id == user_id, User.tenant_id == tenant_id))
    user = result.scalars().first()
    if user is None:
        raise UserNotFoundError(user_id)

    if organization_id is not None and await get_organization(tenant_id, organization_id, db) is None:
        raise OrganizationNotFoundError(organization_id)

    user.organization_id = organization_id
    await commit_or_raise(db, "assign_user_to_organization")
    await db.refresh(user)
    return user
