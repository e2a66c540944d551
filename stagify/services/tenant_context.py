"""
Tenant Directory: identity to tenant context resolution.

resolve_context() turns an identity already validated by the identity
provider into an immutable TenantContext snapshot, or None when the account
must be denied:

  - no User record for the identity
  - the User's Tenant is missing or not active (a suspended tenant denies
    every one of its users, whatever their own status)
  - the User itself is not active
  - the User's Organization belongs to a different tenant
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stagify.models.tenant import TenantStatus
from stagify.models.user import User, UserStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantInfo:
    id: int
    name: str
    slug: str
    domain: str | None
    plan: str
    status: str


@dataclass(frozen=True)
class UserInfo:
    id: int
    email: str
    name: str | None
    role: str
    organization_id: int | None


@dataclass(frozen=True)
class OrganizationInfo:
    id: int
    name: str


@dataclass(frozen=True)
class TenantContext:
    """Resolved caller identity; all downstream data access filters on tenant.id."""

    tenant: TenantInfo
    user: UserInfo
    organization: OrganizationInfo | None = None

    @property
    def tenant_id(self) -> int:
        return self.tenant.id

    @property
    def user_id(self) -> int:
        return self.user.id


async def resolve_context(identity: int | None, db: AsyncSession) -> TenantContext | None:
    """Resolve a validated user identity to its tenant context. Read-only."""
    if identity is None:
        return None

    result = await db.execute(select(User).where(User.id == identity))
    user = result.scalars().first()
    if user is None:
        logger.info("No user record for identity=%s", identity)
        return None

    tenant = user.tenant
    if tenant is None:
        logger.warning("User id=%d has no tenant linkage", user.id)
        return None
    if tenant.status != TenantStatus.active.value:
        logger.info("Tenant id=%d is %s; denying user id=%d", tenant.id, tenant.status, user.id)
        return None
    if user.status != UserStatus.active.value:
        logger.info("User id=%d is %s", user.id, user.status)
        return None

    organization = user.organization
    if organization is not None and organization.tenant_id != tenant.id:
        logger.warning(
            "User id=%d belongs to organization id=%d of another tenant",
            user.id,
            organization.id,
        )
        return None

    return TenantContext(
        tenant=TenantInfo(
            id=tenant.id,
            name=tenant.name,
            slug=tenant.slug,
            domain=tenant.domain,
            plan=tenant.plan,
            status=tenant.status,
        ),
        user=UserInfo(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            organization_id=user.organization_id,
        ),
        organization=OrganizationInfo(id=organization.id, name=organization.name) if organization else None,
    )
