"""
Tenant Service

Async operations for Tenant entities and their tenant-scoped satellites
(users, settings, stats). All functions accept an injected AsyncSession and
every query over a child table pins tenant_id.
"""

import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stagify.constants.plans import DEFAULT_PLAN, PlanTier, UsagePeriod
from stagify.constants.roles import DEFAULT_ROLE, TenantRole
from stagify.database import commit_or_raise
from stagify.exceptions import DuplicateResourceError, InvalidOperationError, ValidationError
from stagify.models.organization import Organization
from stagify.models.resource_usage import ResourceUsage
from stagify.models.staging_project import StagingProject
from stagify.models.tenant import Tenant, TenantSetting, TenantStatus
from stagify.models.user import User, UserStatus
from stagify.services.usage_service import usage_summary

logger = logging.getLogger(__name__)


def default_tenant_settings(name: str) -> dict[str, Any]:
    return {
        "welcomeMessage": f"Welcome to {name}!",
        "primaryColor": "#6366f1",
        "secondaryColor": "#f3f4f6",
    }


async def create_tenant(
    name: str,
    slug: str,
    owner_email: str,
    db: AsyncSession,
    owner_name: str | None = None,
    plan: str | None = None,
    domain: str | None = None,
) -> tuple[Tenant, User]:
    """
    Create a tenant together with its owner user.

    Raises:
        DuplicateResourceError: slug or domain already taken
        ValidationError: unknown plan tier
    """
    plan = plan or DEFAULT_PLAN.value
    try:
        plan = PlanTier(plan).value
    except ValueError as exc:
        raise ValidationError(f"Unknown plan '{plan}'", field="plan") from exc

    if await get_tenant_by_slug(slug, db) is not None:
        raise DuplicateResourceError("Tenant", "slug", slug)
    if domain and await get_tenant_by_domain(domain, db) is not None:
        raise DuplicateResourceError("Tenant", "domain", domain)

    tenant = Tenant(
        name=name,
        slug=slug,
        domain=domain,
        plan=plan,
        status=TenantStatus.active.value,
        settings=default_tenant_settings(name),
    )
    db.add(tenant)
    await db.flush()

    owner = User(
        email=owner_email,
        name=owner_name,
        tenant_id=tenant.id,
        role=TenantRole.OWNER.value,
        status=UserStatus.active.value,
    )
    db.add(owner)
    await commit_or_raise(db, "create_tenant")
    await db.refresh(tenant)
    await db.refresh(owner)
    logger.info("Tenant created: id=%d slug=%s plan=%s", tenant.id, tenant.slug, tenant.plan)
    return tenant, owner


async def get_tenant_by_id(tenant_id: int, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by primary key, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalars().first()


async def get_tenant_by_slug(slug: str, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by slug, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.slug == slug))
    return result.scalars().first()


async def get_tenant_by_domain(domain: str, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by custom domain, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.domain == domain))
    return result.scalars().first()


async def list_tenants(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 20,
) -> list[Tenant]:
    """Return a paginated list of all tenants (any status)."""
    result = await db.execute(select(Tenant).order_by(Tenant.id).offset(skip).limit(limit))
    return list(result.scalars().all())


async def update_tenant(
    tenant_id: int,
    updates: dict,
    db: AsyncSession,
) -> Tenant | None:
    """
    Apply a partial update to a Tenant.

    Only keys present in `updates` are changed; plan and status are not
    editable here. Returns None if the tenant does not exist.
    """
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        return None

    domain = updates.get("domain")
    if domain and domain != tenant.domain:
        existing = await get_tenant_by_domain(domain, db)
        if existing is not None and existing.id != tenant.id:
            raise DuplicateResourceError("Tenant", "domain", domain)

    allowed_fields = {"name", "domain", "logo_url", "settings"}
    for field, value in updates.items():
        if field in allowed_fields:
            setattr(tenant, field, value)
    await commit_or_raise(db, "update_tenant")
    await db.refresh(tenant)
    return tenant


async def change_plan(tenant_id: int, plan: str, db: AsyncSession) -> Tenant | None:
    """Move a tenant to another plan tier (billing/admin action)."""
    try:
        tier = PlanTier(plan)
    except ValueError as exc:
        raise ValidationError(f"Unknown plan '{plan}'", field="plan") from exc
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        return None
    tenant.plan = tier.value
    await commit_or_raise(db, "change_plan")
    await db.refresh(tenant)
    logger.info("Tenant plan changed: id=%d plan=%s", tenant.id, tenant.plan)
    return tenant


async def suspend_tenant(tenant_id: int, db: AsyncSession) -> Tenant | None:
    """
    Set a tenant's status to 'suspended'.

    Every user of a suspended tenant is denied a tenant context immediately.
    Returns None if the tenant does not exist.
    """
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        return None
    tenant.status = TenantStatus.suspended.value
    await commit_or_raise(db, "suspend_tenant")
    await db.refresh(tenant)
    logger.info("Tenant suspended: id=%d slug=%s", tenant.id, tenant.slug)
    return tenant


async def reactivate_tenant(tenant_id: int, db: AsyncSession) -> Tenant | None:
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        return None
    tenant.status = TenantStatus.active.value
    await commit_or_raise(db, "reactivate_tenant")
    await db.refresh(tenant)
    logger.info("Tenant reactivated: id=%d slug=%s", tenant.id, tenant.slug)
    return tenant


async def delete_tenant(tenant_id: int, db: AsyncSession, cascade: bool = False) -> bool:
    """
    Hard-delete a tenant and everything it owns.

    Refuses while the tenant still has active users unless `cascade` is set,
    which makes the cascade an explicit admin decision.

    Returns True if the tenant was found and deleted, False otherwise.
    """
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        return False

    active_users = await db.execute(
        select(func.count(User.id)).where(User.tenant_id == tenant_id, User.status == UserStatus.active.value)
    )
    active_count = active_users.scalar() or 0
    if active_count and not cascade:
        raise InvalidOperationError(
            "Tenant still has active users; pass cascade=True to delete it with all its data",
            details={"tenant_id": tenant_id, "active_users": active_count},
        )

    slug = tenant.slug
    for model in (ResourceUsage, TenantSetting, StagingProject, User, Organization):
        await db.execute(delete(model).where(model.tenant_id == tenant_id))
    await db.delete(tenant)
    await commit_or_raise(db, "delete_tenant")
    logger.warning("Tenant deleted: id=%d slug=%s cascade=%s", tenant_id, slug, cascade)
    return True


async def get_tenant_users(tenant_id: int, db: AsyncSession) -> list[User]:
    """Return the tenant's users, newest first."""
    result = await db.execute(
        select(User).where(User.tenant_id == tenant_id).order_by(User.created_at.desc(), User.id.desc())
    )
    return list(result.scalars().all())


async def add_tenant_user(
    tenant_id: int,
    email: str,
    db: AsyncSession,
    name: str | None = None,
    role: str = DEFAULT_ROLE.value,
    organization_id: int | None = None,
) -> User:
    """
    Add a user to a tenant.

    Raises:
        ValidationError: unknown role, or an organization of another tenant
        DuplicateResourceError: email already used within the tenant
    """
    try:
        role = TenantRole(role).value
    except ValueError as exc:
        raise ValidationError(f"Unknown role '{role}'", field="role") from exc

    existing = await db.execute(select(User.id).where(User.tenant_id == tenant_id, User.email == email))
    if existing.scalar() is not None:
        raise DuplicateResourceError("User", "email", email)

    if organization_id is not None:
        org = await db.execute(
            select(Organization.id).where(Organization.id == organization_id, Organization.tenant_id == tenant_id)
        )
        if org.scalar() is None:
            raise ValidationError("Organization does not belong to this tenant", field="organization_id")

    user = User(
        email=email,
        name=name,
        role=role,
        status=UserStatus.active.value,
        tenant_id=tenant_id,
        organization_id=organization_id,
    )
    db.add(user)
    await commit_or_raise(db, "add_tenant_user")
    await db.refresh(user)
    logger.info("User added: tenant_id=%d user_id=%d role=%s", tenant_id, user.id, user.role)
    return user


async def get_tenant_stats(tenant_id: int, db: AsyncSession) -> dict[str, Any]:
    """Counts of users, projects and organizations plus this month's usage by resource type."""
    user_count = await db.execute(select(func.count(User.id)).where(User.tenant_id == tenant_id))
    project_count = await db.execute(
        select(func.count(StagingProject.id)).where(StagingProject.tenant_id == tenant_id)
    )
    organization_count = await db.execute(
        select(func.count(Organization.id)).where(Organization.tenant_id == tenant_id)
    )
    monthly_usage = await usage_summary(tenant_id, UsagePeriod.MONTHLY.value, db)

    return {
        "user_count": user_count.scalar() or 0,
        "project_count": project_count.scalar() or 0,
        "organization_count": organization_count.scalar() or 0,
        "monthly_usage": monthly_usage,
    }


async def get_tenant_settings(tenant_id: int, db: AsyncSession) -> dict[str, str]:
    """Return the tenant's key/value settings as a dict."""
    result = await db.execute(select(TenantSetting).where(TenantSetting.tenant_id == tenant_id))
    return {setting.setting_key: setting.setting_value for setting in result.scalars().all()}


async def update_tenant_setting(tenant_id: int, key: str, value: str, db: AsyncSession) -> TenantSetting:
    """Create the (tenant, key) setting or replace its value."""
    result = await db.execute(
        select(TenantSetting).where(TenantSetting.tenant_id == tenant_id, TenantSetting.setting_key == key)
    )
    setting = result.scalars().first()
    if setting is None:
        setting = TenantSetting(tenant_id=tenant_id, setting_key=key, setting_value=value)
        db.add(setting)
    else:
        setting.setting_value = value
    await commit_or_raise(db, "update_tenant_setting")
    await db.refresh(setting)
    return setting
