"""
Tenant Routes

POST   /api/v1/tenants/signup                  → create tenant + owner (public)
GET    /api/v1/tenant                          → current tenant (viewer)
PATCH  /api/v1/tenant                          → update profile (admin; domain needs custom_domain)
GET    /api/v1/tenant/stats                    → counts and monthly usage (viewer)
GET    /api/v1/tenant/users                    → list users (admin)
POST   /api/v1/tenant/users                    → add user (admin + team_members)
GET    /api/v1/tenant/settings                 → key/value settings (member)
PUT    /api/v1/tenant/settings/{key}           → upsert setting (admin)
GET    /api/v1/tenant/organizations            → list organizations (viewer)
POST   /api/v1/tenant/organizations            → create organization (admin)

Every /tenant route acts on the caller's own tenant; there is no path
parameter naming a tenant.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from stagify.auth import create_access_token
from stagify.constants.plans import Feature
from stagify.constants.roles import TenantRole
from stagify.database import get_db
from stagify.dependencies import require_access
from stagify.exceptions import PlanFeatureDeniedError, ResourceNotFoundError
from stagify.schemas import (
    OrganizationCreate,
    OrganizationResponse,
    SignupResponse,
    TenantResponse,
    TenantSettingResponse,
    TenantSettingUpdate,
    TenantSignup,
    TenantStatsResponse,
    TenantUpdate,
    TenantUserCreate,
    TenantUserResponse,
)
from stagify.services.access_control import plan_has_feature
from stagify.services.organization_service import create_organization, list_organizations
from stagify.services.request_gate import Admission
from stagify.services.tenant_service import (
    add_tenant_user,
    create_tenant,
    get_tenant_by_id,
    get_tenant_settings,
    get_tenant_stats,
    get_tenant_users,
    update_tenant,
    update_tenant_setting,
)

router = APIRouter(tags=["Tenants"])
logger = logging.getLogger(__name__)


@router.post("/tenants/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup_route(payload: TenantSignup, db: AsyncSession = Depends(get_db)) -> SignupResponse:
    """Create a tenant with its owner and return a token for the owner."""
    tenant, owner = await create_tenant(
        name=payload.name,
        slug=payload.slug,
        owner_email=payload.owner_email,
        db=db,
        owner_name=payload.owner_name,
        plan=payload.plan.value,
        domain=payload.domain,
    )
    return SignupResponse(
        tenant=TenantResponse.model_validate(tenant),
        owner_id=owner.id,
        access_token=create_access_token({"sub": owner.id}),
    )


@router.get("/tenant", response_model=TenantResponse)
async def get_current_tenant_route(
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.VIEWER.value)),
):
    tenant = await get_tenant_by_id(admission.tenant_id, db)
    if tenant is None:
        raise ResourceNotFoundError("Tenant", admission.tenant_id)
    return tenant


@router.patch("/tenant", response_model=TenantResponse)
async def update_current_tenant_route(
    payload: TenantUpdate,
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.ADMIN.value)),
):
    """Update the caller's tenant profile. A custom domain needs the custom_domain feature."""
    updates = payload.model_dump(exclude_unset=True)
    plan = admission.context.tenant.plan
    if updates.get("domain") and not plan_has_feature(plan, Feature.CUSTOM_DOMAIN):
        raise PlanFeatureDeniedError(plan, Feature.CUSTOM_DOMAIN.value)

    tenant = await update_tenant(admission.tenant_id, updates, db)
    if tenant is None:
        raise ResourceNotFoundError("Tenant", admission.tenant_id)
    return tenant


@router.get("/tenant/stats", response_model=TenantStatsResponse)
async def tenant_stats_route(
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.VIEWER.value)),
):
    return await get_tenant_stats(admission.tenant_id, db)


@router.get("/tenant/users", response_model=list[TenantUserResponse])
async def list_tenant_users_route(
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.ADMIN.value)),
):
    return await get_tenant_users(admission.tenant_id, db)


@router.post("/tenant/users", response_model=TenantUserResponse, status_code=status.HTTP_201_CREATED)
async def add_tenant_user_route(
    payload: TenantUserCreate,
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(
        require_access(TenantRole.ADMIN.value, feature=Feature.TEAM_MEMBERS.value)
    ),
):
    """Add a user to the caller's tenant (team plans only)."""
    return await add_tenant_user(
        admission.tenant_id,
        payload.email,
        db,
        name=payload.name,
        role=payload.role.value,
        organization_id=payload.organization_id,
    )


@router.get("/tenant/settings", response_model=dict[str, str | None])
async def get_tenant_settings_route(
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.MEMBER.value)),
):
    return await get_tenant_settings(admission.tenant_id, db)


@router.put("/tenant/settings/{key}", response_model=TenantSettingResponse)
async def update_tenant_setting_route(
    key: str,
    payload: TenantSettingUpdate,
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.ADMIN.value)),
):
    return await update_tenant_setting(admission.tenant_id, key, payload.value, db)


@router.get("/tenant/organizations", response_model=list[OrganizationResponse])
async def list_organizations_route(
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.VIEWER.value)),
):
    return await list_organizations(admission.tenant_id, db)


@router.post("/tenant/organizations", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization_route(
    payload: OrganizationCreate,
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.ADMIN.value)),
):
    return await create_organization(admission.tenant_id, payload.name, db)
