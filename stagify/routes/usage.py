"""
Usage Routes

GET /api/v1/usage/{resource_type} → quota position for the current period (viewer)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stagify.constants.plans import ResourceType
from stagify.constants.roles import TenantRole
from stagify.database import get_db
from stagify.dependencies import require_access
from stagify.schemas import QuotaStatusResponse
from stagify.services.request_gate import Admission
from stagify.services.usage_service import check_quota

router = APIRouter(tags=["Usage"])


@router.get("/usage/{resource_type}", response_model=QuotaStatusResponse)
async def quota_status_route(
    resource_type: ResourceType,
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.VIEWER.value)),
):
    """How much of a metered resource the tenant has used and has left."""
    return await check_quota(
        admission.tenant_id,
        resource_type.value,
        db,
        plan=admission.context.tenant.plan,
    )
