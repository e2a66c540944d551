"""
FastAPI dependencies binding requests to the request gate.

`require_access(role, feature, resource_type)` builds a dependency that runs
the gate and yields an Admission, or raises the gate's first rejection. The
generation client and object storage are read from app.state, where
create_app() placed them.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from stagify.auth import get_identity
from stagify.constants.roles import TenantRole
from stagify.database import get_db
from stagify.middleware.logging import bind_tenant
from stagify.services.generation_service import GenerationClient
from stagify.services.request_gate import Admission, GateRequirement, RequestGate
from stagify.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)


def get_generation_client(request: Request) -> GenerationClient | None:
    return getattr(request.app.state, "generation_client", None)


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


async def gate_request(
    request: Request,
    identity: int | None,
    db: AsyncSession,
    requirement: GateRequirement,
) -> Admission:
    """Run the gate for one request and tag request.state for access logging."""
    gate = RequestGate(db, generation_client=get_generation_client(request))
    admission = await gate.admit(identity, requirement)
    request.state.tenant_id = admission.tenant_id
    request.state.user_id = admission.context.user_id
    bind_tenant(admission.tenant_id)
    return admission


def require_access(
    role: str = TenantRole.VIEWER.value,
    feature: str | None = None,
    resource_type: str | None = None,
):
    """
    Dependency factory for gated routes.

    Usage:
        admission: Admission = Depends(require_access(TenantRole.ADMIN))
    """
    requirement = GateRequirement(role=role, feature=feature, resource_type=resource_type)

    async def dependency(
        request: Request,
        identity: int | None = Depends(get_identity),
        db: AsyncSession = Depends(get_db),
    ) -> Admission:
        return await gate_request(request, identity, db, requirement)

    return dependency
