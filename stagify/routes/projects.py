"""
Staging Project Routes

POST   /api/v1/projects               → upload a room photo and stage it (member)
GET    /api/v1/projects               → list the tenant's projects (viewer)
GET    /api/v1/projects/{id}          → get one project (viewer)
POST   /api/v1/projects/{id}/retry    → re-run a failed project (member)

Staging requests are gated on the style's plan feature and on the monthly
staging quota. The project cap and the storage allowance for the photo are
checked by stage_room before anything is stored.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from stagify.auth import get_identity
from stagify.constants.plans import ResourceType
from stagify.constants.roles import TenantRole
from stagify.database import get_db
from stagify.dependencies import gate_request, get_storage, require_access
from stagify.exceptions import ValidationError
from stagify.models.staging_project import ProjectStatus
from stagify.schemas import ProjectListResponse, ProjectResponse
from stagify.services.project_service import feature_for_style, get_project, list_projects
from stagify.services.request_gate import Admission, GateRequirement
from stagify.services.staging_service import ImageUpload, retry_project, stage_room
from stagify.services.storage_service import ObjectStorage

router = APIRouter(tags=["Projects"])
logger = logging.getLogger(__name__)


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project_route(
    request: Request,
    file: UploadFile = File(...),
    style: str = Form(...),
    name: str | None = Form(None),
    identity: int | None = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    """Upload a room photo and stage it in the requested style."""
    try:
        feature = feature_for_style(style)
    except ValidationError:
        # Unknown style is rejected by stage_room once the caller is admitted
        feature = None
    requirement = GateRequirement(
        role=TenantRole.MEMBER.value,
        feature=feature,
        resource_type=ResourceType.STAGING.value,
    )
    admission = await gate_request(request, identity, db, requirement)

    upload = ImageUpload(
        data=await file.read(),
        filename=file.filename or "upload",
        content_type=file.content_type,
    )
    return await stage_room(admission, upload, style, db, storage, name=name)


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects_route(
    status_filter: ProjectStatus | None = Query(None, alias="status"),
    skip: int = 0,
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.VIEWER.value)),
):
    projects = await list_projects(
        admission.context,
        db,
        status=status_filter.value if status_filter else None,
        skip=skip,
        limit=limit,
    )
    return ProjectListResponse(
        items=[ProjectResponse.model_validate(p) for p in projects],
        skip=skip,
        limit=limit,
    )


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project_route(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(require_access(TenantRole.VIEWER.value)),
):
    return await get_project(admission.context, project_id, db)


@router.post("/projects/{project_id}/retry", response_model=ProjectResponse)
async def retry_project_route(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    admission: Admission = Depends(
        require_access(TenantRole.MEMBER.value, resource_type=ResourceType.STAGING.value)
    ),
):
    """Retry a failed project. Counts against the staging quota only if it succeeds."""
    return await retry_project(admission, project_id, db)
