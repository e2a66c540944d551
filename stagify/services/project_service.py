"""
Staging Project Service

Every read and write is scoped by the caller's TenantContext; a project of
another tenant is indistinguishable from one that does not exist.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stagify.constants.plans import LIMITED_PLAN_MAX_PROJECTS, Feature
from stagify.database import commit_or_raise
from stagify.exceptions import (
    InvalidStatusTransitionError,
    PlanFeatureDeniedError,
    ProjectNotFoundError,
    ValidationError,
)
from stagify.models.staging_project import (
    ALLOWED_STATUS_TRANSITIONS,
    ProjectStatus,
    StagingProject,
    StagingStyle,
)
from stagify.services.access_control import plan_has_feature
from stagify.services.tenant_context import TenantContext

logger = logging.getLogger(__name__)

BASIC_STYLES = frozenset({StagingStyle.MODERN.value, StagingStyle.TRADITIONAL.value, StagingStyle.MINIMALIST.value})


def parse_style(style: str) -> StagingStyle:
    try:
        return StagingStyle(style)
    except ValueError as exc:
        raise ValidationError(
            f"Unknown staging style '{style}'",
            field="style",
            details={"allowed_styles": [s.value for s in StagingStyle]},
        ) from exc


def feature_for_style(style: str) -> str:
    """Plan feature a style requires: basic styles need basic_staging, the rest advanced_staging."""
    if parse_style(style).value in BASIC_STYLES:
        return Feature.BASIC_STAGING.value
    return Feature.ADVANCED_STAGING.value


async def count_projects(tenant_id: int, db: AsyncSession) -> int:
    result = await db.execute(select(func.count(StagingProject.id)).where(StagingProject.tenant_id == tenant_id))
    return result.scalar() or 0


async def ensure_project_capacity(context: TenantContext, db: AsyncSession) -> None:
    """Raise PlanFeatureDeniedError when a limited plan already holds its maximum projects."""
    if plan_has_feature(context.tenant.plan, Feature.UNLIMITED_PROJECTS):
        return
    if await count_projects(context.tenant_id, db) >= LIMITED_PLAN_MAX_PROJECTS:
        raise PlanFeatureDeniedError(context.tenant.plan, Feature.UNLIMITED_PROJECTS.value)


async def create_project(
    context: TenantContext,
    style: str,
    original_image_key: str,
    original_image_url: str,
    db: AsyncSession,
    name: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> StagingProject:
    """
    Create a pending project owned by the caller.

    Raises:
        PlanFeatureDeniedError: plan lacks unlimited_projects and the tenant
            already holds the maximum number of projects
    """
    style = parse_style(style).value
    await ensure_project_capacity(context, db)

    project = StagingProject(
        name=name,
        style=style,
        original_image_key=original_image_key,
        original_image_url=original_image_url,
        status=ProjectStatus.PENDING.value,
        tenant_id=context.tenant_id,
        user_id=context.user_id,
        organization_id=context.user.organization_id,
        metadata_=metadata or {},
    )
    db.add(project)
    await commit_or_raise(db, "create_project")
    await db.refresh(project)
    logger.info("Project created: tenant_id=%d project_id=%d style=%s", context.tenant_id, project.id, style)
    return project


async def get_project(context: TenantContext, project_id: int, db: AsyncSession) -> StagingProject:
    result = await db.execute(
        select(StagingProject).where(
            StagingProject.id == project_id,
            StagingProject.tenant_id == context.tenant_id,
        )
    )
    project = result.scalars().first()
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


async def list_projects(
    context: TenantContext,
    db: AsyncSession,
    status: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> list[StagingProject]:
    """Tenant's projects, newest first, optionally filtered by status."""
    query = select(StagingProject).where(StagingProject.tenant_id == context.tenant_id)
    if status is not None:
        query = query.where(StagingProject.status == ProjectStatus(status).value)
    query = query.order_by(StagingProject.created_at.desc(), StagingProject.id.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def transition_status(
    project: StagingProject,
    target: ProjectStatus,
    db: AsyncSession,
    **changes: Any,
) -> StagingProject:
    """
    Move a project along its status graph and apply `changes` in the same commit.

    Raises:
        InvalidStatusTransitionError: target is not reachable from the current status
    """
    current = ProjectStatus(project.status)
    if target not in ALLOWED_STATUS_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(current.value, target.value, resource_type="StagingProject")

    project.status = target.value
    for field, value in changes.items():
        setattr(project, field, value)
    await commit_or_raise(db, f"project_{target.value}")
    await db.refresh(project)
    logger.debug("Project id=%d: %s -> %s", project.id, current.value, target.value)
    return project
