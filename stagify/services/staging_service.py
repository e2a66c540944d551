"""
Staging Workflow

Runs an admitted staging request end to end:

    validate photo -> project cap + storage quota -> store original
        -> pending project (+storage_bytes usage) -> processing
        -> generation client -> completed (+1 staging usage)
                             -> failed   (no staging usage, UpstreamGenerationError)

Every rejection happens before the original is written. Usage is recorded
only after the metered step succeeded: storage_bytes once the project row
holding the original is committed, staging once the staged image URL is saved.
"""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from stagify.config import settings
from stagify.constants.plans import ResourceType
from stagify.exceptions import UpstreamGenerationError
from stagify.models.staging_project import ProjectStatus, StagingProject
from stagify.services.generation_service import GenerationClient, GenerationError
from stagify.services.project_service import (
    create_project,
    ensure_project_capacity,
    get_project,
    parse_style,
    transition_status,
)
from stagify.services.request_gate import Admission
from stagify.services.storage_service import ObjectStorage, generate_file_key, validate_image_upload
from stagify.services.usage_service import record_usage, require_quota

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageUpload:
    data: bytes
    filename: str
    content_type: str | None


async def stage_room(
    admission: Admission,
    upload: ImageUpload,
    style: str,
    db: AsyncSession,
    storage: ObjectStorage,
    name: str | None = None,
) -> StagingProject:
    """
    Store the room photo and stage it with the admitted generation client.

    Raises:
        ValidationError: unknown style or unacceptable image
        PlanFeatureDeniedError: project cap reached on a limited plan
        QuotaExceededError: the photo does not fit the storage allowance
        UpstreamGenerationError: the generation service failed; the project
            is left in the failed state
    """
    context = admission.context
    style = parse_style(style).value
    width, height = validate_image_upload(
        upload.data, upload.content_type, upload.filename, settings.max_upload_bytes
    )
    size = len(upload.data)

    await ensure_project_capacity(context, db)
    await require_quota(context.tenant_id, ResourceType.STORAGE_BYTES.value, size, db, plan=context.tenant.plan)

    key = generate_file_key("originals", upload.filename)
    original_url = await storage.put(upload.data, upload.content_type, key)

    project = await create_project(
        context,
        style,
        original_image_key=key,
        original_image_url=original_url,
        db=db,
        name=name or upload.filename,
        metadata={"original_width": width, "original_height": height, "original_size": size},
    )
    await record_usage(context.tenant_id, ResourceType.STORAGE_BYTES.value, size, db)
    return await process_project(project, admission.generation_client, db)


async def process_project(
    project: StagingProject,
    client: GenerationClient | None,
    db: AsyncSession,
) -> StagingProject:
    """
    Drive a pending project through generation to completed or failed.

    Any failure of the generation call, including cancellation, leaves the
    project failed so it can be retried.
    """
    if client is None:
        raise UpstreamGenerationError("No image generation client is configured", project_id=project.id)

    project = await transition_status(project, ProjectStatus.PROCESSING, db, error_message=None)
    try:
        result = await asyncio.wait_for(
            client.stage_room(project.original_image_url, project.style),
            timeout=settings.generation_timeout_seconds,
        )
    except asyncio.CancelledError:
        await _mark_failed(project, "Generation was cancelled", db)
        raise
    except asyncio.TimeoutError as exc:
        await _mark_failed(project, "Generation timed out", db)
        raise UpstreamGenerationError("Image generation timed out", project_id=project.id) from exc
    except GenerationError as exc:
        await _mark_failed(project, str(exc), db)
        raise UpstreamGenerationError(f"Image generation failed: {exc}", project_id=project.id) from exc
    except Exception as exc:
        logger.exception("Unexpected generation client error for project id=%d", project.id)
        await _mark_failed(project, f"Unexpected generation error: {type(exc).__name__}", db)
        raise UpstreamGenerationError("Image generation failed", project_id=project.id) from exc

    metadata = dict(project.metadata_ or {})
    metadata.update(
        {
            "staged_width": result.width,
            "staged_height": result.height,
            "seed": result.seed,
            "generator": client.name,
        }
    )
    project = await transition_status(
        project,
        ProjectStatus.COMPLETED,
        db,
        staged_image_url=result.image_url,
        metadata_=metadata,
    )
    await record_usage(project.tenant_id, ResourceType.STAGING.value, 1, db)
    logger.info("Project id=%d staged for tenant_id=%d", project.id, project.tenant_id)
    return project


async def _mark_failed(project: StagingProject, message: str, db: AsyncSession) -> None:
    logger.error("Staging failed for project id=%d: %s", project.id, message)
    await transition_status(project, ProjectStatus.FAILED, db, error_message=message)


async def retry_project(admission: Admission, project_id: int, db: AsyncSession) -> StagingProject:
    """
    Re-run generation for a failed project of the caller's tenant.

    Raises:
        ProjectNotFoundError: no such project in the tenant
        InvalidStatusTransitionError: the project is not in the failed state
    """
    project = await get_project(admission.context, project_id, db)
    project = await transition_status(project, ProjectStatus.PENDING, db)
    logger.info("Retrying project id=%d", project.id)
    return await process_project(project, admission.generation_client, db)
