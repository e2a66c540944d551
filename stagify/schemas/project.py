"""
Staging Project Schemas
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProjectResponse(BaseModel):
    """Staging project as returned to tenant members"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None = None
    style: str
    status: str
    original_image_url: str
    staged_image_url: str | None = None
    error_message: str | None = None
    user_id: int
    organization_id: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_")
    created_at: datetime
    updated_at: datetime | None = None


class ProjectListResponse(BaseModel):
    items: list[ProjectResponse]
    skip: int
    limit: int
