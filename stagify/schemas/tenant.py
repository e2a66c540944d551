"""
Tenant Schemas

Pydantic models for signup, tenant profile, stats and key/value settings.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from stagify.constants.plans import PlanTier

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class TenantSignup(BaseModel):
    """Public signup: creates the tenant and its owner in one step."""

    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=2, max_length=100, pattern=SLUG_PATTERN)
    owner_email: EmailStr
    owner_name: str | None = Field(None, max_length=200)
    plan: PlanTier = PlanTier.FREE
    domain: str | None = Field(None, max_length=255)


class TenantUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    domain: str | None = Field(None, max_length=255)
    logo_url: str | None = Field(None, max_length=1000)
    settings: dict[str, Any] | None = None


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    domain: str | None = None
    logo_url: str | None = None
    status: str
    plan: str
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime | None = None


class SignupResponse(BaseModel):
    tenant: TenantResponse
    owner_id: int
    access_token: str
    token_type: str = "bearer"


class TenantStatsResponse(BaseModel):
    user_count: int
    project_count: int
    organization_count: int
    monthly_usage: dict[str, int] = Field(default_factory=dict)


class TenantSettingUpdate(BaseModel):
    value: str = Field(..., max_length=10_000)


class TenantSettingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    setting_key: str
    setting_value: str | None = None
    updated_at: datetime | None = None
