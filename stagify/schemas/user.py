from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from stagify.constants.roles import DEFAULT_ROLE, TenantRole


class TenantUserCreate(BaseModel):
    email: EmailStr = Field(..., description="A valid email address.")
    name: str | None = Field(None, max_length=200)
    role: TenantRole = DEFAULT_ROLE
    organization_id: int | None = None


class TenantUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str | None = None
    role: str
    status: str
    organization_id: int | None = None
    created_at: datetime
