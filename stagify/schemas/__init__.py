from .organization import OrganizationCreate, OrganizationResponse
from .project import ProjectListResponse, ProjectResponse
from .tenant import (
    SignupResponse,
    TenantResponse,
    TenantSettingResponse,
    TenantSettingUpdate,
    TenantSignup,
    TenantStatsResponse,
    TenantUpdate,
)
from .usage import QuotaStatusResponse
from .user import TenantUserCreate, TenantUserResponse

# Define the public API of this module
__all__ = [
    "OrganizationCreate",
    "OrganizationResponse",
    "ProjectListResponse",
    "ProjectResponse",
    "QuotaStatusResponse",
    "SignupResponse",
    "TenantResponse",
    "TenantSettingResponse",
    "TenantSettingUpdate",
    "TenantSignup",
    "TenantStatsResponse",
    "TenantUpdate",
    "TenantUserCreate",
    "TenantUserResponse",
]
