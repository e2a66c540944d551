from .tenant import Tenant, TenantSetting, TenantStatus
from .organization import Organization
from .user import User, UserStatus
from .staging_project import ProjectStatus, StagingProject, StagingStyle
from .resource_usage import ResourceUsage

__all__ = [
    "Tenant",
    "TenantSetting",
    "TenantStatus",
    "Organization",
    "User",
    "UserStatus",
    "StagingProject",
    "ProjectStatus",
    "StagingStyle",
    "ResourceUsage",
]
