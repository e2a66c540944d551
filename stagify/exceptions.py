"""
Custom Exception Classes for Stagify

Every rejection raised by the access, quota and staging layers carries a
stable machine-readable `error_code` so the presentation layer can render a
specific message ("upgrade plan", "quota reached") instead of a generic
failure.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Stable reason tags returned in every error response."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    NO_TENANT_CONTEXT = "NO_TENANT_CONTEXT"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"
    PLAN_FEATURE_DENIED = "PLAN_FEATURE_DENIED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    UPSTREAM_GENERATION_FAILURE = "UPSTREAM_GENERATION_FAILURE"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INVALID_OPERATION = "INVALID_OPERATION"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class StagifyError(Exception):
    """Base exception class for all Stagify errors"""

    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Access Exceptions
# ============================================================================


class UnauthenticatedError(StagifyError):
    """Raised when the identity provider yields no valid identity"""

    error_code = ErrorCode.UNAUTHENTICATED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


class NoTenantContextError(StagifyError):
    """Raised when an identity has no user, or its user or tenant is inactive"""

    error_code = ErrorCode.NO_TENANT_CONTEXT

    def __init__(self, message: str = "No active tenant context for this account"):
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN)


class InsufficientRoleError(StagifyError):
    """Raised when the caller's role ranks below the required role"""

    error_code = ErrorCode.INSUFFICIENT_ROLE

    def __init__(self, actual_role: str, required_role: str):
        super().__init__(
            message=f"Role '{actual_role}' cannot perform an action requiring '{required_role}'",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"role": actual_role, "required_role": required_role},
        )


class PlanFeatureDeniedError(StagifyError):
    """Raised when the tenant's plan does not include a feature"""

    error_code = ErrorCode.PLAN_FEATURE_DENIED

    def __init__(self, plan: str, feature: str):
        super().__init__(
            message=f"The '{plan}' plan does not include '{feature}'. Upgrade your plan to continue.",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"plan": plan, "feature": feature},
        )


class QuotaExceededError(StagifyError):
    """Raised when a metered resource has no remaining quota for the period"""

    error_code = ErrorCode.QUOTA_EXCEEDED

    def __init__(self, resource_type: str, used: int, limit: int, period: str):
        super().__init__(
            message=f"Quota reached for '{resource_type}' ({used}/{limit} this {period} period)",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={
                "resource_type": resource_type,
                "used": used,
                "limit": limit,
                "remaining": 0,
                "period": period,
            },
        )


# ============================================================================
# Collaborator Failures
# ============================================================================


class UpstreamGenerationError(StagifyError):
    """Raised when the image-generation service fails, times out or is aborted"""

    error_code = ErrorCode.UPSTREAM_GENERATION_FAILURE

    def __init__(self, message: str = "Image generation failed", project_id: int | None = None):
        details = {"project_id": project_id} if project_id is not None else {}
        super().__init__(message=message, status_code=status.HTTP_502_BAD_GATEWAY, details=details)


class PersistenceError(StagifyError):
    """Raised when a database operation fails"""

    error_code = ErrorCode.PERSISTENCE_FAILURE

    def __init__(self, message: str = "A database error occurred", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


# ============================================================================
# Resource & Validation Exceptions
# ============================================================================


class ResourceNotFoundError(StagifyError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ProjectNotFoundError(ResourceNotFoundError):
    """Raised when a staging project is not visible in the caller's tenant"""

    def __init__(self, project_id: Any | None = None):
        super().__init__(resource_type="StagingProject", resource_id=project_id)


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user is not found in the caller's tenant"""

    def __init__(self, user_id: Any | None = None):
        super().__init__(resource_type="User", resource_id=user_id)


class OrganizationNotFoundError(ResourceNotFoundError):
    """Raised when an organization is not found in the caller's tenant"""

    def __init__(self, organization_id: Any | None = None):
        super().__init__(resource_type="Organization", resource_id=organization_id)


class ValidationError(StagifyError):
    """Raised when input validation fails"""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=error_details)


class DuplicateResourceError(StagifyError):
    """Raised when attempting to create a duplicate resource"""

    error_code = ErrorCode.DUPLICATE_RESOURCE

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "field": field, "value": value},
        )


class InvalidStatusTransitionError(StagifyError):
    """Raised when an invalid status transition is attempted"""

    error_code = ErrorCode.INVALID_STATUS_TRANSITION

    def __init__(self, current_status: str, target_status: str, resource_type: str = "Resource"):
        super().__init__(
            message=f"Cannot transition {resource_type} from '{current_status}' to '{target_status}'",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "current_status": current_status, "target_status": target_status},
        )


class InvalidOperationError(StagifyError):
    """Raised when an operation is invalid in the current context"""

    error_code = ErrorCode.INVALID_OPERATION

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=details or {})
