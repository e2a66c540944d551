"""
Role Constants for Stagify

Tenant roles form a single total order. Adding a role means adding a member
to TenantRole and a rank to ROLE_HIERARCHY; no code paths branch on a
specific role.
"""

from enum import Enum


class TenantRole(str, Enum):
    """Enumeration of role names within a tenant."""

    VIEWER = "viewer"
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"


# Default role for users added to an existing tenant
DEFAULT_ROLE = TenantRole.MEMBER

# Role hierarchy (higher number = more permissions)
ROLE_HIERARCHY: dict[TenantRole, int] = {
    TenantRole.VIEWER: 0,
    TenantRole.MEMBER: 1,
    TenantRole.ADMIN: 2,
    TenantRole.OWNER: 3,
}


def get_role_rank(role: str) -> int | None:
    """Return the rank of a role, or None when the role is not recognised."""
    try:
        return ROLE_HIERARCHY.get(TenantRole(role))
    except ValueError:
        return None
