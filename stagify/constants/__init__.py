"""Constants package for Stagify."""

from .plans import (
    DEFAULT_PLAN,
    LIMITED_PLAN_MAX_PROJECTS,
    PLAN_FEATURES,
    PLAN_LIMITS,
    RESOURCE_PERIODS,
    Feature,
    PlanTier,
    ResourceType,
    UsagePeriod,
)
from .roles import DEFAULT_ROLE, ROLE_HIERARCHY, TenantRole, get_role_rank

__all__ = [
    # Role constants
    "TenantRole",
    "DEFAULT_ROLE",
    "ROLE_HIERARCHY",
    "get_role_rank",
    # Plan constants
    "PlanTier",
    "Feature",
    "ResourceType",
    "UsagePeriod",
    "DEFAULT_PLAN",
    "PLAN_FEATURES",
    "PLAN_LIMITS",
    "RESOURCE_PERIODS",
    "LIMITED_PLAN_MAX_PROJECTS",
]
