"""
Plan Constants for Stagify

Feature gating and quota limits are plain lookup tables keyed by plan tier.
Each tier lists its own features and limits in full: lookups never assume
that a higher tier contains a lower one.
"""

from enum import Enum


class PlanTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class Feature(str, Enum):
    BASIC_STAGING = "basic_staging"
    ADVANCED_STAGING = "advanced_staging"
    FIVE_PROJECTS = "5_projects"
    UNLIMITED_PROJECTS = "unlimited_projects"
    SINGLE_USER = "1_user"
    TEAM_MEMBERS = "team_members"
    CUSTOM_BRANDING = "custom_branding"
    API_ACCESS = "api_access"
    PRIORITY_SUPPORT = "priority_support"
    CUSTOM_DOMAIN = "custom_domain"


class ResourceType(str, Enum):
    """Metered resources tracked for quota purposes."""

    STAGING = "staging"
    STORAGE_BYTES = "storage_bytes"
    API_CALL = "api_call"


class UsagePeriod(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"


DEFAULT_PLAN = PlanTier.FREE

PLAN_FEATURES: dict[PlanTier, frozenset[str]] = {
    PlanTier.FREE: frozenset(
        {
            Feature.BASIC_STAGING.value,
            Feature.FIVE_PROJECTS.value,
            Feature.SINGLE_USER.value,
        }
    ),
    PlanTier.PRO: frozenset(
        {
            Feature.BASIC_STAGING.value,
            Feature.ADVANCED_STAGING.value,
            Feature.UNLIMITED_PROJECTS.value,
            Feature.TEAM_MEMBERS.value,
            Feature.CUSTOM_BRANDING.value,
        }
    ),
    PlanTier.ENTERPRISE: frozenset(
        {
            Feature.BASIC_STAGING.value,
            Feature.ADVANCED_STAGING.value,
            Feature.UNLIMITED_PROJECTS.value,
            Feature.TEAM_MEMBERS.value,
            Feature.CUSTOM_BRANDING.value,
            Feature.API_ACCESS.value,
            Feature.PRIORITY_SUPPORT.value,
            Feature.CUSTOM_DOMAIN.value,
        }
    ),
}

# Per-period ceilings. A resource missing from a tier's table has limit 0.
PLAN_LIMITS: dict[PlanTier, dict[ResourceType, int]] = {
    PlanTier.FREE: {
        ResourceType.STAGING: 10,
        ResourceType.STORAGE_BYTES: 500 * 1024 * 1024,
    },
    PlanTier.PRO: {
        ResourceType.STAGING: 100,
        ResourceType.STORAGE_BYTES: 10 * 1024 * 1024 * 1024,
    },
    PlanTier.ENTERPRISE: {
        ResourceType.STAGING: 1_000,
        ResourceType.STORAGE_BYTES: 100 * 1024 * 1024 * 1024,
        ResourceType.API_CALL: 10_000,
    },
}

# Window over which each resource is aggregated
RESOURCE_PERIODS: dict[ResourceType, UsagePeriod] = {
    ResourceType.STAGING: UsagePeriod.MONTHLY,
    ResourceType.STORAGE_BYTES: UsagePeriod.MONTHLY,
    ResourceType.API_CALL: UsagePeriod.DAILY,
}

# Project cap for plans without Feature.UNLIMITED_PROJECTS
LIMITED_PLAN_MAX_PROJECTS = 5
