"""
Access Control Evaluator

Two independent, pure allow/deny checks:

- role_satisfies: position in the role hierarchy
- plan_has_feature: membership in the plan tier's own feature set

Neither performs I/O or raises. Anything unrecognised is denied.
"""

from enum import Enum

from stagify.constants.plans import PLAN_FEATURES, PLAN_LIMITS, PlanTier, ResourceType
from stagify.constants.roles import get_role_rank


def role_satisfies(actual_role: str, required_role: str) -> bool:
    """
    Check whether actual_role ranks at or above required_role.

    Examples:
        role_satisfies("admin", "member") → True
        role_satisfies("viewer", "admin") → False
        role_satisfies("root", "viewer")  → False (unknown role)
    """
    actual_rank = get_role_rank(actual_role)
    required_rank = get_role_rank(required_role)
    if actual_rank is None or required_rank is None:
        return False
    return actual_rank >= required_rank


def _plan_tier(plan: str | None) -> PlanTier | None:
    if plan is None:
        return None
    try:
        return PlanTier(plan)
    except ValueError:
        return None


def plan_has_feature(plan: str | None, feature: str) -> bool:
    """Explicit membership lookup of feature in the plan tier's feature set."""
    tier = _plan_tier(plan)
    if tier is None:
        return False
    if isinstance(feature, Enum):
        feature = feature.value
    return feature in PLAN_FEATURES.get(tier, frozenset())


def get_plan_limit(plan: str | None, resource_type: str) -> int:
    """
    Return the per-period limit of a metered resource for a plan tier.

    An unknown tier or a resource with no configured limit yields 0, so an
    unconfigured resource is never treated as unrestricted.
    """
    tier = _plan_tier(plan)
    if tier is None:
        return 0
    try:
        resource = ResourceType(resource_type)
    except ValueError:
        return 0
    return PLAN_LIMITS.get(tier, {}).get(resource, 0)
