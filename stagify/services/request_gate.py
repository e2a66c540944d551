"""
Request Gate: single admission point for tenant-scoped operations.

Each request walks

    UNAUTHENTICATED → CONTEXT_RESOLVED → ACCESS_CHECKED → (QUOTA_CHECKED) → ADMITTED

and any step may short-circuit to REJECTED with the first applicable reason:

    1. no identity                      → UnauthenticatedError
    2. no active tenant context         → NoTenantContextError
    3. role ranks below the requirement → InsufficientRoleError
    4. plan lacks the required feature  → PlanFeatureDeniedError
    5. metered resource has no quota    → QuotaExceededError

The gate only reads. An admitted caller records usage itself, after the
metered operation has completed.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from stagify.constants.roles import TenantRole
from stagify.exceptions import (
    InsufficientRoleError,
    NoTenantContextError,
    PlanFeatureDeniedError,
    QuotaExceededError,
    StagifyError,
    UnauthenticatedError,
)
from stagify.services.access_control import plan_has_feature, role_satisfies
from stagify.services.tenant_context import TenantContext, resolve_context
from stagify.services.usage_service import QuotaStatus, check_quota

if TYPE_CHECKING:
    from stagify.services.generation_service import GenerationClient

logger = logging.getLogger(__name__)


def _tag(value) -> str:
    return value.value if isinstance(value, enum.Enum) else str(value)


class GateStage(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    CONTEXT_RESOLVED = "context_resolved"
    ACCESS_CHECKED = "access_checked"
    QUOTA_CHECKED = "quota_checked"
    ADMITTED = "admitted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class GateRequirement:
    """What an operation needs: a minimum role, optionally a plan feature and a metered resource."""

    role: str = TenantRole.VIEWER.value
    feature: str | None = None
    resource_type: str | None = None


@dataclass(frozen=True)
class Admission:
    """Handed to the downstream operation once the gate admits a request."""

    context: TenantContext
    quota: QuotaStatus | None
    generation_client: GenerationClient | None

    @property
    def tenant_id(self) -> int:
        return self.context.tenant.id


@dataclass(frozen=True)
class GateDecision:
    stage: GateStage
    context: TenantContext | None = None
    quota: QuotaStatus | None = None
    error: StagifyError | None = None
    # Stages passed, in order, before admission or rejection
    trail: tuple[GateStage, ...] = ()

    @property
    def admitted(self) -> bool:
        return self.stage == GateStage.ADMITTED

    @property
    def reason(self) -> str | None:
        return self.error.error_code.value if self.error else None


class RequestGate:
    """Composition root binding identity, access control and quota to one request."""

    def __init__(self, db: AsyncSession, generation_client: GenerationClient | None = None):
        self.db = db
        self.generation_client = generation_client

    def _reject(self, trail: list[GateStage], error: StagifyError, **kwargs) -> GateDecision:
        logger.info("Request rejected after %s: %s", trail[-1].value, error.error_code.value)
        return GateDecision(stage=GateStage.REJECTED, error=error, trail=tuple(trail), **kwargs)

    async def evaluate(self, identity: int | None, requirement: GateRequirement) -> GateDecision:
        trail = [GateStage.UNAUTHENTICATED]
        if identity is None:
            return self._reject(trail, UnauthenticatedError())

        context = await resolve_context(identity, self.db)
        if context is None:
            return self._reject(trail, NoTenantContextError())
        trail.append(GateStage.CONTEXT_RESOLVED)

        if not role_satisfies(context.user.role, requirement.role):
            return self._reject(
                trail,
                InsufficientRoleError(context.user.role, _tag(requirement.role)),
                context=context,
            )

        if requirement.feature is not None and not plan_has_feature(context.tenant.plan, requirement.feature):
            return self._reject(
                trail,
                PlanFeatureDeniedError(context.tenant.plan, _tag(requirement.feature)),
                context=context,
            )
        trail.append(GateStage.ACCESS_CHECKED)

        quota = None
        if requirement.resource_type is not None:
            quota = await check_quota(context.tenant.id, requirement.resource_type, self.db, plan=context.tenant.plan)
            if quota.exhausted:
                return self._reject(
                    trail,
                    QuotaExceededError(quota.resource_type, quota.used, quota.limit, quota.period),
                    context=context,
                    quota=quota,
                )
            trail.append(GateStage.QUOTA_CHECKED)

        return GateDecision(stage=GateStage.ADMITTED, context=context, quota=quota, trail=tuple(trail))

    async def admit(self, identity: int | None, requirement: GateRequirement) -> Admission:
        """Evaluate and raise the first rejection reason unchanged."""
        decision = await self.evaluate(identity, requirement)
        if not decision.admitted:
            raise decision.error
        return Admission(
            context=decision.context,
            quota=decision.quota,
            generation_client=self.generation_client,
        )
