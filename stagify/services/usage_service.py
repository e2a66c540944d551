"""
Usage Metering Store & Quota Evaluator

record_usage() appends one ResourceUsage row per completed metered action.
current_usage() sums a tenant's rows of one resource type inside the current
calendar window (day or month) of the reference timezone. check_quota()
compares that sum with the plan limit and reports what remains; it never
blocks by itself. The request gate decides what to do with remaining <= 0;
require_quota() rejects an action whose size would not fit the remaining
allowance, for resources metered in amounts larger than one.

Recording is not idempotent. Callers record after the metered action has
definitively succeeded, and never again for a retry of an already-recorded
attempt.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stagify.config import settings
from stagify.constants.plans import RESOURCE_PERIODS, ResourceType, UsagePeriod
from stagify.database import commit_or_raise
from stagify.exceptions import QuotaExceededError, ValidationError
from stagify.models.resource_usage import ResourceUsage
from stagify.models.tenant import Tenant
from stagify.services.access_control import get_plan_limit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaStatus:
    resource_type: str
    period: str
    used: int
    limit: int
    remaining: int

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0


def resource_period(resource_type: str) -> UsagePeriod:
    """Aggregation window of a resource type; monthly unless configured otherwise."""
    try:
        return RESOURCE_PERIODS.get(ResourceType(resource_type), UsagePeriod.MONTHLY)
    except ValueError:
        return UsagePeriod.MONTHLY


def period_window_start(period: str, now: datetime | None = None, tz_name: str | None = None) -> datetime:
    """
    Return the UTC instant at which the current period window opened.

    The window is a calendar day or calendar month in the reference timezone,
    starting at 00:00 (day 1 for months).
    """
    tz = ZoneInfo(tz_name or settings.usage_timezone)
    local_now = (now or datetime.now(timezone.utc)).astimezone(tz)
    start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    if UsagePeriod(period) == UsagePeriod.MONTHLY:
        start = start.replace(day=1)
    return start.astimezone(timezone.utc)


async def record_usage(
    tenant_id: int,
    resource_type: str,
    amount: int,
    db: AsyncSession,
    occurred_at: datetime | None = None,
) -> ResourceUsage:
    """Append one usage event for a tenant."""
    resource = ResourceType(resource_type)
    if amount < 0:
        raise ValidationError("Usage amount cannot be negative", field="amount")

    event = ResourceUsage(
        tenant_id=tenant_id,
        resource_type=resource.value,
        amount=amount,
        period=resource_period(resource).value,
        created_at=occurred_at or datetime.now(timezone.utc),
    )
    db.add(event)
    await commit_or_raise(db, "record_usage")
    logger.info("Usage recorded: tenant_id=%d resource=%s amount=%d", tenant_id, resource.value, amount)
    return event


async def current_usage(
    tenant_id: int,
    resource_type: str,
    period: str,
    db: AsyncSession,
    now: datetime | None = None,
) -> int:
    """Sum of a tenant's usage of one resource type inside the current window."""
    window_start = period_window_start(period, now=now)
    conditions = [
        ResourceUsage.tenant_id == tenant_id,
        ResourceUsage.resource_type == ResourceType(resource_type).value,
        ResourceUsage.created_at >= window_start,
    ]
    if now is not None:
        conditions.append(ResourceUsage.created_at <= now.astimezone(timezone.utc))

    result = await db.execute(select(func.coalesce(func.sum(ResourceUsage.amount), 0)).where(*conditions))
    return int(result.scalar() or 0)


async def check_quota(
    tenant_id: int,
    resource_type: str,
    db: AsyncSession,
    plan: str | None = None,
    now: datetime | None = None,
) -> QuotaStatus:
    """
    Compare the current window's usage against the plan limit.

    The plan is read from the tenant record when not supplied.
    """
    if plan is None:
        result = await db.execute(select(Tenant.plan).where(Tenant.id == tenant_id))
        plan = result.scalar()

    period = resource_period(resource_type)
    used = await current_usage(tenant_id, resource_type, period.value, db, now=now)
    limit = get_plan_limit(plan, resource_type)
    return QuotaStatus(
        resource_type=ResourceType(resource_type).value,
        period=period.value,
        used=used,
        limit=limit,
        remaining=max(0, limit - used),
    )


async def require_quota(
    tenant_id: int,
    resource_type: str,
    amount: int,
    db: AsyncSession,
    plan: str | None = None,
) -> QuotaStatus:
    """
    Check that `amount` more units of a resource fit in the current window.

    Raises:
        QuotaExceededError: used + amount exceeds the plan limit
    """
    quota = await check_quota(tenant_id, resource_type, db, plan=plan)
    if quota.used + amount > quota.limit:
        logger.info(
            "Quota rejection: tenant_id=%d resource=%s used=%d amount=%d limit=%d",
            tenant_id,
            quota.resource_type,
            quota.used,
            amount,
            quota.limit,
        )
        raise QuotaExceededError(quota.resource_type, quota.used, quota.limit, quota.period)
    return quota


async def usage_summary(
    tenant_id: int,
    period: str,
    db: AsyncSession,
    now: datetime | None = None,
) -> dict[str, int]:
    """Per-resource-type totals for the tenant within the current window."""
    window_start = period_window_start(period, now=now)
    result = await db.execute(
        select(ResourceUsage.resource_type, func.sum(ResourceUsage.amount))
        .where(ResourceUsage.tenant_id == tenant_id, ResourceUsage.created_at >= window_start)
        .group_by(ResourceUsage.resource_type)
    )
    return {resource_type: int(total) for resource_type, total in result.all()}
