"""
Tenant model: root aggregate of the multi-tenant schema.

Each Tenant is an isolated billing account. Users, organizations, staging
projects, usage events and settings all carry a non-nullable tenant_id FK and
are only ever queried with that column pinned to the caller's tenant.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint

from stagify.constants.plans import DEFAULT_PLAN
from stagify.database import Base


class TenantStatus(str, enum.Enum):
    active = "active"
    suspended = "suspended"
    deleted = "deleted"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)  # URL-safe, e.g. "acme"
    domain = Column(String(253), nullable=True, unique=True)  # optional custom domain, e.g. "stage.acme.com"
    logo_url = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=TenantStatus.active.value)
    plan = Column(String(50), nullable=False, default=DEFAULT_PLAN.value)  # "free" | "pro" | "enterprise"
    settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (Index("idx_tenant_status", "status"),)


class TenantSetting(Base):
    """Tenant-scoped key/value pair, unique per (tenant, key)."""

    __tablename__ = "tenant_settings"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    setting_key = Column(String(100), nullable=False)
    setting_value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (UniqueConstraint("tenant_id", "setting_key", name="uq_tenant_setting_key"),)
