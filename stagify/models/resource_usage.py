"""
ResourceUsage model: append-only metering log.

Rows are inserted once per completed metered action and never updated or
deleted by the application; quota aggregation sums them over a period window.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, String

from stagify.database import Base


class ResourceUsage(Base):
    __tablename__ = "resource_usage"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    resource_type = Column(String(50), nullable=False)  # staging | storage_bytes | api_call
    amount = Column(BigInteger, nullable=False)
    period = Column(String(20), nullable=False)  # daily | monthly
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("idx_usage_tenant_type_created", "tenant_id", "resource_type", "created_at"),)
