import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from stagify.constants.roles import DEFAULT_ROLE
from stagify.database import Base


class UserStatus(str, enum.Enum):
    active = "active"
    invited = "invited"
    deactivated = "deactivated"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(320), nullable=False)
    name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=DEFAULT_ROLE.value)  # viewer | member | admin | owner
    status = Column(String(20), nullable=False, default=UserStatus.active.value)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    tenant = relationship("Tenant", lazy="joined")
    organization = relationship("Organization", lazy="joined")

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_user_tenant_email"),
        Index("ix_users_tenant_id", "tenant_id"),
    )
