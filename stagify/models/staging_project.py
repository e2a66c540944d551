import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from stagify.database import Base


class ProjectStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class StagingStyle(str, enum.Enum):
    MODERN = "modern"
    TRADITIONAL = "traditional"
    MINIMALIST = "minimalist"
    SCANDINAVIAN = "scandinavian"
    INDUSTRIAL = "industrial"
    BOHEMIAN = "bohemian"


# Forward-only progression; failed -> pending is the retry edge
ALLOWED_STATUS_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.PENDING: frozenset({ProjectStatus.PROCESSING, ProjectStatus.FAILED}),
    ProjectStatus.PROCESSING: frozenset({ProjectStatus.COMPLETED, ProjectStatus.FAILED}),
    ProjectStatus.COMPLETED: frozenset(),
    ProjectStatus.FAILED: frozenset({ProjectStatus.PENDING}),
}


class StagingProject(Base):
    __tablename__ = "staging_projects"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=True)
    original_image_key = Column(String(500), nullable=False)
    original_image_url = Column(String(1000), nullable=False)
    staged_image_url = Column(String(1000), nullable=True)
    style = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default=ProjectStatus.PENDING.value)
    error_message = Column(Text, nullable=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True)
    # metadata_ avoids shadowing Base.metadata
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", lazy="joined")

    __table_args__ = (
        Index("idx_project_tenant_created", "tenant_id", "created_at"),
        Index("idx_project_tenant_status", "tenant_id", "status"),
    )
