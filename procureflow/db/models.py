"""
SQLAlchemy ORM models for ProcureFlow.
Workflow state is stored one row per (workspace, artifact key).
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, UniqueConstraint, Index
from sqlalchemy.sql import func

from procureflow.db.session import Base


class WorkflowArtifact(Base):
    """A persisted stage artifact (or the currentStage marker) for one workspace."""
    __tablename__ = "workflow_artifacts"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(String(255), nullable=False)
    artifact_key = Column(String(50), nullable=False)
    value = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("workspace_id", "artifact_key", name="uq_workflow_artifact_key"),
        Index("ix_workflow_artifacts_workspace_id", "workspace_id"),
    )
