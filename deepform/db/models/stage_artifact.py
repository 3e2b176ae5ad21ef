"""StageArtifact model: one structured result per (session, stage)."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, UniqueConstraint

from deepform.db.base import Base


class StageArtifact(Base):
    """Structured JSON output of one stage for one session.

    Re-running a stage overwrites ``data`` in place through an
    INSERT ... ON CONFLICT upsert on the unique key below.
    """

    __tablename__ = "stage_artifacts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(36), ForeignKey("interview_sessions.id"), nullable=False, index=True)
    stage = Column(String(32), nullable=False)  # StageType value

    data = Column(JSON, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (UniqueConstraint("session_id", "stage", name="uq_session_stage"),)
