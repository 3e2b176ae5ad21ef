"""InterviewSession model: one respondent's interview-to-specification run."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text

from deepform.db.base import Base


class InterviewSession(Base):
    """Interview session with lifecycle status and respondent metadata."""

    __tablename__ = "interview_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Owner account; respondent sessions created through a campaign have none
    clerk_user_id = Column(String(255), nullable=True, index=True)

    theme = Column(String(500), nullable=False)
    status = Column(String(32), nullable=False, default="interviewing")  # SessionStatus value
    mode = Column(String(32), nullable=False, default="self")  # self, shared, campaign_respondent

    # Shared-link and campaign respondent fields
    share_token = Column(String(64), nullable=True, unique=True)
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=True, index=True)
    respondent_name = Column(String(100), nullable=True)
    respondent_feedback = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
