"""Campaign model: a themed group of respondent sessions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from deepform.db.base import Base


class Campaign(Base):
    """Campaign owned through the session it was created from."""

    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    theme = Column(String(500), nullable=False)
    owner_session_id = Column(String(36), nullable=False, unique=True, index=True)
    share_token = Column(String(64), nullable=False, unique=True, default=lambda: str(uuid.uuid4()))

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
