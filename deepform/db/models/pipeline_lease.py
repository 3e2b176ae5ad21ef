"""PipelineLease model: per-session guard against concurrent pipeline runs."""

from sqlalchemy import Column, Float, String

from deepform.db.base import Base


class PipelineLease(Base):
    __tablename__ = "pipeline_leases"

    session_id = Column(String(36), primary_key=True)
    token = Column(String(64), nullable=False)
    expires_at = Column(Float, nullable=False)  # epoch seconds
