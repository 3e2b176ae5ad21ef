"""Re-export all models so Base.metadata sees them."""

from deepform.db.models.campaign import Campaign
from deepform.db.models.interview_session import InterviewSession
from deepform.db.models.pipeline_lease import PipelineLease
from deepform.db.models.stage_artifact import StageArtifact
from deepform.db.models.turn import Turn

__all__ = [
    "Campaign",
    "InterviewSession",
    "PipelineLease",
    "StageArtifact",
    "Turn",
]
