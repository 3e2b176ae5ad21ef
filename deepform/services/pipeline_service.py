"""PipelineService: one-shot Facts -> Hypotheses -> Requirements -> Specification run.

The caller acquires the session's pipeline lease before streaming starts so
a concurrent run is rejected with 409 rather than an in-stream error. The
event generator releases the lease when it finishes, fails or is closed.
"""

from collections.abc import AsyncIterator

import structlog

from deepform.core.exceptions import GenerationError
from deepform.core.lease import PipelineLeaseManager
from deepform.domain.lifecycle import PIPELINE_STAGES
from deepform.schemas.events import sse_event
from deepform.services.stage_service import StageService

logger = structlog.get_logger(__name__)


class PipelineService:
    """Runs the pipeline stages in order and reports progress as named SSE events."""

    def __init__(self, stages: StageService, leases: PipelineLeaseManager):
        self.stages = stages
        self.leases = leases

    async def acquire(self, session_id: str) -> str | None:
        return await self.leases.acquire(session_id)

    async def run_events(self, session_id: str, lease_token: str, lang: str | None = None) -> AsyncIterator[str]:
        """Yield ``stage`` (running, then done with data) per stage, then ``done``.

        On failure an ``error`` event names the stage and the run stops.
        Artifacts written by earlier stages are kept.
        """
        logger.info("pipeline_started", session_id=session_id)
        current = None
        try:
            for stage in PIPELINE_STAGES:
                current = stage.value
                yield sse_event("stage", {"stage": current, "status": "running"})
                artifact = await self.stages.run(session_id, stage, lang)
                yield sse_event("stage", {"stage": current, "status": "done", "data": artifact})

            logger.info("pipeline_completed", session_id=session_id)
            yield sse_event("done", {})
        except GenerationError as e:
            logger.warning("pipeline_stage_failed", session_id=session_id, stage=current, error=str(e))
            yield sse_event("error", {"stage": current, "error": "Generation failed"})
        except Exception as e:
            logger.error(
                "pipeline_stage_failed",
                session_id=session_id,
                stage=current,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            message = getattr(e, "detail", None) or "Internal server error"
            yield sse_event("error", {"stage": current, "error": message})
        finally:
            await self.leases.release(session_id, lease_token)
