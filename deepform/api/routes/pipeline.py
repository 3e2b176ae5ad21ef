"""One-shot pipeline route streaming named server-sent events."""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from deepform.agent.generator import Generator
from deepform.api.deps import get_generator, get_lease_manager
from deepform.core.auth import ClerkUser, require_auth
from deepform.core.exceptions import PipelineBusyError
from deepform.core.lease import PipelineLeaseManager
from deepform.db.base import get_session_factory
from deepform.schemas.events import SSE_HEADERS
from deepform.schemas.sessions import LangRequest
from deepform.services.artifact_store import ArtifactStore
from deepform.services.pipeline_service import PipelineService
from deepform.services.stage_service import StageService

router = APIRouter()


@router.post("/sessions/{session_id}/pipeline")
async def run_pipeline(
    session_id: str,
    body: LangRequest | None = None,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
    leases: PipelineLeaseManager = Depends(get_lease_manager),
):
    """Run facts, hypotheses, requirements and specification in order.

    Raises:
        HTTPException(404): If the session does not exist
        HTTPException(403): If the session belongs to someone else
        PipelineBusyError: If a pipeline run already holds the session lease (409)
    """
    session_factory = get_session_factory()
    async with session_factory() as db:
        await ArtifactStore(db).get_owned_session(session_id, user.user_id)

    service = PipelineService(StageService(generator, session_factory), leases)
    token = await service.acquire(session_id)
    if token is None:
        raise PipelineBusyError(session_id)

    return StreamingResponse(
        service.run_events(session_id, token, body.lang if body else None),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
