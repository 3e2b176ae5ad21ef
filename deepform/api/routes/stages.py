"""Stage generator routes. Each runs one stage and returns its artifact."""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from deepform.agent.generator import Generator
from deepform.api.deps import get_generator
from deepform.core.auth import ClerkUser, require_auth
from deepform.core.exceptions import GenerationError
from deepform.db.base import get_session_factory
from deepform.domain.lifecycle import StageType
from deepform.schemas.sessions import LangRequest
from deepform.services.stage_service import StageService

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _run_stage(
    stage: StageType, session_id: str, body: LangRequest | None, user: ClerkUser, generator: Generator
) -> dict:
    service = StageService(generator, get_session_factory())
    try:
        return await service.run_for_owner(user.user_id, session_id, stage, body.lang if body else None)
    except GenerationError as e:
        logger.warning("stage_generation_failed", session_id=session_id, stage=stage.value, error=str(e))
        raise HTTPException(status_code=500, detail="Generation failed")


@router.post("/sessions/{session_id}/analyze")
async def analyze(
    session_id: str,
    body: LangRequest | None = None,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
):
    """Extract facts from the interview transcript."""
    return await _run_stage(StageType.FACTS, session_id, body, user, generator)


@router.post("/sessions/{session_id}/hypotheses")
async def hypotheses(
    session_id: str,
    body: LangRequest | None = None,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
):
    return await _run_stage(StageType.HYPOTHESES, session_id, body, user, generator)


@router.post("/sessions/{session_id}/requirements")
async def requirements(
    session_id: str,
    body: LangRequest | None = None,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
):
    return await _run_stage(StageType.REQUIREMENTS, session_id, body, user, generator)


@router.post("/sessions/{session_id}/specification")
async def specification(
    session_id: str,
    body: LangRequest | None = None,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
):
    """Generate the implementation spec plus the PRD rendered as Markdown."""
    return await _run_stage(StageType.SPECIFICATION, session_id, body, user, generator)


@router.post("/sessions/{session_id}/readiness")
async def readiness(
    session_id: str,
    body: LangRequest | None = None,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
):
    return await _run_stage(StageType.READINESS, session_id, body, user, generator)
