"""Shared-link respondent routes, addressed by the session's share token."""

from fastapi import APIRouter, Depends, HTTPException, Request

from deepform.agent.generator import Generator
from deepform.api.deps import dialogue_response, get_generator
from deepform.core.exceptions import GenerationError
from deepform.db.base import get_session_factory
from deepform.domain.lifecycle import SessionStatus, StageType
from deepform.schemas.sessions import ChatRequest, FeedbackRequest, LangRequest, StartRequest
from deepform.services.interview_service import InterviewService
from deepform.services.session_service import SessionService
from deepform.services.stage_service import StageService

router = APIRouter()


@router.get("/shared/{token}")
async def get_shared(token: str):
    return await SessionService(get_session_factory()).shared_info(token)


@router.post("/shared/{token}/start")
async def start_shared(
    token: str,
    request: Request,
    body: StartRequest | None = None,
    generator: Generator = Depends(get_generator),
):
    body = body or StartRequest()
    session_factory = get_session_factory()
    session_id = await SessionService(session_factory).resolve_shared(token)
    service = InterviewService(generator, session_factory)
    name = body.respondent_name.strip() if body.respondent_name else None
    pending = await service.begin_respondent_start(session_id, body.lang, name)
    return await dialogue_response(request, service, pending)


@router.post("/shared/{token}/chat")
async def chat_shared(
    token: str,
    body: ChatRequest,
    request: Request,
    generator: Generator = Depends(get_generator),
):
    session_factory = get_session_factory()
    session_id = await SessionService(session_factory).resolve_shared(token)
    service = InterviewService(generator, session_factory)
    pending = await service.begin_respondent_chat(session_id, body.message, body.lang)
    return await dialogue_response(request, service, pending)


@router.post("/shared/{token}/complete")
async def complete_shared(
    token: str,
    body: LangRequest | None = None,
    generator: Generator = Depends(get_generator),
):
    """Extract facts from the respondent's interview and close it."""
    session_factory = get_session_factory()
    session_id = await SessionService(session_factory).resolve_shared(token)
    stages = StageService(generator, session_factory)
    try:
        return await stages.run(
            session_id,
            StageType.FACTS,
            body.lang if body else None,
            final_status=SessionStatus.RESPONDENT_DONE,
        )
    except GenerationError:
        raise HTTPException(status_code=500, detail="Generation failed")


@router.post("/shared/{token}/feedback")
async def feedback_shared(token: str, body: FeedbackRequest):
    service = SessionService(get_session_factory())
    session_id = await service.resolve_shared(token)
    return await service.save_feedback(session_id, body.feedback)
