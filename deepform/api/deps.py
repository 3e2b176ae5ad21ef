"""Shared route dependencies and the dialogue response helper."""

import structlog
from fastapi import HTTPException, Request
from fastapi.responses import StreamingResponse

from deepform.agent.generator import Generator
from deepform.agent.generator_fake import GeneratorFake
from deepform.core.config import get_settings
from deepform.core.exceptions import GenerationError
from deepform.core.lease import PipelineLeaseManager
from deepform.core.logging import bind_request_context
from deepform.db.base import get_session_factory
from deepform.db.redis import get_redis
from deepform.schemas.events import SSE_HEADERS, wants_event_stream
from deepform.services.funnel import FunnelTracker
from deepform.services.interview_service import InterviewService, PendingReply


async def bind_log_context(request: Request) -> None:
    """Start the request's log context from its path ids.

    Share tokens are left out: they grant access on their own.
    """
    structlog.contextvars.clear_contextvars()
    params = request.path_params
    bind_request_context(session_id=params.get("session_id"), campaign_id=params.get("campaign_id"))


def get_generator(request: Request) -> Generator:
    """Dependency that provides a Generator instance.

    Returns GeneratorReal in production (when ANTHROPIC_API_KEY is set).
    Falls back to GeneratorFake for local dev without API key.
    Override this dependency in tests via app.dependency_overrides.
    """
    settings = get_settings()

    if settings.anthropic_api_key:
        from deepform.agent.generator_real import GeneratorReal

        return GeneratorReal()
    return GeneratorFake()


def get_funnel() -> FunnelTracker:
    return FunnelTracker(get_redis())


def get_lease_manager() -> PipelineLeaseManager:
    return PipelineLeaseManager(get_session_factory())


async def dialogue_response(
    request: Request, service: InterviewService, pending: PendingReply | dict
):
    """Answer a dialogue call as a stream or as plain JSON.

    Streams when the client accepts ``text/event-stream``. A dict ``pending``
    is an already-decided answer (the interview was started before).
    """
    if isinstance(pending, dict):
        return pending

    if wants_event_stream(request.headers.get("accept")):
        return StreamingResponse(
            service.stream_reply(pending, request.is_disconnected),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    try:
        return await service.reply(pending)
    except GenerationError:
        raise HTTPException(status_code=500, detail="Generation failed")
