"""Owner interview routes: start and chat.

Both stream server-sent events when the client sends
``Accept: text/event-stream`` and return plain JSON otherwise.
"""

from fastapi import APIRouter, Depends, Request

from deepform.agent.generator import Generator
from deepform.api.deps import dialogue_response, get_generator
from deepform.core.auth import ClerkUser, require_auth
from deepform.db.base import get_session_factory
from deepform.schemas.sessions import ChatRequest, LangRequest
from deepform.services.interview_service import InterviewService

router = APIRouter()


@router.post("/sessions/{session_id}/start")
async def start_interview(
    session_id: str,
    request: Request,
    body: LangRequest | None = None,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
):
    """Generate the opening question.

    Returns ``{reply, alreadyStarted: true}`` without generating when the
    session already has turns.
    """
    lang = body.lang if body else None
    service = InterviewService(generator, get_session_factory())
    pending = await service.begin_owner_start(user.user_id, session_id, lang)
    return await dialogue_response(request, service, pending)


@router.post("/sessions/{session_id}/chat")
async def chat(
    session_id: str,
    body: ChatRequest,
    request: Request,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
):
    """Append the user's message and produce the next interviewer turn.

    Raises:
        HTTPException(400): If the message is empty or too long
        HTTPException(403): If the session belongs to someone else
        HTTPException(404): If the session does not exist
        HTTPException(500): If generation fails (JSON mode only)
    """
    service = InterviewService(generator, get_session_factory())
    pending = await service.begin_owner_chat(user.user_id, session_id, body.message, body.lang)
    return await dialogue_response(request, service, pending)
