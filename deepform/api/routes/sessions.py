"""Session routes: create, read and share."""

from fastapi import APIRouter, Depends

from deepform.core.auth import ClerkUser, require_auth
from deepform.db.base import get_session_factory
from deepform.schemas.sessions import CreateSessionRequest, CreateSessionResponse, ShareResponse
from deepform.services.session_service import SessionService

router = APIRouter()


@router.post("/sessions", response_model=CreateSessionResponse)
async def create_session(
    request: CreateSessionRequest,
    user: ClerkUser = Depends(require_auth),
):
    """Create an interview session for the authenticated user.

    Raises:
        HTTPException(400): If the theme is blank or too long
        HTTPException(429): If the user reached the session limit
    """
    service = SessionService(get_session_factory())
    return await service.create(user.user_id, request.theme)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, user: ClerkUser = Depends(require_auth)):
    """Session with its turns in sequence order and its stage artifacts."""
    service = SessionService(get_session_factory())
    return await service.get(user.user_id, session_id)


@router.post("/sessions/{session_id}/share", response_model=ShareResponse)
async def share_session(session_id: str, user: ClerkUser = Depends(require_auth)):
    service = SessionService(get_session_factory())
    return await service.share(user.user_id, session_id)
