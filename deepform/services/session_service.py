"""SessionService: session create/read and shared-link management."""

import uuid

import structlog
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deepform.core.config import get_settings
from deepform.db.models.interview_session import InterviewSession
from deepform.domain.lifecycle import SessionMode, SessionStatus, StageType
from deepform.services.artifact_store import ArtifactStore

logger = structlog.get_logger(__name__)


def _isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_session(interview: InterviewSession) -> dict:
    return {
        "id": interview.id,
        "theme": interview.theme,
        "status": interview.status,
        "mode": interview.mode,
        "shareToken": interview.share_token,
        "campaignId": interview.campaign_id,
        "respondentName": interview.respondent_name,
        "respondentFeedback": interview.respondent_feedback,
        "createdAt": _isoformat(interview.created_at),
        "updatedAt": _isoformat(interview.updated_at),
    }


class SessionService:
    """Owner-facing session operations."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create(self, clerk_user_id: str, theme: str) -> dict:
        """Create an interview session in ``interviewing`` status.

        Raises:
            HTTPException(400): If the trimmed theme is empty
            HTTPException(429): If the user reached the session limit
        """
        theme = theme.strip()
        if not theme:
            raise HTTPException(status_code=400, detail="theme: must not be blank")

        limit = get_settings().max_sessions_per_user
        async with self.session_factory() as db:
            result = await db.execute(
                select(func.count())
                .select_from(InterviewSession)
                .where(InterviewSession.clerk_user_id == clerk_user_id)
            )
            if result.scalar_one() >= limit:
                raise HTTPException(status_code=429, detail=f"Session limit reached ({limit})")

            interview = InterviewSession(
                clerk_user_id=clerk_user_id,
                theme=theme,
                status=SessionStatus.INTERVIEWING.value,
                mode=SessionMode.SELF.value,
            )
            db.add(interview)
            await db.commit()

        logger.info("session_created", session_id=interview.id, clerk_user_id=clerk_user_id)
        return {"sessionId": interview.id, "theme": interview.theme}

    async def get(self, clerk_user_id: str, session_id: str) -> dict:
        """Session with its ordered turns and a stage -> artifact map."""
        async with self.session_factory() as db:
            store = ArtifactStore(db)
            interview = await store.get_owned_session(session_id, clerk_user_id)
            turns = await store.list_turns(session_id)
            artifacts = await store.get_artifacts(session_id)

        return {**serialize_session(interview), "turns": turns, "artifacts": artifacts}

    async def share(self, clerk_user_id: str, session_id: str) -> dict:
        """Issue a share token for the session. Idempotent."""
        async with self.session_factory() as db:
            store = ArtifactStore(db)
            interview = await store.get_owned_session(session_id, clerk_user_id)
            if not interview.share_token:
                interview.share_token = str(uuid.uuid4())
                interview.mode = SessionMode.SHARED.value
                await db.commit()
                logger.info("session_shared", session_id=session_id)

        return {"shareToken": interview.share_token, "theme": interview.theme}

    # ------------------------------------------------------------------
    # Token-addressed shared sessions
    # ------------------------------------------------------------------

    async def resolve_shared(self, token: str) -> str:
        """Session id behind a share token (404 when unknown)."""
        async with self.session_factory() as db:
            interview = await ArtifactStore(db).get_session_by_share_token(token)
        return interview.id

    async def shared_info(self, token: str) -> dict:
        async with self.session_factory() as db:
            store = ArtifactStore(db)
            interview = await store.get_session_by_share_token(token)
            message_count = await store.count_turns(interview.id)
            facts = await store.get_artifact(interview.id, StageType.FACTS)

        return {
            "theme": interview.theme,
            "status": interview.status,
            "respondentName": interview.respondent_name,
            "messageCount": message_count,
            "facts": facts,
        }

    async def save_feedback(self, session_id: str, feedback: str | None) -> dict:
        async with self.session_factory() as db:
            store = ArtifactStore(db)
            interview = await store.get_session(session_id)
            if interview is None:
                raise HTTPException(status_code=404, detail="Session not found")
            interview.respondent_feedback = feedback
            await db.commit()
        return {"ok": True}
