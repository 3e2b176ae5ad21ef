"""ArtifactStore: persistence of turns, stage artifacts and session status.

Operates on a caller-owned AsyncSession so a stage write and its status
change commit together.
"""

import uuid
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from deepform.db.base import dialect_insert
from deepform.db.models.interview_session import InterviewSession
from deepform.db.models.stage_artifact import StageArtifact
from deepform.db.models.turn import Turn
from deepform.domain.lifecycle import SessionStatus, StageType


class ArtifactStore:
    """Data access for one unit of work."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def get_session(self, session_id: str) -> InterviewSession | None:
        result = await self.session.execute(select(InterviewSession).where(InterviewSession.id == session_id))
        return result.scalar_one_or_none()

    async def get_owned_session(self, session_id: str, clerk_user_id: str) -> InterviewSession:
        """Load a session the caller owns.

        Raises:
            HTTPException(404): If the session does not exist
            HTTPException(403): If it belongs to someone else (or to no one)
        """
        interview = await self.get_session(session_id)
        if interview is None:
            raise HTTPException(status_code=404, detail="Session not found")
        if interview.clerk_user_id != clerk_user_id:
            raise HTTPException(status_code=403, detail="Access denied")
        return interview

    async def get_session_by_share_token(self, token: str) -> InterviewSession:
        result = await self.session.execute(select(InterviewSession).where(InterviewSession.share_token == token))
        interview = result.scalar_one_or_none()
        if interview is None:
            raise HTTPException(status_code=404, detail="Interview not found")
        return interview

    async def set_status(self, session_id: str, status: SessionStatus) -> None:
        await self.session.execute(
            update(InterviewSession)
            .where(InterviewSession.id == session_id)
            .values(status=SessionStatus(status).value, updated_at=datetime.now(timezone.utc))
        )

    async def touch(self, session_id: str) -> None:
        await self.session.execute(
            update(InterviewSession)
            .where(InterviewSession.id == session_id)
            .values(updated_at=datetime.now(timezone.utc))
        )

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def append_turn(self, session_id: str, role: str, content: str) -> Turn:
        turn = Turn(session_id=session_id, role=role, content=content)
        self.session.add(turn)
        await self.session.flush()
        return turn

    async def list_turns(self, session_id: str) -> list[dict]:
        """Turns in persisted sequence order as ``{role, content}`` dicts."""
        result = await self.session.execute(
            select(Turn.role, Turn.content).where(Turn.session_id == session_id).order_by(Turn.id)
        )
        return [{"role": role, "content": content} for role, content in result.all()]

    async def count_turns(self, session_id: str, role: str | None = None) -> int:
        stmt = select(func.count()).select_from(Turn).where(Turn.session_id == session_id)
        if role is not None:
            stmt = stmt.where(Turn.role == role)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Stage artifacts
    # ------------------------------------------------------------------

    async def get_artifact(self, session_id: str, stage: StageType) -> dict | None:
        result = await self.session.execute(
            select(StageArtifact.data).where(
                StageArtifact.session_id == session_id,
                StageArtifact.stage == StageType(stage).value,
            )
        )
        return result.scalar_one_or_none()

    async def get_artifacts(self, session_id: str) -> dict[str, dict]:
        result = await self.session.execute(
            select(StageArtifact.stage, StageArtifact.data).where(StageArtifact.session_id == session_id)
        )
        return {stage: data for stage, data in result.all()}

    async def upsert_artifact(self, session_id: str, stage: StageType, data: dict) -> None:
        """Insert or replace the artifact for (session, stage) in one statement."""
        now = datetime.now(timezone.utc)
        stmt = dialect_insert(self.session, StageArtifact).values(
            id=str(uuid.uuid4()),
            session_id=session_id,
            stage=StageType(stage).value,
            data=data,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[StageArtifact.session_id, StageArtifact.stage],
            set_={"data": stmt.excluded.data, "updated_at": stmt.excluded.updated_at},
        )
        await self.session.execute(stmt)
