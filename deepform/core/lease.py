"""Per-session pipeline lease stored in the database.

This module provides:
- Lease acquisition as a single INSERT ... ON CONFLICT that only takes over expired rows
- Token-checked release

The lease lives in the same store as the artifacts, so it holds across
processes that share the database.
"""

import time
import uuid

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deepform.core.config import get_settings
from deepform.db.base import dialect_insert
from deepform.db.models.pipeline_lease import PipelineLease

logger = structlog.get_logger(__name__)


class PipelineLeaseManager:
    """Manages pipeline leases keyed by session id."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], ttl: int | None = None):
        self.session_factory = session_factory
        self.ttl = ttl or get_settings().pipeline_lease_seconds

    async def acquire(self, session_id: str, token: str | None = None, now: float | None = None) -> str | None:
        """Attempt to acquire the lease for a session.

        Args:
            session_id: Interview session identifier
            token: Lease token to write (generated when omitted)
            now: Current epoch seconds (for deterministic testing)

        Returns:
            The lease token if acquired, None if another holder's lease is live
        """
        now = time.time() if now is None else now
        token = token or uuid.uuid4().hex

        async with self.session_factory() as session:
            stmt = dialect_insert(session, PipelineLease).values(
                session_id=session_id,
                token=token,
                expires_at=now + self.ttl,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[PipelineLease.session_id],
                set_={"token": stmt.excluded.token, "expires_at": stmt.excluded.expires_at},
                where=PipelineLease.expires_at <= now,
            )
            await session.execute(stmt)
            await session.commit()

            result = await session.execute(
                select(PipelineLease.token).where(PipelineLease.session_id == session_id)
            )
            holder = result.scalar_one_or_none()

        if holder == token:
            return token

        logger.info("pipeline_lease_rejected", session_id=session_id)
        return None

    async def release(self, session_id: str, token: str) -> bool:
        """Release the lease if ``token`` still holds it.

        Returns:
            True if released, False if the lease was taken over or already gone
        """
        async with self.session_factory() as session:
            result = await session.execute(
                delete(PipelineLease).where(
                    PipelineLease.session_id == session_id,
                    PipelineLease.token == token,
                )
            )
            await session.commit()
            return result.rowcount > 0

