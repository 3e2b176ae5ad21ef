"""Service-level fixtures: a persisted owner session to work against."""

import json

import pytest

from deepform.db.models.interview_session import InterviewSession

OWNER_ID = "user_owner"


@pytest.fixture
async def interview(db_session) -> InterviewSession:
    row = InterviewSession(clerk_user_id=OWNER_ID, theme="Freelance invoicing")
    db_session.add(row)
    await db_session.commit()
    return row


@pytest.fixture
def decode_events():
    """Decode a list of ``data: {...}`` frames."""

    def _decode(frames: list[str]) -> list[dict]:
        return [json.loads(frame[len("data: "):].strip()) for frame in frames]

    return _decode
