"""Tests for InterviewService reply production."""

import pytest

from deepform.agent.generator_fake import GeneratorFake
from deepform.services.artifact_store import ArtifactStore
from deepform.services.interview_service import InterviewService

pytestmark = pytest.mark.integration

OWNER_ID = "user_owner"


async def _turns(session_factory, session_id):
    async with session_factory() as db:
        return await ArtifactStore(db).list_turns(session_id)


async def test_stream_deltas_match_persisted_reply(session_factory, interview, decode_events):
    service = InterviewService(GeneratorFake(), session_factory)
    pending = await service.begin_owner_chat(OWNER_ID, interview.id, "I invoice by hand", lang="en")

    events = decode_events([frame async for frame in service.stream_reply(pending)])

    assert events[0] == {"type": "meta", "turnCount": 1}
    assert events[-1]["type"] == "done"
    assert events[-1]["readyForAnalysis"] is False
    assert events[-1]["choices"]
    deltas = "".join(e["text"] for e in events if e["type"] == "delta")
    turns = await _turns(session_factory, interview.id)
    assert turns[-1] == {"role": "assistant", "content": deltas}


async def test_disconnect_stops_without_persisting(session_factory, interview, decode_events):
    service = InterviewService(GeneratorFake(), session_factory)
    pending = await service.begin_owner_chat(OWNER_ID, interview.id, "I invoice by hand")

    async def gone() -> bool:
        return True

    events = decode_events([frame async for frame in service.stream_reply(pending, gone)])

    assert [e["type"] for e in events] == ["meta"]
    turns = await _turns(session_factory, interview.id)
    assert [t["role"] for t in turns] == ["user"]


async def test_generation_failure_becomes_error_event(session_factory, interview, decode_events):
    service = InterviewService(GeneratorFake(scenario="llm_failure"), session_factory)
    pending = await service.begin_owner_chat(OWNER_ID, interview.id, "Hello")

    events = decode_events([frame async for frame in service.stream_reply(pending)])

    assert events[-1] == {"type": "error", "error": "Generation failed"}
    assert len(await _turns(session_factory, interview.id)) == 1


async def test_start_twice_reports_already_started(session_factory, interview):
    service = InterviewService(GeneratorFake(), session_factory)

    pending = await service.begin_owner_start(OWNER_ID, interview.id, lang="en")
    first = await service.reply(pending)
    second = await service.begin_owner_start(OWNER_ID, interview.id, lang="en")

    assert first["turnCount"] == 0
    assert second == {"reply": "Interview has already started.", "alreadyStarted": True}
