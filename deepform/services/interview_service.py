"""InterviewService: the turn-taking dialogue engine.

Each dialogue call is split in two:
- a ``begin_*`` method validates access, persists the user turn and returns a
  PendingReply describing the generation request
- ``reply`` (plain JSON) or ``stream_reply`` (server-sent events) produces the
  assistant turn, classifies it and persists it

The split keeps 4xx errors ahead of the stream: once a streaming response has
started, failures can only be reported as an ``error`` event.
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deepform.agent.generator import Generator
from deepform.agent.llm_helpers import as_message_history, start_message
from deepform.agent.prompts import build_chat_prompt, build_respondent_chat_prompt, build_start_prompt
from deepform.core.config import get_settings
from deepform.core.exceptions import GenerationError
from deepform.domain.language import lang_pack, resolve_lang
from deepform.domain.lifecycle import is_done
from deepform.domain.readiness import COMPLETE_SENTINEL, READY_SENTINEL, ReplyStreamFilter, classify_reply
from deepform.schemas.events import sse_data
from deepform.services.artifact_store import ArtifactStore
from deepform.services.funnel import FunnelTracker

logger = structlog.get_logger(__name__)

CHAT_MAX_TOKENS = 1024


@dataclass
class PendingReply:
    """A generation request for the next assistant turn."""

    session_id: str
    system: str
    messages: list[dict]
    user_turns: int
    purpose: str
    respondent: bool = False
    sentinel: str = READY_SENTINEL
    max_tokens: int = CHAT_MAX_TOKENS
    log_context: dict = field(default_factory=dict)


class InterviewService:
    """Service layer for owner and respondent interviews."""

    def __init__(
        self,
        generator: Generator,
        session_factory: async_sessionmaker[AsyncSession],
        funnel: FunnelTracker | None = None,
    ):
        self.generator = generator
        self.session_factory = session_factory
        self.funnel = funnel
        settings = get_settings()
        self.min_turns = settings.min_turns_for_sentinel
        self.max_turns = settings.max_user_turns

    # ------------------------------------------------------------------
    # Owner interviews
    # ------------------------------------------------------------------

    async def begin_owner_start(
        self, clerk_user_id: str, session_id: str, lang: str | None = None
    ) -> PendingReply | dict:
        """Prepare the opening question.

        Returns:
            PendingReply, or ``{reply, alreadyStarted: True}`` when the session
            already has turns (no generation happens then)
        """
        async with self.session_factory() as db:
            store = ArtifactStore(db)
            interview = await store.get_owned_session(session_id, clerk_user_id)
            if await store.count_turns(session_id) > 0:
                return {"reply": lang_pack(lang).already_started, "alreadyStarted": True}
            theme = interview.theme

        return PendingReply(
            session_id=session_id,
            system=build_start_prompt(theme, lang),
            messages=[{"role": "user", "content": start_message(theme, lang)}],
            user_turns=0,
            purpose="start",
        )

    async def begin_owner_chat(
        self, clerk_user_id: str, session_id: str, message: str, lang: str | None = None
    ) -> PendingReply:
        async with self.session_factory() as db:
            store = ArtifactStore(db)
            interview = await store.get_owned_session(session_id, clerk_user_id)
            pending = await self._append_and_prepare(store, interview, message, lang, respondent=False)
            await db.commit()
        return pending

    # ------------------------------------------------------------------
    # Respondent interviews (shared links and campaigns)
    # ------------------------------------------------------------------

    async def begin_respondent_start(
        self, session_id: str, lang: str | None = None, respondent_name: str | None = None
    ) -> PendingReply | dict:
        async with self.session_factory() as db:
            store = ArtifactStore(db)
            interview = await self._load(store, session_id)
            if respondent_name:
                interview.respondent_name = respondent_name
                await db.commit()
            if await store.count_turns(session_id) > 0:
                return {"reply": lang_pack(lang).already_started, "alreadyStarted": True}
            theme = interview.theme

        return PendingReply(
            session_id=session_id,
            system=build_start_prompt(theme, lang, respondent_name=respondent_name),
            messages=[{"role": "user", "content": start_message(theme, lang)}],
            user_turns=0,
            purpose="respondent_start",
            respondent=True,
            sentinel=COMPLETE_SENTINEL,
        )

    async def begin_respondent_chat(self, session_id: str, message: str, lang: str | None = None) -> PendingReply:
        """Persist a respondent message and prepare the reply.

        Raises:
            HTTPException(400): If the respondent already completed the interview
        """
        async with self.session_factory() as db:
            store = ArtifactStore(db)
            interview = await self._load(store, session_id)
            if is_done(interview.status):
                raise HTTPException(status_code=400, detail="Interview already completed")
            pending = await self._append_and_prepare(store, interview, message, lang, respondent=True)
            campaign_id = interview.campaign_id
            await db.commit()

        if campaign_id and pending.user_turns == 1 and self.funnel is not None:
            await self.funnel.record(campaign_id, "interviewsStarted")
        return pending

    async def _load(self, store: ArtifactStore, session_id: str):
        interview = await store.get_session(session_id)
        if interview is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return interview

    async def _append_and_prepare(
        self, store: ArtifactStore, interview, message: str, lang: str | None, respondent: bool
    ) -> PendingReply:
        await store.append_turn(interview.id, "user", message)
        await store.touch(interview.id)
        turns = await store.list_turns(interview.id)
        user_turns = sum(1 for t in turns if t["role"] == "user")

        if respondent:
            system = build_respondent_chat_prompt(interview.theme, user_turns, lang, min_turns=self.min_turns)
        else:
            system = build_chat_prompt(interview.theme, user_turns, lang, min_turns=self.min_turns)

        return PendingReply(
            session_id=interview.id,
            system=system,
            messages=as_message_history(turns, interview.theme, lang),
            user_turns=user_turns,
            purpose="respondent_chat" if respondent else "chat",
            respondent=respondent,
            sentinel=COMPLETE_SENTINEL if respondent else READY_SENTINEL,
            log_context={"lang": resolve_lang(lang)},
        )

    # ------------------------------------------------------------------
    # Reply production
    # ------------------------------------------------------------------

    async def _finish(self, pending: PendingReply, raw_reply: str) -> dict:
        """Classify the assembled reply and persist it as one assistant turn."""
        classification = classify_reply(
            raw_reply,
            pending.user_turns,
            sentinel=pending.sentinel,
            min_turns=self.min_turns,
            max_turns=self.max_turns,
        )

        async with self.session_factory() as db:
            store = ArtifactStore(db)
            await store.append_turn(pending.session_id, "assistant", classification.text)
            await store.touch(pending.session_id)
            await db.commit()

        logger.info(
            "interview_turn_completed",
            session_id=pending.session_id,
            purpose=pending.purpose,
            user_turns=pending.user_turns,
            ready=classification.ready,
            sentinel_seen=classification.sentinel_seen,
            **pending.log_context,
        )

        result = {
            "reply": classification.text,
            "turnCount": pending.user_turns,
            "choices": classification.choices,
        }
        if pending.respondent:
            result["isComplete"] = classification.ready
        else:
            result["readyForAnalysis"] = classification.ready
        return result

    async def reply(self, pending: PendingReply) -> dict:
        """Generate the whole reply at once.

        Raises:
            GenerationError: If the generative call fails (nothing is persisted)
        """
        text = await self.generator.complete(
            pending.system,
            pending.messages,
            max_tokens=pending.max_tokens,
            purpose=pending.purpose,
        )
        return await self._finish(pending, text)

    async def stream_reply(
        self,
        pending: PendingReply,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[str]:
        """Stream the reply as ``meta``, ``delta``*, then ``done`` or ``error``.

        Deltas are marker-free and concatenate to the persisted text. If the
        client goes away the upstream stream is closed and nothing is persisted.
        """
        yield sse_data({"type": "meta", "turnCount": pending.user_turns})

        reply_filter = ReplyStreamFilter()
        raw_parts: list[str] = []
        upstream = self.generator.stream(
            pending.system,
            pending.messages,
            max_tokens=pending.max_tokens,
            purpose=pending.purpose,
        )
        try:
            async for chunk in upstream:
                if is_disconnected is not None and await is_disconnected():
                    logger.info("chat_client_disconnected", session_id=pending.session_id, purpose=pending.purpose)
                    return
                raw_parts.append(chunk)
                delta = reply_filter.feed(chunk)
                if delta:
                    yield sse_data({"type": "delta", "text": delta})

            tail = reply_filter.finish()
            if tail:
                yield sse_data({"type": "delta", "text": tail})

            result = await self._finish(pending, "".join(raw_parts))
            result.pop("reply")
            yield sse_data({"type": "done", **result})
        except GenerationError as e:
            logger.warning("chat_stream_error", session_id=pending.session_id, purpose=pending.purpose, error=str(e))
            yield sse_data({"type": "error", "error": "Generation failed"})
        except Exception as e:
            logger.error(
                "chat_stream_error",
                session_id=pending.session_id,
                purpose=pending.purpose,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            yield sse_data({"type": "error", "error": "Internal server error"})
        finally:
            await upstream.aclose()
