"""StageService: runs one stage generator end to end.

Every stage follows the same recipe:
1. Check prerequisites against the persisted artifacts (400 naming the missing stage)
2. Build the request from the theme, prior artifacts and stage instructions
3. Call the generator
4. Extract JSON, then normalize it or build the stage's fallback artifact
5. Upsert the artifact and advance the session status in one transaction

Malformed output is not an error: the fallback artifact is stored and a
``stage_output_fallback`` warning is logged. GenerationError propagates.
"""

from collections.abc import Callable
from typing import Any

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deepform.agent.generator import Generator
from deepform.agent.llm_helpers import dump_artifact, format_transcript
from deepform.agent.prompts import (
    FACTS_SYSTEM_PROMPT,
    HYPOTHESES_SYSTEM_PROMPT,
    READINESS_SYSTEM_PROMPT,
    REQUIREMENTS_SYSTEM_PROMPT,
    SPECIFICATION_SYSTEM_PROMPT,
)
from deepform.core.exceptions import GenerationError
from deepform.domain import normalize
from deepform.domain.extraction import Fallback, Parsed, extract_json
from deepform.domain.language import resolve_lang
from deepform.domain.lifecycle import SessionStatus, StageType, check_stage_allowed, stage_rank
from deepform.domain.prd_markdown import render_prd_markdown
from deepform.services.artifact_store import ArtifactStore

logger = structlog.get_logger(__name__)

STAGE_MAX_TOKENS: dict[StageType, int] = {
    StageType.FACTS: 4096,
    StageType.HYPOTHESES: 4096,
    StageType.REQUIREMENTS: 8192,
    StageType.SPECIFICATION: 4096,
    StageType.READINESS: 8192,
}

_SYSTEM_PROMPTS: dict[StageType, str] = {
    StageType.FACTS: FACTS_SYSTEM_PROMPT,
    StageType.HYPOTHESES: HYPOTHESES_SYSTEM_PROMPT,
    StageType.REQUIREMENTS: REQUIREMENTS_SYSTEM_PROMPT,
    StageType.SPECIFICATION: SPECIFICATION_SYSTEM_PROMPT,
    StageType.READINESS: READINESS_SYSTEM_PROMPT,
}


def structure_output(
    text: str,
    normalizer: Callable[[Any], dict | None],
    fallback: Callable[[str], dict],
    **log_context: Any,
) -> dict:
    """Turn generated text into an artifact, falling back to the raw text.

    A normalizer returning None means the parsed JSON held no recognizable
    payload, which is treated the same as no JSON at all.
    """
    result = extract_json(text)
    if isinstance(result, Parsed):
        if result.repaired:
            logger.warning("stage_output_truncated", raw_length=len(text), **log_context)
        artifact = normalizer(result.value)
        if artifact is not None:
            return artifact
        reason = "unrecognized_payload"
    else:
        reason = "no_json"

    raw_text = result.raw_text if isinstance(result, Fallback) else text
    logger.warning("stage_output_fallback", reason=reason, raw_length=len(raw_text), **log_context)
    return fallback(raw_text)


def build_stage_request(
    stage: StageType,
    theme: str,
    turns: list[dict],
    artifacts: dict[str, dict],
    lang: str | None = None,
) -> str:
    """User message for a stage: the theme plus the inputs the stage consumes."""
    parts = [f"Topic: {theme}"]

    if stage is StageType.FACTS:
        parts.append(f"Interview transcript:\n{format_transcript(turns, lang)}")
    elif stage is StageType.HYPOTHESES:
        parts.append(f"Extracted facts:\n{dump_artifact(artifacts[StageType.FACTS.value])}")
    elif stage is StageType.REQUIREMENTS:
        parts.append(f"Extracted facts:\n{dump_artifact(artifacts[StageType.FACTS.value])}")
        parts.append(f"Hypotheses:\n{dump_artifact(artifacts[StageType.HYPOTHESES.value])}")
    elif stage is StageType.SPECIFICATION:
        parts.append(f"PRD:\n{dump_artifact(artifacts[StageType.REQUIREMENTS.value])}")
    elif stage is StageType.READINESS:
        if StageType.REQUIREMENTS.value in artifacts:
            parts.append(f"PRD:\n{dump_artifact(artifacts[StageType.REQUIREMENTS.value])}")
        parts.append(f"Implementation spec:\n{dump_artifact(artifacts[StageType.SPECIFICATION.value])}")
    else:
        raise ValueError(f"Stage {stage.value} has no generator")

    return "\n\n".join(parts)


def _structure(stage: StageType, text: str, lang: str | None, session_id: str) -> dict:
    log_context = {"stage": stage.value, "session_id": session_id}
    if stage is StageType.FACTS:
        return structure_output(text, normalize.normalize_facts, normalize.fallback_facts, **log_context)
    if stage is StageType.HYPOTHESES:
        return structure_output(text, normalize.normalize_hypotheses, normalize.fallback_hypotheses, **log_context)
    if stage is StageType.REQUIREMENTS:
        return structure_output(
            text, normalize.normalize_requirements, normalize.fallback_requirements, **log_context
        )
    if stage is StageType.SPECIFICATION:
        return structure_output(
            text, normalize.normalize_specification, normalize.fallback_specification, **log_context
        )
    return structure_output(
        text,
        lambda value: normalize.normalize_readiness(value, lang),
        lambda raw: normalize.fallback_readiness(raw, lang),
        **log_context,
    )


class StageService:
    """Runs stage generators against the artifact store."""

    def __init__(self, generator: Generator, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize with a Generator and session factory.

        Args:
            generator: Generator implementation (GeneratorFake for tests, GeneratorReal for production)
            session_factory: SQLAlchemy async session factory for database access
        """
        self.generator = generator
        self.session_factory = session_factory

    async def run_for_owner(
        self, clerk_user_id: str, session_id: str, stage: StageType, lang: str | None = None
    ) -> dict:
        """Run a stage on a session the caller owns."""
        async with self.session_factory() as db:
            await ArtifactStore(db).get_owned_session(session_id, clerk_user_id)
        return await self.run(session_id, stage, lang)

    async def run(
        self,
        session_id: str,
        stage: StageType,
        lang: str | None = None,
        final_status: SessionStatus | None = None,
    ) -> dict:
        """Generate, structure and persist one stage artifact.

        Args:
            session_id: Interview session ID
            stage: Stage to run (any StageType except campaign_analytics)
            lang: Interview language, used for transcript labels and localized text
            final_status: Status to set instead of the stage's own status

        Returns:
            The persisted artifact

        Raises:
            HTTPException(404): If the session does not exist
            HTTPException(400): If a prerequisite artifact is missing
            GenerationError: If the generative call fails
        """
        stage = StageType(stage)
        lang = resolve_lang(lang)

        async with self.session_factory() as db:
            store = ArtifactStore(db)
            interview = await store.get_session(session_id)
            if interview is None:
                raise HTTPException(status_code=404, detail="Session not found")

            artifacts = await store.get_artifacts(session_id)
            check = check_stage_allowed(stage, artifacts.keys())
            if not check.allowed:
                raise HTTPException(status_code=400, detail=check.reason)

            turns = await store.list_turns(session_id) if stage is StageType.FACTS else []
            theme = interview.theme
            previous_status = interview.status

        user_message = build_stage_request(stage, theme, turns, artifacts, lang)
        try:
            text = await self.generator.complete(
                _SYSTEM_PROMPTS[stage],
                [{"role": "user", "content": user_message}],
                max_tokens=STAGE_MAX_TOKENS[stage],
                purpose=stage.value,
            )
        except GenerationError as exc:
            exc.stage = exc.stage or stage.value
            raise

        artifact = _structure(stage, text, lang, session_id)
        if stage is StageType.SPECIFICATION:
            artifact["prdMarkdown"] = render_prd_markdown(artifacts[StageType.REQUIREMENTS.value], theme, lang)

        new_status = final_status or check.new_status
        async with self.session_factory() as db:
            store = ArtifactStore(db)
            await store.upsert_artifact(session_id, stage, artifact)
            if new_status is not None:
                await store.set_status(session_id, new_status)
            await db.commit()

        logger.info(
            "stage_generated",
            session_id=session_id,
            stage=stage.value,
            status=new_status.value if new_status else None,
        )
        if new_status is not None and stage_rank(new_status) < stage_rank(previous_status):
            # Later artifacts are kept but were built from the previous output
            logger.info(
                "stage_rerun_downstream_stale",
                session_id=session_id,
                stage=stage.value,
                previous_status=previous_status,
            )
        return artifact
