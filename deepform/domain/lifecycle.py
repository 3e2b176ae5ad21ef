"""Session lifecycle: statuses, stage types, and stage prerequisite checks.

Pure domain logic with no external dependencies.
"""
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle status of an interview session."""

    INTERVIEWING = "interviewing"
    ANALYZED = "analyzed"
    RESPONDENT_DONE = "respondent_done"  # Terminal for shared/campaign respondents
    HYPOTHESIZED = "hypothesized"
    REQUIREMENTS_GENERATED = "requirements_generated"
    SPECIFICATION_GENERATED = "specification_generated"
    READINESS_CHECKED = "readiness_checked"


class StageType(str, Enum):
    """Stage artifact types. At most one artifact per (session, stage)."""

    FACTS = "facts"
    HYPOTHESES = "hypotheses"
    REQUIREMENTS = "requirements"
    SPECIFICATION = "specification"
    READINESS = "readiness"
    CAMPAIGN_ANALYTICS = "campaign_analytics"


class SessionMode(str, Enum):
    SELF = "self"
    SHARED = "shared"
    CAMPAIGN_RESPONDENT = "campaign_respondent"


# Stages run by the one-shot pipeline, in dependency order
PIPELINE_STAGES: tuple[StageType, ...] = (
    StageType.FACTS,
    StageType.HYPOTHESES,
    StageType.REQUIREMENTS,
    StageType.SPECIFICATION,
)

PREREQUISITES: dict[StageType, tuple[StageType, ...]] = {
    StageType.FACTS: (),
    StageType.HYPOTHESES: (StageType.FACTS,),
    StageType.REQUIREMENTS: (StageType.FACTS, StageType.HYPOTHESES),
    StageType.SPECIFICATION: (StageType.REQUIREMENTS,),
    StageType.READINESS: (StageType.SPECIFICATION,),
    StageType.CAMPAIGN_ANALYTICS: (),
}

_STAGE_STATUS: dict[StageType, SessionStatus] = {
    StageType.FACTS: SessionStatus.ANALYZED,
    StageType.HYPOTHESES: SessionStatus.HYPOTHESIZED,
    StageType.REQUIREMENTS: SessionStatus.REQUIREMENTS_GENERATED,
    StageType.SPECIFICATION: SessionStatus.SPECIFICATION_GENERATED,
    StageType.READINESS: SessionStatus.READINESS_CHECKED,
}

_STATUS_RANK: dict[SessionStatus, int] = {
    SessionStatus.INTERVIEWING: 0,
    SessionStatus.ANALYZED: 1,
    SessionStatus.RESPONDENT_DONE: 1,
    SessionStatus.HYPOTHESIZED: 2,
    SessionStatus.REQUIREMENTS_GENERATED: 3,
    SessionStatus.SPECIFICATION_GENERATED: 4,
    SessionStatus.READINESS_CHECKED: 5,
}

# Respondent statuses that the campaign aggregator treats as finished
DONE_STATUSES: frozenset[SessionStatus] = frozenset({SessionStatus.RESPONDENT_DONE})


@dataclass
class TransitionResult:
    """Result of a stage-run check."""

    allowed: bool
    reason: str = ""
    new_status: SessionStatus | None = None
    missing: tuple[StageType, ...] = ()


def missing_prerequisites(stage: StageType, existing: Iterable[str]) -> tuple[StageType, ...]:
    """Return the prerequisite stages of ``stage`` that have no artifact yet."""
    present = {StageType(s) for s in existing}
    return tuple(s for s in PREREQUISITES[StageType(stage)] if s not in present)


def status_for_stage(stage: StageType) -> SessionStatus | None:
    """Status a session moves to after ``stage`` persists, or None if it has no status."""
    return _STAGE_STATUS.get(StageType(stage))


def stage_rank(status: str) -> int:
    """Ordinal position of a status; respondent_done ranks with analyzed."""
    return _STATUS_RANK[SessionStatus(status)]


def is_done(status: str) -> bool:
    return SessionStatus(status) in DONE_STATUSES


def check_stage_allowed(stage: StageType, existing: Iterable[str]) -> TransitionResult:
    """Validate whether ``stage`` may run given the artifacts that exist.

    Pure function -- no side effects, no DB access.

    Rules:
        - Every prerequisite stage must have a persisted artifact
        - The current status is not consulted, so a stage may be re-run after
          the session has advanced past it. Downstream artifacts are kept as-is.
    """
    missing = missing_prerequisites(stage, existing)
    if missing:
        names = " and ".join(s.value for s in missing)
        noun = "stages" if len(missing) > 1 else "stage"
        return TransitionResult(False, f"Run the {names} {noun} first", missing=missing)

    return TransitionResult(True, new_status=status_for_stage(stage))
