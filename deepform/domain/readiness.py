"""Reply classification for interview turns.

Generated replies may carry in-band markers:
- ``[READY_FOR_ANALYSIS]`` when the interviewer judges enough was gathered
- ``[INTERVIEW_COMPLETE]`` the same signal for shared/campaign respondents
- ``[CHOICES]...[/CHOICES]`` a block of suggested answers, one per line

Markers are never required. The turn-count cap is the guaranteed path; the
marker only shortens the interview once the minimum turn count is reached.
"""

import re
from dataclasses import dataclass, field

READY_SENTINEL = "[READY_FOR_ANALYSIS]"
COMPLETE_SENTINEL = "[INTERVIEW_COMPLETE]"

CHOICES_OPEN = "[CHOICES]"
CHOICES_CLOSE = "[/CHOICES]"
_CHOICES_BLOCK = re.compile(r"\[CHOICES\]([\s\S]*?)\[/CHOICES\]")

_MARKERS = (READY_SENTINEL, COMPLETE_SENTINEL, CHOICES_OPEN, CHOICES_CLOSE)

DEFAULT_MIN_TURNS = 5
DEFAULT_MAX_TURNS = 8


@dataclass(frozen=True)
class ReplyClassification:
    """Cleaned reply text plus the flags derived from it."""

    text: str
    ready: bool
    sentinel_seen: bool = False
    choices: list[str] = field(default_factory=list)


def extract_choices(text: str) -> tuple[str, list[str]]:
    """Split a ``[CHOICES]`` block out of ``text``.

    Returns:
        (text without the block, non-empty stripped choice lines)
    """
    match = _CHOICES_BLOCK.search(text)
    if not match:
        return text.strip(), []

    choices = [line.strip() for line in match.group(1).strip().split("\n") if line.strip()]
    return _CHOICES_BLOCK.sub("", text, count=1).strip(), choices


def sentinel_requested(user_turns: int, min_turns: int = DEFAULT_MIN_TURNS) -> bool:
    """Whether the system prompt should invite the model to emit the sentinel."""
    return user_turns >= min_turns


def is_ready(
    user_turns: int,
    sentinel_seen: bool,
    min_turns: int = DEFAULT_MIN_TURNS,
    max_turns: int = DEFAULT_MAX_TURNS,
) -> bool:
    """Hard cap at ``max_turns``; sentinel only counts from ``min_turns`` on."""
    if user_turns >= max_turns:
        return True
    return user_turns >= min_turns and sentinel_seen


def classify_reply(
    reply: str,
    user_turns: int,
    sentinel: str = READY_SENTINEL,
    min_turns: int = DEFAULT_MIN_TURNS,
    max_turns: int = DEFAULT_MAX_TURNS,
) -> ReplyClassification:
    """Classify an assembled reply and produce the text to persist.

    Args:
        reply: Raw generated text, markers included
        user_turns: Number of user turns in the session, including this one
        sentinel: Marker that signals readiness for this dialogue kind
        min_turns: Turn count from which the sentinel is honored
        max_turns: Turn count at which the session is ready regardless

    Returns:
        ReplyClassification with markers and the choices block removed
    """
    sentinel_seen = sentinel in reply
    _, choices = extract_choices(reply)

    return ReplyClassification(
        text=_visible(reply, final=True),
        ready=is_ready(user_turns, sentinel_seen, min_turns, max_turns),
        sentinel_seen=sentinel_seen,
        choices=choices,
    )


def _visible(raw: str, final: bool) -> str:
    text = raw.replace(READY_SENTINEL, "").replace(COMPLETE_SENTINEL, "")
    text = _CHOICES_BLOCK.sub("", text)

    # An unterminated choices block hides everything after its opening tag
    open_at = text.find(CHOICES_OPEN)
    if open_at != -1:
        text = text[:open_at]

    if final:
        return text.strip()

    # Hold back a trailing fragment that could still grow into a marker
    longest = max(len(m) for m in _MARKERS)
    for size in range(min(len(text), longest), 0, -1):
        tail = text[-size:]
        if any(m.startswith(tail) for m in _MARKERS):
            text = text[:-size]
            break

    return text.strip()


class ReplyStreamFilter:
    """Turns raw streamed chunks into marker-free deltas.

    Concatenating every value returned by ``feed`` and ``finish`` yields the
    same text that ``classify_reply`` persists.
    """

    def __init__(self):
        self.raw = ""
        self.emitted = ""

    def _advance(self, visible: str) -> str:
        if not visible.startswith(self.emitted):
            return ""
        delta = visible[len(self.emitted):]
        self.emitted = visible
        return delta

    def feed(self, chunk: str) -> str:
        self.raw += chunk
        return self._advance(_visible(self.raw, final=False))

    def finish(self) -> str:
        return self._advance(_visible(self.raw, final=True))
