"""Cross-respondent campaign aggregation.

Pure functions over fact lists. Nothing here is cached: the campaign
service recomputes the aggregate from stored artifacts on every read.
"""
import re
from collections.abc import Iterable

# Whitespace plus CJK and ASCII sentence punctuation
_KEYWORD_SPLIT = re.compile(r"[。、！？（）「」『』【】・,.!?;:()\"'\s]+")

MIN_KEYWORD_LENGTH = 2


def flatten_facts(fact_artifacts: Iterable[dict | list | None]) -> list[dict]:
    """Concatenate respondents' facts, keeping only the fields aggregation uses.

    Items that are not dicts are dropped, so group counts add up to the total
    fact count only for artifacts already passed through ``normalize_facts``
    (which is what the store holds).
    """
    facts = []
    for artifact in fact_artifacts:
        if artifact is None:
            continue
        items = artifact.get("facts", []) if isinstance(artifact, dict) else artifact
        for item in items:
            if not isinstance(item, dict):
                continue
            facts.append({
                "type": item.get("type") or "fact",
                "content": item.get("content") or "",
                "severity": item.get("severity") or "medium",
            })
    return facts


def rank_by_content(facts: list[dict], keep: tuple[str, ...] = ()) -> list[dict]:
    """Group facts by trimmed content (exact match) and rank by count.

    Each group retains the ``keep`` fields from its first occurrence. Ties
    keep first-seen order.
    """
    groups: dict[str, dict] = {}
    for fact in facts:
        key = fact["content"].strip()
        group = groups.get(key)
        if group is None:
            group = {"content": key, "count": 0}
            for name in keep:
                group[name] = fact.get(name)
            groups[key] = group
        group["count"] += 1

    return sorted(groups.values(), key=lambda g: g["count"], reverse=True)


def common_facts(facts: list[dict]) -> list[dict]:
    return rank_by_content(facts, keep=("type", "severity"))


def pain_points(facts: list[dict]) -> list[dict]:
    return rank_by_content([f for f in facts if f["type"] == "pain"], keep=("severity",))


def frequency_analysis(facts: list[dict]) -> list[dict]:
    return rank_by_content([f for f in facts if f["type"] == "frequency"])


def keyword_counts(facts: list[dict]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for fact in facts:
        for word in _KEYWORD_SPLIT.split(fact["content"]):
            if len(word) < MIN_KEYWORD_LENGTH:
                continue
            key = word.lower()
            counts[key] = counts.get(key, 0) + 1
    return counts


def build_campaign_aggregate(
    total_sessions: int,
    completed_fact_artifacts: list[dict | list | None],
    funnel: dict[str, int] | None = None,
) -> dict:
    """Build the campaign aggregate response.

    Args:
        total_sessions: Number of respondent sessions in the campaign
        completed_fact_artifacts: Facts artifacts of completed respondents only
        funnel: Funnel counters, reported alongside and never derived from facts

    Returns:
        Dict with totalSessions, completedSessions, commonFacts, painPoints,
        frequencyAnalysis, keywordCounts and (when given) funnel
    """
    facts = flatten_facts(completed_fact_artifacts)

    aggregate = {
        "totalSessions": total_sessions,
        "completedSessions": len(completed_fact_artifacts),
        "commonFacts": common_facts(facts),
        "painPoints": pain_points(facts),
        "frequencyAnalysis": frequency_analysis(facts),
        "keywordCounts": keyword_counts(facts),
    }
    if funnel is not None:
        aggregate["funnel"] = funnel
    return aggregate
