"""Per-stage normalization of extracted output, and fallback artifacts.

Each ``normalize_*`` function takes whatever JSON the extraction step
produced and returns the stage's complete artifact shape with defaults
filled in. It returns None when the value has no recognizable payload at
all, in which case the caller builds the fallback from the raw text.
"""

import json
from typing import Any

from deepform.domain.language import QUALITY_KEYS, lang_pack

FACT_TYPES = ("fact", "pain", "frequency", "workaround")
SEVERITIES = ("high", "medium", "low")
PRIORITIES = ("must", "should", "could")

READINESS_PREFIXES = {
    "functionalSuitability": "FS",
    "performanceEfficiency": "PE",
    "compatibility": "CO",
    "usability": "US",
    "reliability": "RE",
    "security": "SE",
    "maintainability": "MA",
    "portability": "PO",
}


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [_text(v) for v in value if v is not None]
    return [_text(value)]


def _choice(value: Any, allowed: tuple[str, ...], default: str) -> str:
    value = _text(value).strip().lower()
    return value if value in allowed else default


def _payload(value: Any, key: str) -> Any:
    """Unwrap ``{key: payload}``; a bare payload is accepted too."""
    if isinstance(value, dict) and key in value:
        return value[key]
    return value


def _assign_id(raw_id: Any, prefix: str, index: int, used: set[str]) -> str:
    candidate = _text(raw_id).strip()
    if not candidate or candidate in used:
        n = index
        candidate = f"{prefix}{n}"
        while candidate in used:
            n += 1
            candidate = f"{prefix}{n}"
    used.add(candidate)
    return candidate


# ---------------------------------------------------------------------------
# Facts
# ---------------------------------------------------------------------------


def normalize_facts(value: Any) -> dict | None:
    items = _payload(value, "facts")
    if not isinstance(items, list):
        return None

    facts = []
    used: set[str] = set()
    for item in items:
        if isinstance(item, str):
            item = {"content": item}
        if not isinstance(item, dict):
            continue
        facts.append({
            "id": _assign_id(item.get("id"), "F", len(facts) + 1, used),
            "type": _choice(item.get("type"), FACT_TYPES, "fact"),
            "content": _text(item.get("content")),
            "evidence": _text(item.get("evidence")),
            "severity": _choice(item.get("severity"), SEVERITIES, "medium"),
        })
    return {"facts": facts}


def fallback_facts(raw_text: str) -> dict:
    return {"facts": [{"id": "F1", "type": "fact", "content": raw_text, "evidence": "", "severity": "medium"}]}


# ---------------------------------------------------------------------------
# Hypotheses
# ---------------------------------------------------------------------------


def normalize_hypotheses(value: Any) -> dict | None:
    items = _payload(value, "hypotheses")
    if not isinstance(items, list):
        return None

    hypotheses = []
    used: set[str] = set()
    for item in items:
        if isinstance(item, str):
            item = {"title": item}
        if not isinstance(item, dict):
            continue
        counter = item.get("counterEvidence")
        hypotheses.append({
            "id": _assign_id(item.get("id"), "H", len(hypotheses) + 1, used),
            "title": _text(item.get("title")),
            "description": _text(item.get("description")),
            "supportingFacts": _text_list(item.get("supportingFacts")),
            "counterEvidence": "; ".join(_text_list(counter)) if isinstance(counter, list) else _text(counter),
            "unverifiedPoints": _text_list(item.get("unverifiedPoints")),
        })
    return {"hypotheses": hypotheses}


def fallback_hypotheses(raw_text: str) -> dict:
    return {
        "hypotheses": [
            {
                "id": "H1",
                "title": raw_text,
                "description": "",
                "supportingFacts": [],
                "counterEvidence": "",
                "unverifiedPoints": [],
            }
        ]
    }


# ---------------------------------------------------------------------------
# Requirements (PRD)
# ---------------------------------------------------------------------------


def _feature(item: Any) -> dict | None:
    if isinstance(item, str):
        item = {"name": item}
    if not isinstance(item, dict):
        return None
    return {
        "name": _text(item.get("name")),
        "description": _text(item.get("description")),
        "priority": _choice(item.get("priority"), PRIORITIES, "should"),
        "acceptanceCriteria": _text_list(item.get("acceptanceCriteria")),
        "edgeCases": _text_list(item.get("edgeCases")),
    }


def _flow(item: Any) -> dict | None:
    if isinstance(item, str):
        item = {"name": item}
    if not isinstance(item, dict):
        return None
    return {"name": _text(item.get("name")), "steps": _text_list(item.get("steps"))}


def _metric(item: Any) -> dict | None:
    if isinstance(item, str):
        item = {"name": item}
    if not isinstance(item, dict):
        return None
    return {
        "name": _text(item.get("name")),
        "definition": _text(item.get("definition")),
        "target": _text(item.get("target")),
    }


def _quality(value: Any) -> dict:
    source = value if isinstance(value, dict) else {}
    quality = {}
    for key in QUALITY_KEYS:
        entry = source.get(key)
        if isinstance(entry, str):
            entry = {"description": entry}
        if not isinstance(entry, dict):
            entry = {}
        quality[key] = {
            "description": _text(entry.get("description")),
            "criteria": _text_list(entry.get("criteria")),
        }
    return quality


def _api_integration(value: Any) -> dict:
    source = value if isinstance(value, dict) else {}
    return {
        "endpoints": [e for e in source.get("endpoints") or [] if isinstance(e, dict)],
        "webhooks": [w for w in source.get("webhooks") or [] if isinstance(w, dict)],
        "externalServices": _text_list(source.get("externalServices")),
    }


def _items(value: Any, build) -> list:
    if not isinstance(value, list):
        return []
    return [built for built in (build(v) for v in value) if built is not None]


def normalize_requirements(value: Any) -> dict | None:
    prd = _payload(value, "prd")
    if not isinstance(prd, dict):
        return None

    return {
        "prd": {
            "problemDefinition": _text(prd.get("problemDefinition")),
            "targetUser": _text(prd.get("targetUser")),
            "jobsToBeDone": _text_list(prd.get("jobsToBeDone")),
            "coreFeatures": _items(prd.get("coreFeatures"), _feature),
            "nonGoals": _text_list(prd.get("nonGoals")),
            "userFlows": _items(prd.get("userFlows"), _flow),
            "qualityRequirements": _quality(prd.get("qualityRequirements")),
            "metrics": _items(prd.get("metrics"), _metric),
            "apiIntegration": _api_integration(prd.get("apiIntegration")),
        }
    }


def fallback_requirements(raw_text: str) -> dict:
    return normalize_requirements({"prd": {"problemDefinition": raw_text}})


# ---------------------------------------------------------------------------
# Specification
# ---------------------------------------------------------------------------


def normalize_specification(value: Any) -> dict | None:
    spec = _payload(value, "spec")
    if not isinstance(spec, dict):
        return None

    stack = spec.get("techStack") if isinstance(spec.get("techStack"), dict) else {}
    normalized = {
        "projectName": _text(spec.get("projectName")),
        "techStack": {
            "frontend": _text(stack.get("frontend")),
            "backend": _text(stack.get("backend")),
            "database": _text(stack.get("database")),
        },
        "apiEndpoints": [e for e in spec.get("apiEndpoints") or [] if isinstance(e, dict)],
        "dbSchema": _text(spec.get("dbSchema")),
        "screens": [s for s in spec.get("screens") or [] if isinstance(s, dict)],
        "testCases": [t for t in spec.get("testCases") or [] if isinstance(t, dict)],
    }
    if spec.get("raw"):
        normalized["raw"] = _text(spec.get("raw"))
    return {"spec": normalized}


def fallback_specification(raw_text: str) -> dict:
    return normalize_specification({"spec": {"raw": raw_text}})


# ---------------------------------------------------------------------------
# Readiness checklist
# ---------------------------------------------------------------------------


def normalize_readiness(value: Any, lang: str | None = None) -> dict | None:
    readiness = _payload(value, "readiness")
    categories = _payload(readiness, "categories")
    if not isinstance(categories, list):
        return None

    labels = lang_pack(lang).quality_labels
    normalized = []
    for index, category in enumerate(categories, start=1):
        if not isinstance(category, dict):
            continue
        category_id = _text(category.get("id")) or f"category{index}"
        prefix = READINESS_PREFIXES.get(category_id, f"C{index}")
        items = []
        used: set[str] = set()
        for item in category.get("items") or []:
            if isinstance(item, str):
                item = {"description": item}
            if not isinstance(item, dict):
                continue
            items.append({
                "id": _assign_id(item.get("id"), f"{prefix}-", len(items) + 1, used),
                "description": _text(item.get("description")),
                "priority": _choice(item.get("priority"), PRIORITIES, "should"),
                "rationale": _text(item.get("rationale")),
            })
        normalized.append({
            "id": category_id,
            "label": _text(category.get("label")) or labels.get(category_id, category_id),
            "items": items,
        })
    return {"readiness": {"categories": normalized}}


def fallback_readiness(raw_text: str, lang: str | None = None) -> dict:
    return {
        "readiness": {
            "categories": [
                {
                    "id": "functionalSuitability",
                    "label": lang_pack(lang).quality_labels["functionalSuitability"],
                    "items": [{"id": "FS-1", "description": raw_text, "priority": "must", "rationale": ""}],
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Campaign cross-analysis
# ---------------------------------------------------------------------------


def normalize_campaign_analysis(value: Any) -> dict | None:
    if not isinstance(value, dict):
        return None

    patterns = []
    used: set[str] = set()
    for item in value.get("patterns") or []:
        if not isinstance(item, dict):
            continue
        patterns.append({
            "id": _assign_id(item.get("id"), "P", len(patterns) + 1, used),
            "title": _text(item.get("title")),
            "description": _text(item.get("description")),
            "frequency": _text(item.get("frequency")),
            "severity": _choice(item.get("severity"), SEVERITIES, "medium"),
        })

    insights = []
    used = set()
    for item in value.get("insights") or []:
        if isinstance(item, str):
            item = {"content": item}
        if not isinstance(item, dict):
            continue
        insights.append({
            "id": _assign_id(item.get("id"), "I", len(insights) + 1, used),
            "content": _text(item.get("content")),
            "supportingPatterns": _text_list(item.get("supportingPatterns")),
        })

    return {
        "summary": _text(value.get("summary")),
        "patterns": patterns,
        "insights": insights,
        "recommendations": _text_list(value.get("recommendations")),
    }


def fallback_campaign_analysis(raw_text: str) -> dict:
    return {"summary": raw_text, "patterns": [], "insights": [], "recommendations": []}
