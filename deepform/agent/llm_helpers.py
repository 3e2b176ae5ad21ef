"""Shared helpers for building generation requests and reading replies."""

import json
from typing import Any

from deepform.domain.language import lang_pack


def extract_text(content: list[Any]) -> str:
    """Concatenate the text blocks of a Messages API reply; other blocks are ignored."""
    parts = []
    for block in content:
        if getattr(block, "type", None) == "text":
            parts.append(block.text)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def format_transcript(turns: list[dict], lang: str | None = None) -> str:
    """Render turns as ``Speaker: text`` paragraphs with localized speaker labels."""
    pack = lang_pack(lang)
    return "\n\n".join(
        f"{pack.respondent_label if t['role'] == 'user' else pack.interviewer_label}: {t['content']}"
        for t in turns
    )


def dump_artifact(data: Any) -> str:
    """Pretty-print an artifact for inclusion in a prompt."""
    return json.dumps(data, ensure_ascii=False, indent=2)


def as_message_history(turns: list[dict], theme: str, lang: str | None = None) -> list[dict]:
    """Turn history in Messages API form.

    The API requires the first message to come from the user, so a leading
    assistant turn (the opening question) is preceded by the same start
    request that produced it.
    """
    messages = [{"role": t["role"], "content": t["content"]} for t in turns]
    if messages and messages[0]["role"] == "assistant":
        messages.insert(0, {"role": "user", "content": start_message(theme, lang)})
    return messages


def start_message(theme: str, lang: str | None = None) -> str:
    return lang_pack(lang).start_message.format(theme=theme)
