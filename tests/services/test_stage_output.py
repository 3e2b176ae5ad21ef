"""Tests for turning generated stage text into artifacts."""
from unittest.mock import MagicMock

import pytest

from deepform.domain.normalize import fallback_facts, normalize_facts
from deepform.services import stage_service
from deepform.services.stage_service import structure_output

pytestmark = pytest.mark.unit


@pytest.fixture
def stage_logger(monkeypatch):
    mock_logger = MagicMock()
    monkeypatch.setattr(stage_service, "logger", mock_logger)
    return mock_logger


def test_prose_prefixed_array_keeps_structured_facts(stage_logger):
    text = (
        "Here are the facts:\n"
        '[{"id": "F1", "type": "pain", "content": "a"}, {"id": "F2", "type": "pain", "content": "b"}]'
    )

    artifact = structure_output(text, normalize_facts, fallback_facts)

    assert [f["content"] for f in artifact["facts"]] == ["a", "b"]
    assert [f["id"] for f in artifact["facts"]] == ["F1", "F2"]
    stage_logger.warning.assert_not_called()


def test_truncated_output_recovers_complete_facts(stage_logger):
    text = '{"facts": [{"id":"F1","type":"pain","content":"a"}, {"id":"F2","content":"trunc'

    artifact = structure_output(text, normalize_facts, fallback_facts, stage="facts")

    assert artifact["facts"][0]["content"] == "a"
    assert artifact["facts"][0]["type"] == "pain"
    stage_logger.warning.assert_called_once_with("stage_output_truncated", raw_length=len(text), stage="facts")


def test_prose_only_output_falls_back_to_raw_text(stage_logger):
    text = "Sorry, I cannot list facts."

    artifact = structure_output(text, normalize_facts, fallback_facts)

    assert artifact == fallback_facts(text)
    stage_logger.warning.assert_called_once_with("stage_output_fallback", reason="no_json", raw_length=len(text))
