"""Tests for per-stage artifact normalization and fallbacks."""
import pytest

from deepform.domain.normalize import (
    fallback_campaign_analysis,
    fallback_facts,
    fallback_readiness,
    fallback_requirements,
    fallback_specification,
    normalize_campaign_analysis,
    normalize_facts,
    normalize_hypotheses,
    normalize_readiness,
    normalize_requirements,
    normalize_specification,
)

pytestmark = pytest.mark.unit


class TestFacts:
    def test_defaults_filled(self):
        result = normalize_facts({"facts": [{"content": "Invoices take too long"}]})
        assert result == {
            "facts": [
                {
                    "id": "F1",
                    "type": "fact",
                    "content": "Invoices take too long",
                    "evidence": "",
                    "severity": "medium",
                }
            ]
        }

    def test_duplicate_ids_renumbered(self):
        result = normalize_facts({"facts": [{"id": "F1", "content": "a"}, {"id": "F1", "content": "b"}]})
        assert [f["id"] for f in result["facts"]] == ["F1", "F2"]

    def test_unknown_type_and_severity_coerced(self):
        result = normalize_facts([{"type": "Opinion", "severity": "CRITICAL", "content": "x"}])
        fact = result["facts"][0]
        assert fact["type"] == "fact"
        assert fact["severity"] == "medium"

    def test_case_insensitive_enums(self):
        fact = normalize_facts({"facts": [{"type": "PAIN", "severity": "High"}]})["facts"][0]
        assert (fact["type"], fact["severity"]) == ("pain", "high")

    def test_string_items_become_content(self):
        result = normalize_facts({"facts": ["Uses spreadsheets"]})
        assert result["facts"][0]["content"] == "Uses spreadsheets"

    def test_unrecognized_payload(self):
        assert normalize_facts({"summary": "nothing here"}) is None

    def test_fallback_wraps_raw_text(self):
        fact = fallback_facts("raw output")["facts"][0]
        assert fact["id"] == "F1"
        assert fact["content"] == "raw output"


class TestHypotheses:
    def test_counter_evidence_list_joined(self):
        result = normalize_hypotheses(
            {"hypotheses": [{"title": "t", "counterEvidence": ["a", "b"], "supportingFacts": "F1"}]}
        )
        hypothesis = result["hypotheses"][0]
        assert hypothesis["id"] == "H1"
        assert hypothesis["counterEvidence"] == "a; b"
        assert hypothesis["supportingFacts"] == ["F1"]
        assert hypothesis["unverifiedPoints"] == []


class TestRequirements:
    def test_all_quality_keys_present(self):
        result = normalize_requirements({"prd": {"problemDefinition": "p"}})
        quality = result["prd"]["qualityRequirements"]
        assert len(quality) == 8
        assert quality["security"] == {"description": "", "criteria": []}

    def test_feature_priority_default(self):
        prd = normalize_requirements(
            {"prd": {"coreFeatures": [{"name": "Send invoice", "priority": "urgent"}, 3]}}
        )["prd"]
        assert prd["coreFeatures"] == [
            {
                "name": "Send invoice",
                "description": "",
                "priority": "should",
                "acceptanceCriteria": [],
                "edgeCases": [],
            }
        ]

    def test_api_integration_defaults(self):
        prd = normalize_requirements({"prd": {}})["prd"]
        assert prd["apiIntegration"] == {"endpoints": [], "webhooks": [], "externalServices": []}

    def test_fallback_puts_text_in_problem_definition(self):
        prd = fallback_requirements("raw")["prd"]
        assert prd["problemDefinition"] == "raw"
        assert prd["coreFeatures"] == []

    def test_non_object_prd(self):
        assert normalize_requirements({"prd": ["a"]}) is None


class TestSpecification:
    def test_tech_stack_defaults(self):
        spec = normalize_specification({"spec": {"projectName": "Invoicer"}})["spec"]
        assert spec["techStack"] == {"frontend": "", "backend": "", "database": ""}
        assert "raw" not in spec

    def test_fallback_keeps_raw(self):
        spec = fallback_specification("raw text")["spec"]
        assert spec["raw"] == "raw text"
        assert spec["apiEndpoints"] == []


class TestReadiness:
    def test_missing_item_id_uses_category_prefix(self):
        result = normalize_readiness(
            {"readiness": {"categories": [{"id": "reliability", "items": [{"description": "Retry sends"}]}]}},
            lang="en",
        )
        category = result["readiness"]["categories"][0]
        assert category["label"] == "Reliability"
        assert category["items"][0]["id"] == "RE-1"
        assert category["items"][0]["priority"] == "should"

    def test_unknown_category_prefix_uses_index(self):
        result = normalize_readiness(
            {"categories": [{"id": "legal", "label": "Legal", "items": ["GDPR"]}]}
        )
        item = result["readiness"]["categories"][0]["items"][0]
        assert item["id"] == "C1-1"
        assert item["description"] == "GDPR"

    def test_label_localized(self):
        result = normalize_readiness({"categories": [{"id": "security", "items": []}]}, lang="ja")
        assert result["readiness"]["categories"][0]["label"] == "セキュリティ"

    def test_fallback(self):
        category = fallback_readiness("raw", lang="en")["readiness"]["categories"][0]
        assert category["label"] == "Functional Suitability"
        assert category["items"][0]["id"] == "FS-1"


class TestCampaignAnalysis:
    def test_ids_assigned(self):
        result = normalize_campaign_analysis(
            {"summary": "s", "patterns": [{"title": "Slow"}], "insights": ["Automate"]}
        )
        assert result["patterns"][0]["id"] == "P1"
        assert result["insights"][0] == {"id": "I1", "content": "Automate", "supportingPatterns": []}
        assert result["recommendations"] == []

    def test_fallback(self):
        assert fallback_campaign_analysis("raw") == {
            "summary": "raw",
            "patterns": [],
            "insights": [],
            "recommendations": [],
        }
