"""Tests for campaign aggregation over respondents' facts."""
import pytest

from deepform.domain.aggregation import (
    build_campaign_aggregate,
    flatten_facts,
    keyword_counts,
    rank_by_content,
)

pytestmark = pytest.mark.unit


def _facts(*items):
    return {"facts": [{"type": t, "content": c, "severity": s} for t, c, s in items]}


RESPONDENT_A = _facts(
    ("pain", "Invoices take too long", "high"),
    ("frequency", "Weekly", "medium"),
    ("fact", "Uses spreadsheets", "low"),
)
RESPONDENT_B = _facts(
    ("pain", "Invoices take too long", "medium"),
    ("frequency", "Weekly", "medium"),
)
RESPONDENT_C = _facts(
    ("pain", "  Invoices take too long  ", "low"),
    ("workaround", "Copies last month's invoice", "medium"),
)


class TestFlattenFacts:
    def test_skips_missing_artifacts(self):
        assert flatten_facts([None, RESPONDENT_B]) == RESPONDENT_B["facts"]

    def test_accepts_bare_lists_and_fills_defaults(self):
        assert flatten_facts([[{"content": "x"}, "junk"]]) == [
            {"type": "fact", "content": "x", "severity": "medium"}
        ]


class TestRankByContent:
    def test_trimmed_exact_match(self):
        facts = flatten_facts([RESPONDENT_A, RESPONDENT_B, RESPONDENT_C])
        ranked = rank_by_content(facts)
        assert ranked[0] == {"content": "Invoices take too long", "count": 3}

    def test_case_differences_not_merged(self):
        ranked = rank_by_content([{"content": "Weekly"}, {"content": "weekly"}])
        assert [g["count"] for g in ranked] == [1, 1]

    def test_first_occurrence_fields_kept(self):
        facts = flatten_facts([RESPONDENT_A, RESPONDENT_B])
        ranked = rank_by_content(facts, keep=("severity",))
        assert ranked[0]["severity"] == "high"

    def test_ties_keep_first_seen_order(self):
        ranked = rank_by_content([{"content": "b"}, {"content": "a"}])
        assert [g["content"] for g in ranked] == ["b", "a"]


class TestKeywordCounts:
    def test_lowercases_and_drops_short_words(self):
        counts = keyword_counts([{"content": "Invoices, invoices! A tax form."}])
        assert counts["invoices"] == 2
        assert counts["tax"] == 1
        assert "a" not in counts

    def test_splits_on_cjk_punctuation(self):
        counts = keyword_counts([{"content": "請求書、遅い。請求書"}])
        assert counts == {"請求書": 2, "遅い": 1}


class TestBuildCampaignAggregate:
    def test_counts_are_consistent(self):
        aggregate = build_campaign_aggregate(4, [RESPONDENT_A, RESPONDENT_B, RESPONDENT_C])

        assert aggregate["totalSessions"] == 4
        assert aggregate["completedSessions"] == 3
        total_facts = sum(len(r["facts"]) for r in (RESPONDENT_A, RESPONDENT_B, RESPONDENT_C))
        assert sum(g["count"] for g in aggregate["commonFacts"]) == total_facts
        assert aggregate["painPoints"] == [
            {"content": "Invoices take too long", "count": 3, "severity": "high"}
        ]
        assert aggregate["frequencyAnalysis"] == [{"content": "Weekly", "count": 2}]
        assert "funnel" not in aggregate

    def test_funnel_passed_through(self):
        funnel = {"pageViews": 5, "sessionsCreated": 3, "interviewsStarted": 2, "requirementsReached": 1}
        aggregate = build_campaign_aggregate(0, [], funnel)
        assert aggregate["funnel"] == funnel
        assert aggregate["commonFacts"] == []
        assert aggregate["keywordCounts"] == {}
