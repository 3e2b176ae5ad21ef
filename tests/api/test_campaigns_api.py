"""Integration tests for campaigns: respondents, aggregation, funnel and export."""

import pytest

from deepform.agent.generator_fake import OPENING_QUESTION

pytestmark = pytest.mark.integration


@pytest.fixture
def campaign(api_client, create_session):
    """Create a campaign from a fresh owner session; returns its payload."""
    session_id = create_session()
    response = api_client.post(f"/api/sessions/{session_id}/campaign")
    assert response.status_code == 201, response.text
    return {**response.json(), "ownerSessionId": session_id}


def _join(client, token, name=None):
    body = {"lang": "en"}
    if name:
        body["respondentName"] = name
    response = client.post(f"/api/campaigns/{token}/join", json=body)
    assert response.status_code == 201, response.text
    return response.json()["sessionId"]


def _respond(client, token, session_id, message="It takes me a whole evening to get invoices out"):
    return client.post(f"/api/campaigns/{token}/sessions/{session_id}/chat", json={"message": message})


def _complete(client, token, session_id):
    return client.post(f"/api/campaigns/{token}/sessions/{session_id}/complete", json={"lang": "en"})


def _completed_respondent(client, token, name=None):
    session_id = _join(client, token, name)
    _respond(client, token, session_id)
    assert _complete(client, token, session_id).status_code == 200
    return session_id


def test_create_campaign_is_idempotent(api_client, campaign):
    again = api_client.post(f"/api/sessions/{campaign['ownerSessionId']}/campaign")

    assert again.status_code == 200
    assert again.json()["campaignId"] == campaign["campaignId"]
    assert again.json()["shareToken"] == campaign["shareToken"]
    assert campaign["theme"] == "Freelance invoicing"


def test_create_campaign_requires_ownership(api_client, create_session, act_as):
    session_id = create_session()
    act_as("user_intruder")

    assert api_client.post(f"/api/sessions/{session_id}/campaign").status_code == 403


def test_join_returns_opening_question(api_client, campaign):
    response = api_client.post(f"/api/campaigns/{campaign['shareToken']}/join", json={"respondentName": "Aiko"})

    assert response.status_code == 201
    body = response.json()
    assert body["reply"] == OPENING_QUESTION
    assert body["choices"]
    assert body["theme"] == "Freelance invoicing"

    info = api_client.get(f"/api/campaigns/{campaign['shareToken']}").json()
    assert info["respondentCount"] == 1
    assert info["respondents"][0]["respondentName"] == "Aiko"
    assert info["respondents"][0]["messageCount"] == 0


def test_unknown_campaign_token(api_client):
    response = api_client.get("/api/campaigns/not-a-token")

    assert response.status_code == 404
    assert response.json()["error"] == "Campaign not found"


def test_respondent_chat_and_message_count(api_client, campaign):
    token = campaign["shareToken"]
    session_id = _join(api_client, token)

    response = _respond(api_client, token, session_id)

    assert response.status_code == 200
    assert response.json()["isComplete"] is False
    assert "readyForAnalysis" not in response.json()
    info = api_client.get(f"/api/campaigns/{token}").json()
    assert info["respondents"][0]["messageCount"] == 1


def test_respondent_of_another_campaign_is_not_found(api_client, campaign, create_session):
    other_session = create_session("Meal planning")
    other = api_client.post(f"/api/sessions/{other_session}/campaign").json()
    session_id = _join(api_client, other["shareToken"])

    response = _respond(api_client, campaign["shareToken"], session_id)

    assert response.status_code == 404
    assert _complete(api_client, campaign["shareToken"], session_id).status_code == 404


def test_completed_respondent_cannot_continue(api_client, campaign):
    token = campaign["shareToken"]
    session_id = _completed_respondent(api_client, token)

    response = _respond(api_client, token, session_id, "one more thing")

    assert response.status_code == 400
    assert response.json()["error"] == "Interview already completed"


def test_analytics_aggregate_and_funnel(api_client, campaign):
    token = campaign["shareToken"]
    api_client.get(f"/api/campaigns/{token}")
    for name in ("Aiko", "Ben", None):
        _completed_respondent(api_client, token, name)
    _join(api_client, token)  # started but never completed

    response = api_client.get(f"/api/campaigns/{campaign['campaignId']}/analytics")

    assert response.status_code == 200
    analytics = response.json()
    assert analytics["totalSessions"] == 4
    assert analytics["completedSessions"] == 3
    top = analytics["commonFacts"][0]
    assert top["content"] == "invoices take too long"
    assert top["count"] == 3
    assert sum(g["count"] for g in analytics["commonFacts"]) == 9
    assert analytics["painPoints"][0]["count"] == 3
    assert analytics["frequencyAnalysis"] == [{"content": "invoices are sent every week", "count": 3}]
    assert analytics["keywordCounts"]["invoices"] == 6
    assert analytics["funnel"] == {
        "pageViews": 1,
        "sessionsCreated": 4,
        "interviewsStarted": 3,
        "requirementsReached": 3,
    }


def test_interview_started_counted_once_per_respondent(api_client, campaign):
    token = campaign["shareToken"]
    session_id = _join(api_client, token)
    _respond(api_client, token, session_id)
    _respond(api_client, token, session_id, "and again")

    funnel = api_client.get(f"/api/campaigns/{campaign['campaignId']}/analytics").json()["funnel"]

    assert funnel["interviewsStarted"] == 1


def test_repeat_completion_rejected_and_counted_once(api_client, campaign, use_generator):
    token = campaign["shareToken"]
    session_id = _completed_respondent(api_client, token)
    fake = use_generator()

    responses = [_complete(api_client, token, session_id) for _ in range(2)]

    assert [r.status_code for r in responses] == [400, 400]
    assert responses[0].json()["error"] == "Interview already completed"
    assert fake.calls == []
    funnel = api_client.get(f"/api/campaigns/{campaign['campaignId']}/analytics").json()["funnel"]
    assert funnel["requirementsReached"] == 1
    assert funnel["requirementsReached"] <= funnel["sessionsCreated"]


def test_raw_facts_aggregate(api_client, campaign):
    token = campaign["shareToken"]
    _completed_respondent(api_client, token, "Aiko")
    _completed_respondent(api_client, token)
    _join(api_client, token)

    body = api_client.get(f"/api/campaigns/{token}/aggregate", params={"lang": "en"}).json()

    assert body["totalRespondents"] == 2
    assert body["totalFacts"] == 6
    assert sorted(r["name"] for r in body["respondents"]) == ["Aiko", "Anonymous"]
    assert {f["respondent"] for f in body["allFacts"]} == {"Aiko", "Anonymous"}


def test_analytics_requires_ownership(api_client, campaign, act_as):
    act_as("user_intruder")

    assert api_client.get(f"/api/campaigns/{campaign['campaignId']}/analytics").status_code == 403


def test_analytics_unknown_campaign(api_client):
    assert api_client.get("/api/campaigns/missing/analytics").status_code == 404


def test_generate_analysis(api_client, campaign):
    campaign_id = campaign["campaignId"]

    early = api_client.post(f"/api/campaigns/{campaign_id}/analytics/generate")
    assert early.status_code == 400
    assert early.json()["error"] == "No completed sessions"

    _completed_respondent(api_client, campaign["shareToken"])
    response = api_client.post(f"/api/campaigns/{campaign_id}/analytics/generate")

    assert response.status_code == 200
    analysis = response.json()
    assert analysis["patterns"][0]["id"] == "P1"
    assert analysis["recommendations"] == ["Prototype invoice-from-template"]

    owner = api_client.get(f"/api/sessions/{campaign['ownerSessionId']}").json()
    assert owner["artifacts"]["campaign_analytics"] == analysis


def test_generate_analysis_failure(api_client, campaign, use_generator):
    _completed_respondent(api_client, campaign["shareToken"])
    use_generator(fail_on={"campaign_analysis"})

    response = api_client.post(f"/api/campaigns/{campaign['campaignId']}/analytics/generate")

    assert response.status_code == 500


def test_export_bundle(api_client, campaign):
    token = campaign["shareToken"]
    session_id = _completed_respondent(api_client, token, "Aiko")
    api_client.post(f"/api/campaigns/{token}/sessions/{session_id}/feedback", json={"feedback": "Nice questions"})
    api_client.post(f"/api/campaigns/{campaign['campaignId']}/analytics/generate")

    response = api_client.get(f"/api/campaigns/{campaign['campaignId']}/export")

    assert response.status_code == 200
    assert "attachment" in response.headers["content-disposition"]
    bundle = response.json()
    assert bundle["campaign"]["id"] == campaign["campaignId"]
    assert bundle["analytics"]["completedSessions"] == 1
    assert bundle["aiAnalysis"]["summary"]
    respondent = bundle["respondents"][0]
    assert respondent["name"] == "Aiko"
    assert respondent["feedback"] == "Nice questions"
    assert respondent["status"] == "respondent_done"
    assert len(respondent["facts"]["facts"]) == 3


def test_feedback_too_long(api_client, campaign):
    token = campaign["shareToken"]
    session_id = _join(api_client, token)

    response = api_client.post(
        f"/api/campaigns/{token}/sessions/{session_id}/feedback", json={"feedback": "x" * 5001}
    )

    assert response.status_code == 400
