"""Integration tests for session create, read and share."""

import pytest

from deepform.core.config import get_settings

pytestmark = pytest.mark.integration

OTHER_USER_ID = "user_intruder"


def test_create_session_trims_theme(api_client):
    response = api_client.post("/api/sessions", json={"theme": "  Freelance invoicing  "})

    assert response.status_code == 200
    body = response.json()
    assert body["theme"] == "Freelance invoicing"
    assert body["sessionId"]


@pytest.mark.parametrize("theme", ["", "   "])
def test_blank_theme_rejected(api_client, theme):
    response = api_client.post("/api/sessions", json={"theme": theme})

    assert response.status_code == 400
    assert "theme" in response.json()["error"]


def test_theme_too_long_rejected(api_client):
    response = api_client.post("/api/sessions", json={"theme": "x" * 501})

    assert response.status_code == 400


def test_missing_theme_rejected(api_client):
    assert api_client.post("/api/sessions", json={}).status_code == 400


def test_session_limit(api_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "max_sessions_per_user", 2)

    for _ in range(2):
        assert api_client.post("/api/sessions", json={"theme": "t"}).status_code == 200
    response = api_client.post("/api/sessions", json={"theme": "t"})

    assert response.status_code == 429
    assert response.json()["error"] == "Session limit reached (2)"


def test_get_new_session(api_client, create_session):
    session_id = create_session()

    response = api_client.get(f"/api/sessions/{session_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == session_id
    assert body["status"] == "interviewing"
    assert body["mode"] == "self"
    assert body["turns"] == []
    assert body["artifacts"] == {}


def test_get_unknown_session(api_client):
    response = api_client.get("/api/sessions/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "Session not found"


def test_other_user_is_denied(api_client, create_session, act_as):
    session_id = create_session()

    act_as(OTHER_USER_ID)

    assert api_client.get(f"/api/sessions/{session_id}").status_code == 403
    assert api_client.post(f"/api/sessions/{session_id}/share").status_code == 403
    assert api_client.post(f"/api/sessions/{session_id}/chat", json={"message": "hi"}).status_code == 403


def test_share_is_idempotent(api_client, create_session):
    session_id = create_session()

    first = api_client.post(f"/api/sessions/{session_id}/share")
    second = api_client.post(f"/api/sessions/{session_id}/share")

    assert first.status_code == 200
    assert first.json()["shareToken"] == second.json()["shareToken"]
    assert first.json()["theme"] == "Freelance invoicing"
    assert api_client.get(f"/api/sessions/{session_id}").json()["mode"] == "shared"
