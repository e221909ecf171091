"""
API Tests

Routers exercised through TestClient with a static signal source and a
canned LLM swapped in via dependency_overrides.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from api.dependencies import (
    get_aggregator, get_email_delivery, get_sentiment_analyzer,
    get_suggestion_analyzer, get_summarizer,
)
from api.main import app
from lemonade.analysis.summarizer import ReportSummarizer
from lemonade.database.models import CompetitorReport, TrackedCompetitor
from lemonade.delivery import EmailResult
from lemonade.signals.aggregator import SignalAggregator

COOKIE = "lemonade_session"


@pytest.fixture
def client(engine, static_source, canned_llm):
    app.dependency_overrides[get_aggregator] = lambda: SignalAggregator(source_groups={"news": [static_source]})
    app.dependency_overrides[get_summarizer] = lambda: ReportSummarizer(canned_llm)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _analyze(client, competitors="Acme\nBeta", headers=None, **extra):
    body = {"competitors": competitors, "sources": {"news": True, "funding": False, "social": False}}
    body.update(extra)
    return client.post("/api/analyze", json=body, headers=headers or {})


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json() == {"status": "ok", "service": "Competitor Lemonade"}

    def test_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"


class TestAnalyzeAsGuest:

    def test_first_analysis_issues_session(self, client, db):
        response = _analyze(client)

        assert response.status_code == 200
        data = response.json()
        assert data["competitors"] == ["Acme", "Beta"]
        assert data["metadata"]["total_signals"] == 2
        assert data["userId"] is None
        assert COOKIE in response.cookies

        report = db.query(CompetitorReport).one()
        assert report.session_id == response.cookies[COOKIE]

    def test_second_analysis_requires_signup(self, client):
        assert _analyze(client).status_code == 200

        response = _analyze(client)

        assert response.status_code == 429
        data = response.json()
        assert data["requiresSignup"] is True
        assert data["isLoggedIn"] is False
        assert data["limit"] == 1

    def test_guest_can_read_own_report(self, client):
        report_id = _analyze(client).json()["id"]

        assert client.get(f"/api/reports/{report_id}").status_code == 200

        client.cookies.clear()
        assert client.get(f"/api/reports/{report_id}").status_code == 403

    def test_usage_for_guest(self, client):
        data = client.get("/api/usage").json()
        assert data == {"current": 0, "limit": 1, "remaining": 1, "isLoggedIn": False, "resetTime": None}


class TestAnalyzeSignedIn:

    def test_auto_track(self, client, auth_headers, db):
        response = _analyze(client, "Acme, Beta", headers=auth_headers(), autoTrack=True)

        assert response.status_code == 200
        data = response.json()
        assert data["userId"] == "user-1"
        assert [r["status"] for r in data["autoTracked"]] == ["added", "added"]
        assert db.query(TrackedCompetitor).count() == 2

    def test_competitor_list_field(self, client, auth_headers):
        response = client.post(
            "/api/analyze",
            json={"competitorList": ["Acme", " ", "acme.com"], "sources": {"news": True, "funding": False, "social": False}},
            headers=auth_headers(),
        )
        assert response.json()["competitors"] == ["Acme"]

    def test_empty_competitors(self, client, auth_headers):
        response = _analyze(client, "  \n ", headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["message"] == "Please enter at least one competitor"

    def test_no_sources(self, client, auth_headers):
        response = client.post(
            "/api/analyze",
            json={"competitors": "Acme", "sources": {"news": False, "funding": False, "social": False}},
            headers=auth_headers(),
        )
        assert response.status_code == 400

    def test_bad_body_shape(self, client, auth_headers):
        response = client.post("/api/analyze", json={"competitorList": "Acme"}, headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request"
        assert response.json()["errors"]

    def test_report_failure(self, client, auth_headers, make_llm):
        app.dependency_overrides[get_summarizer] = lambda: ReportSummarizer(make_llm("not json"))

        response = _analyze(client, headers=auth_headers())

        assert response.status_code == 502
        assert response.json()["message"] == "Failed to generate report"
        assert client.get("/api/usage", headers=auth_headers()).json()["current"] == 0

    def test_usage_counts_analysis(self, client, auth_headers):
        _analyze(client, headers=auth_headers())

        data = client.get("/api/usage", headers=auth_headers()).json()
        assert data["current"] == 1
        assert data["limit"] == 5
        assert data["remaining"] == 4
        assert data["isLoggedIn"] is True
        assert data["resetTime"]


class TestReports:

    def test_requires_auth(self, client):
        response = client.get("/api/reports")
        assert response.status_code == 401
        assert response.json() == {"message": "Not authenticated"}

    def test_history_is_per_user(self, client, auth_headers):
        _analyze(client, "Acme", headers=auth_headers())
        _analyze(client, "Beta", headers=auth_headers("user-2", "other@test.com"))

        reports = client.get("/api/reports", headers=auth_headers()).json()
        assert [r["competitors"] for r in reports] == [["Acme"]]

    def test_get_owned_and_foreign(self, client, auth_headers):
        report_id = _analyze(client, headers=auth_headers()).json()["id"]

        assert client.get(f"/api/reports/{report_id}", headers=auth_headers()).json()["id"] == report_id
        foreign = client.get(f"/api/reports/{report_id}", headers=auth_headers("user-2", "other@test.com"))
        assert foreign.status_code == 403

    def test_unknown_and_malformed_ids(self, client, auth_headers):
        assert client.get("/api/reports/00000000-0000-0000-0000-000000000000", headers=auth_headers()).status_code == 404
        assert client.get("/api/reports/not-a-uuid", headers=auth_headers()).status_code == 404

    def test_email_report(self, client, auth_headers):
        delivery = MagicMock()
        delivery.configured = True
        delivery.send_report = AsyncMock(return_value=EmailResult(success=True, message_id="msg-1"))
        app.dependency_overrides[get_email_delivery] = lambda: delivery
        report_id = _analyze(client, headers=auth_headers()).json()["id"]

        response = client.post(f"/api/reports/{report_id}/email", headers=auth_headers())

        assert response.json() == {"success": True, "messageId": "msg-1", "email": "user@test.com"}
        assert delivery.send_report.await_args.args[0] == "user@test.com"

    def test_email_not_configured(self, client, auth_headers):
        delivery = MagicMock()
        delivery.configured = False
        app.dependency_overrides[get_email_delivery] = lambda: delivery
        report_id = _analyze(client, headers=auth_headers()).json()["id"]

        response = client.post(f"/api/reports/{report_id}/email", headers=auth_headers())
        assert response.status_code == 503


class TestTrackedCompetitors:

    def test_crud(self, client, auth_headers):
        headers = auth_headers()

        added = client.post("/api/competitors/tracked", json={"competitorNames": ["Acme", "acme.com", "Beta"]}, headers=headers)
        assert [r["status"] for r in added.json()["results"]] == ["added", "duplicate", "added"]
        assert added.json()["count"] == 2

        listing = client.get("/api/competitors/tracked", headers=headers).json()
        assert listing["limit"] == 5
        assert {c["competitorName"] for c in listing["competitors"]} == {"Acme", "Beta"}

        competitor_id = listing["competitors"][0]["id"]
        assert client.delete(f"/api/competitors/tracked/{competitor_id}", headers=headers).json() == {
            "success": True, "id": competitor_id,
        }
        assert client.delete(f"/api/competitors/tracked/{competitor_id}", headers=headers).status_code == 404
        assert client.get("/api/competitors/tracked", headers=headers).json()["count"] == 1

    def test_single_name(self, client, auth_headers):
        response = client.post("/api/competitors/tracked", json={"competitorName": "Acme"}, headers=auth_headers())
        assert response.json()["results"][0]["status"] == "added"

    def test_no_names(self, client, auth_headers):
        assert client.post("/api/competitors/tracked", json={}, headers=auth_headers()).status_code == 400

    def test_requires_auth(self, client):
        assert client.get("/api/competitors/tracked").status_code == 401

    def test_analyze_watch_list(self, client, auth_headers, db):
        headers = auth_headers()
        client.post("/api/competitors/tracked", json={"competitorNames": ["Acme", "Beta"]}, headers=headers)

        response = client.post("/api/competitors/tracked/analyze", headers=headers)

        assert response.status_code == 200
        assert sorted(response.json()["competitors"]) == ["Acme", "Beta"]
        assert all(t.last_analyzed_at is not None for t in db.query(TrackedCompetitor).all())

    def test_analyze_empty_watch_list(self, client, auth_headers):
        response = client.post("/api/competitors/tracked/analyze", headers=auth_headers())
        assert response.status_code == 400


class TestUsersAndExtras:

    def test_profile(self, client, auth_headers):
        headers = auth_headers()
        client.post("/api/competitors/tracked", json={"competitorName": "Acme"}, headers=headers)

        data = client.get("/api/users/me", headers=headers).json()

        assert data["id"] == "user-1"
        assert data["plan"] == "free"
        assert data["tracked_count"] == 1
        assert data["tracked_limit"] == 5
        assert data["usage"]["limit"] == 5
        assert data["usage"]["current"] == 0

    def test_sentiment_without_discussion(self, client):
        analyzer = MagicMock()
        analyzer.analyze = AsyncMock(return_value=None)
        app.dependency_overrides[get_sentiment_analyzer] = lambda: analyzer

        assert client.get("/api/sentiment/Acme").json() == {"query": "Acme", "socialMedia": None}

    def test_suggestions(self, client):
        analysis = MagicMock()
        analysis.to_dict.return_value = {"company": "Notion", "suggestions": []}
        analyzer = MagicMock()
        analyzer.discover = AsyncMock(return_value=analysis)
        app.dependency_overrides[get_suggestion_analyzer] = lambda: analyzer

        response = client.post("/api/competitors/suggestions", json={"competitor": " Notion ", "existing": ["Coda"]})

        assert response.json() == {"company": "Notion", "suggestions": []}
        analyzer.discover.assert_awaited_once_with("Notion", existing=["Coda"])

    def test_suggestions_need_company(self, client):
        assert client.post("/api/competitors/suggestions", json={"competitor": ""}).status_code == 400
