"""Access-policy seam, assistant endpoints and health checks."""

import random

import pytest

from portal import create_app
from portal.ai import ApplicationAssistant, CannedAssistant
from portal.auth import AccessPolicy, AllowAllPolicy
from portal.models.application import BaseApplication


class DenyUpdatesPolicy(AccessPolicy):
    def is_allowed(self, actor, action, application=None):
        return action != "application.submit"


class FixedAssistant(ApplicationAssistant):
    def precheck(self, context):
        return {"text": "fixed", "score": 42}

    def review_assist(self, application):
        return {"text": application["status"], "score": 1}


@pytest.fixture()
def custom_app():
    app = create_app("testing", access_policy=DenyUpdatesPolicy(), assistant=FixedAssistant())
    with app.app_context():
        yield app


class TestAccessPolicy:
    def test_default_policy_allows(self, app):
        assert isinstance(app.extensions["access_policy"], AllowAllPolicy)

    def test_denied_action_returns_403(self, custom_app):
        res = custom_app.test_client().post("/api/v1/submissions/LOYALTY_PLUS", json={
            "submitted_by": "Acme Trading", "email": "ops@acme-trading.ae", "request_details": "x",
        })
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"
        assert BaseApplication.query.count() == 0

    def test_injected_assistant_used(self, custom_app):
        res = custom_app.test_client().post("/api/v1/ai/precheck", json={"description": "Solar farm"})
        assert res.get_json() == {"text": "fixed", "score": 42}


class TestCannedAssistant:
    def test_brief_description_capped(self):
        result = CannedAssistant(rng=random.Random(1)).precheck({"description": "Short", "sector": "Energy"})
        assert result["text"].startswith("Your application description is quite brief.")
        assert "renewable energy" in result["text"]
        assert result["score"] <= 55

    def test_detailed_description_score_range(self):
        result = CannedAssistant(rng=random.Random(3)).precheck({"description": "d" * 400})
        assert 60 <= result["score"] <= 95
        assert "quite brief" not in result["text"]

    def test_seeded_output_repeatable(self):
        ctx = {"description": "d" * 300, "sector": "Technology"}
        assert CannedAssistant(random.Random(9)).precheck(ctx) == CannedAssistant(random.Random(9)).precheck(ctx)

    def test_review_assist(self):
        result = CannedAssistant(random.Random(2)).review_assist(
            {"status": "UNDER_REVIEW", "request_summary": "Training query"},
        )
        assert result["text"].startswith("Training query: currently UNDER_REVIEW.")
        assert 50 <= result["score"] <= 90


class TestPrecheckApi:
    def test_precheck(self, client):
        res = client.post("/api/v1/ai/precheck", json={"description": "We run a recycling plant", "sector": "Manufacturing"})
        assert res.status_code == 200
        assert set(res.get_json()) == {"text", "score"}

    def test_description_required(self, client):
        res = client.post("/api/v1/ai/precheck", json={"sector": "Energy"})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"description": "required"}


class TestHealth:
    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").get_json() == {"status": "ok"}

    def test_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "ok"

    def test_unknown_route_envelope(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"
