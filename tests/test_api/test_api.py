"""Tests for the HTTP API using FastAPI's TestClient."""

from __future__ import annotations

import asyncio
import base64

import pytest
from fastapi.testclient import TestClient
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import ModelMessage, ModelResponse
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.models.test import TestModel

from qfix.api import GENERIC_ERROR, create_app
from qfix.config import Settings
from qfix.core.database import SqliteQuotaStore

REASON = "You have reached your daily limit of 1 conversion. Please try again tomorrow."


def _body(user_id: str | None = "alice", **overrides) -> dict:
    body = {"userId": user_id, "resumeText": "Jane Doe, Python", "jobDescription": "Python role"}
    body.update(overrides)
    return body


@pytest.fixture
def client(settings: Settings, short_markup: str):
    app = create_app(settings, _model_override=TestModel(custom_output_text=short_markup))
    with TestClient(app) as c:
        yield c


def _client_with_model(settings: Settings, model) -> TestClient:
    return TestClient(create_app(settings, _model_override=model))


class TestTailorEndpoint:
    def test_returns_pdf_and_markup(self, client: TestClient):
        resp = client.post("/api/tailor", json=_body())
        assert resp.status_code == 200
        data = resp.json()
        assert base64.b64decode(data["tailoredResumePdf"]).startswith(b"%PDF-")
        assert "Jane Doe" in data["tailoredResumeText"]
        assert data["pageCount"] == 1
        assert data["fitOk"] is True
        assert data["iterations"] == 1

    def test_second_request_same_day_is_429(self, client: TestClient):
        client.post("/api/tailor", json=_body())
        resp = client.post("/api/tailor", json=_body())
        assert resp.status_code == 429
        assert resp.json() == {"error": REASON}

    def test_missing_user_is_401(self, client: TestClient):
        resp = client.post("/api/tailor", json=_body(user_id=None))
        assert resp.status_code == 401
        assert "signed in" in resp.json()["error"]

    def test_missing_job_description_is_400(self, client: TestClient):
        resp = client.post("/api/tailor", json=_body(jobDescription=""))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Job description is required."}

    def test_malformed_body_is_400(self, client: TestClient):
        resp = client.post(
            "/api/tailor", content="not json", headers={"content-type": "application/json"}
        )
        assert resp.status_code == 400

    def test_unconfigured_key_is_500_and_keeps_slot(self, settings: Settings):
        with TestClient(create_app(settings)) as c:
            resp = c.post("/api/tailor", json=_body())
            assert resp.status_code == 500
            assert "misconfigured" in resp.json()["error"]
            check = c.post("/api/rate-limit", json={"userId": "alice", "action": "check"})
            assert check.json()["remaining"] == 1

    def test_persistent_rate_limit_is_503(self, settings: Settings):
        def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            raise ModelHTTPError(status_code=429, model_name="test")

        with _client_with_model(settings, FunctionModel(respond)) as c:
            resp = c.post("/api/tailor", json=_body())
        assert resp.status_code == 503
        assert "busy" in resp.json()["error"]

    def test_unexpected_error_is_generic_500(self, settings: Settings):
        def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            raise RuntimeError("provider exploded")

        with _client_with_model(settings, FunctionModel(respond)) as c:
            resp = c.post("/api/tailor", json=_body())
        assert resp.status_code == 500
        assert resp.json() == {"error": GENERIC_ERROR}


class TestRateLimitEndpoint:
    def test_check_fresh_user(self, client: TestClient):
        resp = client.post("/api/rate-limit", json={"userId": "alice", "action": "check"})
        assert resp.status_code == 200
        assert resp.json() == {"remaining": 1, "isSpecial": False}

    def test_check_after_tailoring(self, client: TestClient):
        client.post("/api/tailor", json=_body())
        resp = client.post("/api/rate-limit", json={"userId": "alice", "action": "check"})
        assert resp.json() == {"remaining": 0, "isSpecial": False}

    def test_check_special_user(self, settings: Settings, store: SqliteQuotaStore):
        asyncio.run(store.set_special("vip", True))
        with TestClient(create_app(settings, store=store)) as c:
            resp = c.post("/api/rate-limit", json={"userId": "vip", "action": "check"})
        assert resp.json() == {"remaining": -1, "isSpecial": True}

    def test_record_is_informational(self, client: TestClient):
        resp = client.post("/api/rate-limit", json={"userId": "alice", "action": "record"})
        assert resp.status_code == 200
        assert "recorded by the tailor API" in resp.json()["message"]
        check = client.post("/api/rate-limit", json={"userId": "alice", "action": "check"})
        assert check.json()["remaining"] == 1

    def test_missing_user_is_400(self, client: TestClient):
        resp = client.post("/api/rate-limit", json={"action": "check"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "User ID is required."}

    def test_unknown_action_is_400(self, client: TestClient):
        resp = client.post("/api/rate-limit", json={"userId": "alice", "action": "reset"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid action."}
