"""Tests for the FastAPI surface: health, credentials and the event stream."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from lulu_companion.config import Settings
from lulu_companion.domain.analysis import AnalysisResult
from lulu_companion.main import create_app

from tests.conftest import ANTHROPIC_KEY_A, ANTHROPIC_KEY_B, FakeWindowSource, make_alert


@pytest.fixture
def config(tmp_path) -> Settings:
    return Settings(
        credential_store_path=str(tmp_path / "credentials.json"),
        credential_env_vars=[],
        monitor_enabled=False,
        max_credential_slots=2,
    )


@pytest.fixture
def client(config: Settings):
    classifier = MagicMock()
    classifier.classify = AsyncMock(side_effect=lambda alert: AnalysisResult.skipped(alert, "no key"))
    enricher = MagicMock()
    enricher.enrich = AsyncMock(side_effect=lambda alert: alert)
    app = create_app(config, window_source=FakeWindowSource(), classifier=classifier, enricher=enricher)
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["monitoring"] is False
        assert body["credentials_configured"] == 0
        assert body["history_size"] == 0


class TestCredentialsApi:
    def test_empty_listing(self, client: TestClient) -> None:
        body = client.get("/api/credentials").json()
        assert body == {"credentials": [], "count": 0, "next_available_slot": 0}

    def test_add_list_remove(self, client: TestClient) -> None:
        response = client.post("/api/credentials", json={"secret": ANTHROPIC_KEY_A})
        assert response.status_code == 201
        info = response.json()
        assert info == {"slot": 0, "source": "store", "provider": "anthropic", "key": "sk-ant-api03..."}

        listing = client.get("/api/credentials").json()
        assert listing["count"] == 1
        assert ANTHROPIC_KEY_A not in str(listing)
        assert listing["next_available_slot"] == 1

        assert client.delete("/api/credentials/0").status_code == 204
        assert client.get("/api/credentials").json()["count"] == 0

    def test_invalid_key_rejected(self, client: TestClient) -> None:
        response = client.post("/api/credentials", json={"secret": "sk-ant-oat01-" + "t" * 40})
        assert response.status_code == 422
        assert "Invalid key format" in response.json()["detail"]

    def test_slot_out_of_range(self, client: TestClient) -> None:
        response = client.post("/api/credentials", json={"secret": ANTHROPIC_KEY_A, "slot": 7})
        assert response.status_code == 422

    def test_all_slots_full(self, client: TestClient) -> None:
        client.post("/api/credentials", json={"secret": ANTHROPIC_KEY_A})
        client.post("/api/credentials", json={"secret": ANTHROPIC_KEY_B})
        response = client.post("/api/credentials", json={"secret": "sk-proj-" + "p" * 40})
        assert response.status_code == 409

    def test_remove_empty_slot(self, client: TestClient) -> None:
        assert client.delete("/api/credentials/1").status_code == 404


class TestEventStream:
    def test_history_snapshot_on_connect(self, client: TestClient) -> None:
        history = client.app.state.history
        alert = make_alert()
        history.record(AnalysisResult.pending(alert))
        history.record(AnalysisResult.failed(alert, "HTTP 401: bad key"))

        with client.websocket_connect("/ws/events") as ws:
            message = ws.receive_json()
        assert message["kind"] == "history"
        assert len(message["analyses"]) == 1
        assert message["analyses"][0]["summary"] == "Analysis failed"

    def test_analyses_endpoint(self, client: TestClient) -> None:
        client.app.state.history.record(AnalysisResult.pending(make_alert()))
        body = client.get("/api/analyses").json()
        assert body["count"] == 1
        assert body["analyses"][0]["status"] == "pending"
