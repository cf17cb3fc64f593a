"""Tests for the HTTP API using FastAPI's TestClient and a stub provider."""

import pytest
from fastapi.testclient import TestClient

from subrelay.api.dependencies import get_provider_builder
from subrelay.config import settings
from subrelay.core.errors import ProviderError
from subrelay.main import app

from conftest import StubProvider


def job_payload(count: int = 3, **overrides):
    payload = {
        "source_language": "en",
        "target_language": "pt-BR",
        "units": [{"id": i, "text": f"line {i}"} for i in range(1, count + 1)],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "cache_database_url", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setattr(settings, "checkpoint_dir", tmp_path / "checkpoints")
    monkeypatch.setattr(settings, "api_auth_token", None)

    provider = StubProvider()
    app.dependency_overrides[get_provider_builder] = lambda: (lambda config: provider)
    with TestClient(app) as test_client:
        test_client.provider = provider
        yield test_client
    app.dependency_overrides.clear()


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


# =============================================================================
# Jobs
# =============================================================================


class TestJobs:

    def test_start_and_complete(self, client):
        response = client.post("/api/v1/jobs", json=job_payload(job_id="episode-1"))
        assert response.status_code == 200
        assert response.json()["job_id"] == "episode-1"

        status = client.get("/api/v1/jobs/episode-1").json()
        assert status["status"] == "completed"
        assert status["progress"] == 1.0
        assert [unit["id"] for unit in status["units"]] == [1, 2, 3]
        assert status["units"][0]["translated_text"] == "T(line 1)"
        assert status["events"][-1]["type"] == "completed"

    def test_derived_job_id(self, client):
        first = client.post("/api/v1/jobs", json=job_payload()).json()["job_id"]
        second = client.post("/api/v1/jobs", json=job_payload()).json()["job_id"]
        assert first == second
        assert len(first) == 32

    def test_failed_job(self, client):
        client.provider.fail_when = lambda lines: True
        client.post("/api/v1/jobs", json=job_payload(job_id="broken"))

        status = client.get("/api/v1/jobs/broken").json()
        assert status["status"] == "failed"
        assert "still failing" in status["error_message"]
        assert status["units"] is None

    def test_unknown_job(self, client):
        assert client.get("/api/v1/jobs/missing").status_code == 404
        assert client.post("/api/v1/jobs/missing/cancel").status_code == 404

    def test_cancel_finished_job(self, client):
        client.post("/api/v1/jobs", json=job_payload(job_id="done"))
        assert client.post("/api/v1/jobs/done/cancel").status_code == 400

    def test_duplicate_unit_ids_rejected(self, client):
        payload = job_payload()
        payload["units"][1]["id"] = 1
        assert client.post("/api/v1/jobs", json=payload).status_code == 400

    def test_empty_units_rejected(self, client):
        assert client.post("/api/v1/jobs", json=job_payload(count=0)).status_code == 422

    def test_unknown_provider_rejected(self, client):
        app.dependency_overrides.pop(get_provider_builder)
        response = client.post("/api/v1/jobs", json=job_payload(provider="nonexistent"))
        assert response.status_code == 400
        assert "Unsupported provider" in response.json()["detail"]


# =============================================================================
# Cache administration
# =============================================================================


class TestCacheRoutes:

    def test_stats_after_job(self, client):
        client.post("/api/v1/jobs", json=job_payload(job_id="fill"))
        stats = client.get("/api/v1/cache/stats").json()
        assert stats["total_entries"] == 3
        assert stats["hit_rate"] == 0.0

    def test_purge(self, client):
        client.post("/api/v1/jobs", json=job_payload(job_id="fill"))
        response = client.post("/api/v1/cache/purge")
        assert response.json() == {"entries_deleted": 3, "action": "purge_all"}
        assert client.get("/api/v1/cache/stats").json()["total_entries"] == 0

    def test_purge_older_keeps_recent_entries(self, client):
        client.post("/api/v1/jobs", json=job_payload(job_id="fill"))
        response = client.post("/api/v1/cache/purge-older", json={"days": 30})
        assert response.json()["entries_deleted"] == 0

    def test_purge_older_validates_days(self, client):
        assert client.post("/api/v1/cache/purge-older", json={"days": -1}).status_code == 422


# =============================================================================
# Providers
# =============================================================================


class TestProviderRoutes:

    def test_list_providers(self, client):
        providers = {p["id"]: p for p in client.get("/api/v1/providers").json()}
        assert providers["openrouter"]["requires_key"] is True
        assert providers["ollama"]["type"] == "local"

    def test_validate(self, client):
        response = client.post("/api/v1/providers/validate", json={"provider": "openrouter"})
        assert response.json() == {"provider": "stub", "valid": True}

    def test_models(self, client):
        response = client.post("/api/v1/providers/models", json={})
        assert response.json()["models"] == ["stub-small", "stub-large"]

    def test_models_provider_error(self, client):
        class NoCatalogue(StubProvider):
            async def list_models(self):
                raise ProviderError("no catalogue", provider="stub")

        app.dependency_overrides[get_provider_builder] = lambda: (lambda config: NoCatalogue())
        assert client.post("/api/v1/providers/models", json={}).status_code == 502

    def test_missing_api_key_rejected(self, client, monkeypatch):
        app.dependency_overrides.pop(get_provider_builder)
        monkeypatch.setattr(settings, "openrouter_api_key", None)
        response = client.post("/api/v1/providers/validate", json={"provider": "openrouter"})
        assert response.status_code == 400


# =============================================================================
# Authentication
# =============================================================================


class TestAuth:

    def test_open_without_configured_token(self, client):
        assert client.post("/api/v1/cache/purge").status_code == 200

    def test_token_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_auth_token", "secret")

        assert client.post("/api/v1/cache/purge").status_code == 401
        assert client.post(
            "/api/v1/cache/purge", headers={"Authorization": "Bearer wrong"}
        ).status_code == 401
        assert client.post(
            "/api/v1/cache/purge", headers={"Authorization": "Bearer secret"}
        ).status_code == 200
        assert client.post("/api/v1/cache/purge", headers={"X-API-Key": "secret"}).status_code == 200

    def test_reads_stay_open(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_auth_token", "secret")
        assert client.get("/api/v1/cache/stats").status_code == 200

    def test_bearer_scheme_is_case_insensitive(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_auth_token", "secret")
        response = client.post("/api/v1/cache/purge", headers={"Authorization": "bearer secret"})
        assert response.status_code == 200

    def test_rejection_carries_challenge(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_auth_token", "secret")
        response = client.post("/api/v1/cache/purge", headers={"Authorization": "Basic secret"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["detail"] == "Missing or invalid API token"
