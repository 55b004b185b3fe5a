"""Tests for rate limited routes and the status endpoint.

Configuration:
- conftest.py selects the in-memory store and a fixed-window 5/60 limit
- TestClient requests come from the identity "testclient"
"""

from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from app.core import rate_limit as rate_limit_module
from app.core.config import settings
from app.core.errors import StoreUnavailableError
from app.main import app


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def failing_store(monkeypatch: pytest.MonkeyPatch) -> Mock:
    """Replace the counter store with one whose every call fails."""
    error = StoreUnavailableError(code="store_unavailable", message="Rate limit store is unavailable")
    store = Mock()
    for name in ("increment", "expire", "get", "ttl", "delete", "ping"):
        setattr(store, name, AsyncMock(side_effect=error))
    monkeypatch.setattr(rate_limit_module, "get_counter_store", lambda: store)
    return store


class TestGatedEndpoints:
    def test_admits_up_to_limit(self, client: TestClient) -> None:
        responses = [client.get("/v1/resource") for _ in range(5)]

        assert [r.status_code for r in responses] == [200] * 5
        assert [r.headers["X-RateLimit-Remaining"] for r in responses] == ["4", "3", "2", "1", "0"]
        assert responses[-1].headers["X-RateLimit-Limit"] == "5"
        assert int(responses[-1].headers["X-RateLimit-Reset"]) > 0
        assert "Retry-After" not in responses[-1].headers
        assert responses[0].json() == {"message": "Hello!!!"}

    def test_denies_request_over_limit(self, client: TestClient) -> None:
        for _ in range(5):
            client.get("/v1/resource")

        response = client.get("/v1/resource")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.json()["detail"] == "Rate limit exceeded. Try again later."

    def test_echo_is_gated_and_returns_body(self, client: TestClient) -> None:
        payload = {"name": "test", "items": [1, 2, 3]}

        response = client.post("/v1/echo", json=payload)

        assert response.status_code == 200
        assert response.json() == {"echo": payload}
        assert response.headers["X-RateLimit-Remaining"] == "4"

    def test_endpoints_share_one_budget(self, client: TestClient) -> None:
        for _ in range(5):
            client.post("/v1/echo", json={})

        assert client.get("/v1/resource").status_code == 429

    def test_headers_can_be_disabled(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "include_headers", False)
        for _ in range(5):
            ok = client.get("/v1/resource")

        denied = client.get("/v1/resource")

        assert "X-RateLimit-Remaining" not in ok.headers
        assert denied.status_code == 429
        assert "Retry-After" not in denied.headers

    def test_disabled_rate_limiting(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "enabled", False)

        responses = [client.get("/v1/resource") for _ in range(7)]

        assert all(r.status_code == 200 for r in responses)
        assert "X-RateLimit-Limit" not in responses[-1].headers

    def test_forwarded_for_identity(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.app, "trust_forwarded_for", True)
        for _ in range(5):
            client.get("/v1/resource", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        blocked = client.get("/v1/resource", headers={"X-Forwarded-For": "203.0.113.7"})
        other = client.get("/v1/resource", headers={"X-Forwarded-For": "203.0.113.8"})

        assert blocked.status_code == 429
        assert other.status_code == 200

    def test_forwarded_for_ignored_by_default(self, client: TestClient) -> None:
        for i in range(5):
            client.get("/v1/resource", headers={"X-Forwarded-For": f"203.0.113.{i}"})

        assert client.get("/v1/resource").status_code == 429

    def test_sliding_window_algorithm(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "algorithm", "sliding_window")
        monkeypatch.setattr(settings.rate_limit, "window_seconds", 3600)

        responses = [client.get("/v1/resource") for _ in range(6)]

        assert [r.status_code for r in responses][:5] == [200] * 5
        assert responses[5].status_code == 429
        assert int(responses[5].headers["Retry-After"]) >= 1

    def test_chained_limits(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "limits", "2/60,100/3600")

        first = client.get("/v1/resource")
        client.get("/v1/resource")
        denied = client.get("/v1/resource")

        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert denied.status_code == 429
        assert denied.headers["X-RateLimit-Limit"] == "2"


class TestStoreFailures:
    def test_fail_closed_returns_503(self, client: TestClient, failing_store: Mock) -> None:
        response = client.get("/v1/resource")

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "store_unavailable"
        assert "request_id" in error

    def test_fail_open_admits(
        self, client: TestClient, failing_store: Mock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.rate_limit, "fail_mode", "open")

        response = client.get("/v1/resource")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "5"

    def test_invalid_limits_are_a_server_error(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.rate_limit, "limits", "ten/60")

        response = client.get("/v1/resource")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "invalid_limit_definition"


class TestHealthAndStatus:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_health_is_not_rate_limited(self, client: TestClient) -> None:
        responses = [client.get("/health") for _ in range(10)]

        assert all(r.status_code == 200 for r in responses)
        assert "X-RateLimit-Limit" not in responses[-1].headers

    def test_status_reports_store_and_config(self, client: TestClient) -> None:
        client.get("/v1/resource")

        response = client.get("/status")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["store"] == "up"
        assert body["algorithm"] == "fixed_window"
        assert body["limits"] == ["5/60"]
        assert body["fail_mode"] == "closed"
        assert body["total_requests"] >= 2

    def test_status_counts_requests(self, client: TestClient) -> None:
        before = client.get("/status").json()["total_requests"]
        client.get("/health")

        after = client.get("/status").json()["total_requests"]

        assert after == before + 2

    def test_status_degraded_when_store_down(self, client: TestClient, failing_store: Mock) -> None:
        response = client.get("/status")

        assert response.status_code == 503
        assert response.json()["store"] == "down"
        assert response.json()["status"] == "degraded"
