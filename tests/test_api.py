"""Tests for the HTTP trigger endpoint.

The pipeline is replaced by a stub coroutine passed to create_app(), so
these tests cover authentication and response mapping only.
"""

from __future__ import annotations

import dataclasses

import pytest
from fastapi.testclient import TestClient

from catwatch.api.app import create_app
from catwatch.database.models import RunResult


class _StubCheck:
    def __init__(self, result: RunResult | None = None, error: Exception | None = None) -> None:
        self.result = result or RunResult(ok=True, total_cats=20, total_pages=2, found=4, new=2)
        self.error = error
        self.calls = 0

    async def __call__(self) -> RunResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def stub() -> _StubCheck:
    return _StubCheck()


@pytest.fixture()
def client(config, stub):
    with TestClient(create_app(config, run_check=stub)) as c:
        yield c


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestAuthentication:
    def test_missing_secret(self, client, stub) -> None:
        resp = client.get("/api/check-cats")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}
        assert stub.calls == 0

    def test_wrong_bearer(self, client, stub) -> None:
        resp = client.get("/api/check-cats", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert stub.calls == 0

    def test_bearer_token(self, client, stub) -> None:
        resp = client.get("/api/check-cats", headers={"Authorization": "Bearer s3cret"})
        assert resp.status_code == 200
        assert stub.calls == 1

    def test_query_secret_on_post(self, client, stub) -> None:
        resp = client.post("/api/check-cats", params={"secret": "s3cret"})
        assert resp.status_code == 200
        assert stub.calls == 1

    def test_unconfigured_secret(self, config) -> None:
        open_config = dataclasses.replace(
            config, server=dataclasses.replace(config.server, cron_secret=""),
        )
        stub = _StubCheck()
        with TestClient(create_app(open_config, run_check=stub)) as c:
            resp = c.get("/api/check-cats", params={"secret": ""})

        assert resp.status_code == 500
        assert resp.json()["error"] == "Server misconfigured"
        assert stub.calls == 0


class TestRunMapping:
    AUTH = {"Authorization": "Bearer s3cret"}

    def test_success_body(self, client) -> None:
        body = client.get("/api/check-cats", headers=self.AUTH).json()

        assert body["ok"] is True
        assert (body["totalCats"], body["totalPages"], body["found"], body["new"]) == (20, 2, 4, 2)
        assert "warning" not in body
        assert "error" not in body

    def test_warning_is_still_200(self, client, stub) -> None:
        stub.result = RunResult(ok=True, warning="No cat IDs found")
        resp = client.get("/api/check-cats", headers=self.AUTH)

        assert resp.status_code == 200
        assert resp.json()["warning"] == "No cat IDs found"

    def test_failed_run_is_500(self, client, stub) -> None:
        stub.result = RunResult(ok=False, error="Fetch failed for x (HTTP 503)")
        resp = client.get("/api/check-cats", headers=self.AUTH)

        assert resp.status_code == 500
        assert resp.json()["ok"] is False
        assert "503" in resp.json()["error"]

    def test_unexpected_exception_is_500(self, client, stub) -> None:
        stub.error = RuntimeError("boom")
        resp = client.get("/api/check-cats", headers=self.AUTH)

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error", "message": "boom"}


class TestHealth:
    def test_health(self, client) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}
