"""Tests for the FastAPI routes."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from vaultcheck.api.server import create_app
from vaultcheck.config import Settings
from vaultcheck.health.healthchecks import Healthchecks


@pytest.fixture
def client(app_settings: Settings, healthchecks: Healthchecks) -> TestClient:
    app = create_app(app_settings)
    app.state.healthchecks = healthchecks
    return TestClient(app)


class TestHealthRoutes:
    def test_status(self, client: TestClient) -> None:
        resp = client.get("/healthcheck/status.json")
        assert resp.status_code == 200
        data = resp.json()
        assert data["body"] == "OK"
        assert data["header"]["status"] == "success"
        assert data["header"]["action"] == "/healthcheck/status.json"
        assert data["header"]["code"] == 200

    def test_full_report(self, client: TestClient) -> None:
        resp = client.get("/healthcheck.json")
        assert resp.status_code == 200
        body = resp.json()["body"]
        assert set(body) == {
            "environment", "configFile", "core", "ssl", "database", "gpg", "application", "smtpSettings",
        }
        assert body["database"]["connect"] is True
        assert body["application"]["adminCount"] is True
        assert body["smtpSettings"]["status"] == "pass"

    def test_single_category(self, client: TestClient) -> None:
        resp = client.get("/healthcheck/configFiles.json")
        assert resp.status_code == 200
        assert resp.json()["body"] == {"configFile": {"app": True, "passbolt": True}}

    def test_category_runs_in_isolation(self, client: TestClient) -> None:
        body = client.get("/healthcheck/gpg.json").json()["body"]
        assert set(body) == {"gpg"}

    def test_unknown_category(self, client: TestClient) -> None:
        resp = client.get("/healthcheck/nope.json")
        assert resp.status_code == 404
        assert "nope" in resp.json()["detail"]


class TestLifespan:
    def test_builds_and_closes_healthchecks(self, app_settings: Settings) -> None:
        app = create_app(app_settings)
        with TestClient(app) as client:
            assert isinstance(app.state.healthchecks, Healthchecks)
            assert client.get("/healthcheck/status.json").status_code == 200
        assert app.state.healthchecks.client.is_closed

    def test_keeps_injected_healthchecks(self, app_settings: Settings, healthchecks: Healthchecks) -> None:
        app = create_app(app_settings)
        app.state.healthchecks = healthchecks
        with TestClient(app):
            assert app.state.healthchecks is healthchecks
        assert not healthchecks.client.is_closed
