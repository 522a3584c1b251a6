"""
Tests for the admin token guard.
"""

from __future__ import annotations

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from shuriken.api.auth import require_admin
from shuriken.api.deps import Settings, get_settings


def build_client(token: str | None) -> TestClient:
    settings = Settings()
    settings.admin_token = token

    app = FastAPI()

    @app.get("/protected", dependencies=[Depends(require_admin)])
    def protected() -> dict[str, bool]:
        return {"ok": True}

    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


@pytest.fixture
def client() -> TestClient:
    return build_client("s3cret")


class TestRequireAdmin:
    def test_valid_token(self, client: TestClient) -> None:
        response = client.get("/protected", headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == 200

    def test_scheme_is_case_insensitive(self, client: TestClient) -> None:
        response = client.get("/protected", headers={"Authorization": "bearer s3cret"})

        assert response.status_code == 200

    def test_missing_header(self, client: TestClient) -> None:
        response = client.get("/protected")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_wrong_token(self, client: TestClient) -> None:
        response = client.get("/protected", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    def test_non_ascii_token_rejected(self, client: TestClient) -> None:
        response = client.get("/protected", headers={"Authorization": b"Bearer \xe9"})

        assert response.status_code == 401

    def test_non_ascii_configured_token(self) -> None:
        client = build_client("s3crét")

        assert client.get("/protected", headers={"Authorization": "Bearer nope"}).status_code == 401

    def test_wrong_scheme(self, client: TestClient) -> None:
        response = client.get("/protected", headers={"Authorization": "Basic s3cret"})

        assert response.status_code == 401

    def test_unconfigured_token_disables_admin(self) -> None:
        response = build_client(None).get(
            "/protected", headers={"Authorization": "Bearer anything"}
        )

        assert response.status_code == 503
