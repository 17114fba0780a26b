"""
tests/test_api_routes.py -- Integration tests for the account pages.

These tests exercise the full stack: TrustedHost -> access-control
middleware (rate limit, then AccessPolicy) -> route handler -> response. The
policy is the safety-critical path, so it is driven through real HTTP rather
than mocked.

Coverage:
  - 401 with a Basic challenge for missing, unknown, wrong or malformed credentials
  - 403 for authenticated callers without a required role
  - 200 bodies and content types for allowed callers
  - Unrouted paths are still gated (401 anonymous, 404 authenticated)
  - Error responses use the common {"error": {...}} envelope
  - Gate denials and get_current_user share one envelope (auth.dependencies.denial)

Fixtures used (from conftest.py):
  - client: module-scoped TestClient with the seed users loaded by lifespan
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth.dependencies import denial
from auth.models import Outcome
from conftest import PASSWORDS, basic

ADMIN_BODY = "<h1>Administrator Page</h1> Greetings Admin!"
MANAGERS_BODY = "<h1>Managers Page</h1> Greetings Manager!"


def _as(username: str) -> dict[str, str]:
    return basic(username, PASSWORDS[username])


class TestUnauthenticated:
    """Requests without valid credentials must get a 401 challenge."""

    @pytest.mark.parametrize("path", ["/everyone", "/admin", "/managers"])
    def test_no_credentials(self, client: TestClient, path: str) -> None:
        resp = client.get(path)
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == 'Basic realm="Realm"'
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_wrong_password(self, client: TestClient) -> None:
        resp = client.get("/admin", headers=basic("artemas", "password"))
        assert resp.status_code == 401
        assert "www-authenticate" in resp.headers

    def test_unknown_user_looks_like_wrong_password(self, client: TestClient) -> None:
        unknown = client.get("/everyone", headers=basic("mallory", "password"))
        wrong = client.get("/everyone", headers=basic("paul", "not-it"))
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()

    def test_malformed_authorization_header(self, client: TestClient) -> None:
        resp = client.get("/everyone", headers={"Authorization": "Basic !!!not-base64!!!"})
        assert resp.status_code == 401

    def test_non_basic_scheme(self, client: TestClient) -> None:
        resp = client.get("/everyone", headers={"Authorization": "Bearer abc.def.ghi"})
        assert resp.status_code == 401

    def test_unrouted_path_is_still_gated(self, client: TestClient) -> None:
        resp = client.get("/no/such/page")
        assert resp.status_code == 401

    def test_over_long_password_is_plain_401(self, client: TestClient) -> None:
        resp = client.get("/everyone", headers=basic("paul", "x" * 80))
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == 'Basic realm="Realm"'

    def test_non_ascii_password_is_decoded_not_rejected(self, client: TestClient) -> None:
        resp = client.get("/everyone", headers=basic("paul", "pässwörd"))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"


class TestForbidden:
    """Authenticated callers without a required role must get 403."""

    def test_user_on_admin(self, client: TestClient) -> None:
        resp = client.get("/admin", headers=_as("paul"))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"
        assert "www-authenticate" not in resp.headers

    def test_manager_on_admin(self, client: TestClient) -> None:
        resp = client.get("/admin", headers=_as("james"))
        assert resp.status_code == 403

    def test_user_on_managers(self, client: TestClient) -> None:
        resp = client.get("/managers", headers=_as("paul"))
        assert resp.status_code == 403

    def test_user_under_admin_subtree(self, client: TestClient) -> None:
        resp = client.get("/admin/reports", headers=_as("paul"))
        assert resp.status_code == 403


class TestAllowed:
    @pytest.mark.parametrize("username", sorted(PASSWORDS))
    def test_everyone(self, client: TestClient, username: str) -> None:
        resp = client.get("/everyone", headers=_as(username))
        assert resp.status_code == 200
        assert resp.text == "Hello Everyone"
        assert resp.headers["content-type"].startswith("text/plain")

    def test_admin_page(self, client: TestClient) -> None:
        resp = client.get("/admin", headers=_as("artemas"))
        assert resp.status_code == 200
        assert resp.text == ADMIN_BODY
        assert resp.headers["content-type"].startswith("text/html")

    @pytest.mark.parametrize("username", ["james", "artemas"])
    def test_managers_page(self, client: TestClient, username: str) -> None:
        resp = client.get("/managers", headers=_as(username))
        assert resp.status_code == 200
        assert resp.text == MANAGERS_BODY

    def test_admin_subtree_without_route_is_404_for_admin(self, client: TestClient) -> None:
        resp = client.get("/admin/reports", headers=_as("artemas"))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "http_404"

    def test_unrouted_path_is_404_once_authenticated(self, client: TestClient) -> None:
        resp = client.get("/no/such/page", headers=_as("paul"))
        assert resp.status_code == 404


class TestHostCheck:
    def test_unexpected_host_rejected(self, client: TestClient) -> None:
        resp = client.get("/everyone", headers={**_as("paul"), "Host": "evil.example.com"})
        assert resp.status_code == 400


class TestDenialEnvelope:
    """The gate renders the same HTTPException that get_current_user raises."""

    def test_401_body_matches_denial(self, client: TestClient) -> None:
        resp = client.get("/everyone")
        assert resp.json() == {"error": denial(Outcome.DENY_UNAUTHENTICATED).detail}

    def test_403_body_matches_denial(self, client: TestClient) -> None:
        resp = client.get("/admin", headers=_as("paul"))
        assert resp.status_code == 403
        assert resp.json() == {"error": denial(Outcome.DENY_FORBIDDEN).detail}
        assert "www-authenticate" not in resp.headers
