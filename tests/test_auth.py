"""Tests for bearer authentication and the admin check."""

import pytest
from fastapi import Depends, Request
from fastapi.testclient import TestClient

from blogapi.app.exceptions import AuthenticationError
from blogapi.app.middleware.auth import (
    MALFORMED_HEADER_MESSAGE,
    MISSING_HEADER_MESSAGE,
    Principal,
    parse_bearer_credential,
    require_admin,
    require_auth,
)

from tests.conftest import ADMIN_TOKEN, NON_ADMIN_TOKEN, STRING_ADMIN_TOKEN, USER_TOKEN, bearer


class TestParseBearerCredential:
    def test_valid_header(self):
        assert parse_bearer_credential("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header):
        with pytest.raises(AuthenticationError) as exc_info:
            parse_bearer_credential(header)
        assert exc_info.value.message == MISSING_HEADER_MESSAGE
        assert exc_info.value.status_code == 401

    @pytest.mark.parametrize(
        "header",
        [
            "Token abc",
            "bearer abc",
            "Bearer",
            "Bearer a b",
            "Bearer  abc",
            "abc",
        ],
    )
    def test_malformed_header(self, header):
        with pytest.raises(AuthenticationError) as exc_info:
            parse_bearer_credential(header)
        assert exc_info.value.message == MALFORMED_HEADER_MESSAGE

    def test_empty_credential_passes_format_check(self):
        # Rejected later by the verifier
        assert parse_bearer_credential("Bearer ") == ""


class TestPrincipal:
    def test_admin_requires_boolean_true(self):
        assert Principal(uid="a", claims={"admin": True}).is_admin is True
        assert Principal(uid="a", claims={"admin": "true"}).is_admin is False
        assert Principal(uid="a", claims={"admin": 1}).is_admin is False
        assert Principal(uid="a", claims={}).is_admin is False


@pytest.fixture
def auth_client(app_factory):
    app = app_factory()

    @app.get("/whoami")
    async def whoami(request: Request, principal: Principal = Depends(require_auth)):
        return {"uid": principal.uid, "state_uid": request.state.uid}

    with TestClient(app) as client:
        yield client


class TestRequireAuth:
    def test_missing_header_returns_401(self, auth_client):
        response = auth_client.get("/whoami")
        assert response.status_code == 401
        assert response.json() == {"error": "Authorization header is required"}

    def test_malformed_header_returns_401(self, auth_client):
        response = auth_client.get("/whoami", headers={"Authorization": "Token abc"})
        assert response.status_code == 401
        assert response.json() == {"error": "Authorization header format must be Bearer <token>"}

    def test_unverifiable_token_returns_401(self, auth_client, verifier):
        response = auth_client.get("/whoami", headers=bearer("forged"))
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}
        assert verifier.calls == ["forged"]

    def test_empty_token_returns_invalid_token(self, auth_client):
        response = auth_client.get("/whoami", headers={"Authorization": "Bearer "})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}

    def test_valid_token_attaches_principal(self, auth_client):
        response = auth_client.get("/whoami", headers=bearer(USER_TOKEN))
        assert response.status_code == 200
        assert response.json() == {"uid": "u1", "state_uid": "u1"}

    def test_admin_false_claim_still_authenticates(self, auth_client):
        response = auth_client.get("/whoami", headers=bearer(NON_ADMIN_TOKEN))
        assert response.status_code == 200
        assert response.json() == {"uid": "u1", "state_uid": "u1"}


class TestRequireAdmin:
    def test_non_admin_gets_403(self, client):
        response = client.get("/api/v1/admin/users", headers=bearer(USER_TOKEN))
        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}

    def test_false_admin_claim_gets_403(self, client):
        response = client.get("/api/v1/admin/users", headers=bearer(NON_ADMIN_TOKEN))
        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}

    def test_string_admin_claim_gets_403(self, client):
        response = client.get("/api/v1/admin/users", headers=bearer(STRING_ADMIN_TOKEN))
        assert response.status_code == 403

    def test_missing_header_gets_401_before_admin_check(self, client):
        response = client.get("/api/v1/admin/users")
        assert response.status_code == 401
        assert response.json() == {"error": "Authorization header is required"}

    def test_admin_verifies_token_once(self, client, verifier):
        response = client.get("/api/v1/admin/users", headers=bearer(ADMIN_TOKEN))
        assert response.status_code == 200
        assert verifier.calls == [ADMIN_TOKEN]

    def test_admin_check_without_principal_is_401(self, app_factory):
        app = app_factory()

        @app.get("/admin-only", dependencies=[Depends(require_admin)])
        async def admin_only():
            return {"ok": True}

        with TestClient(app) as client:
            response = client.get("/admin-only", headers=bearer(ADMIN_TOKEN))

        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}
