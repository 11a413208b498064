"""End-to-end tests of the request pipeline on the assembled app."""

from fastapi.testclient import TestClient

from tests.conftest import NON_ADMIN_TOKEN, USER_TOKEN, bearer


def test_fixed_window_end_to_end(app_factory, fake_clock):
    app = app_factory(rate_limit_requests=3, rate_limit_window_seconds=60.0)

    with TestClient(app) as client:
        statuses = [client.get("/health").status_code for _ in range(4)]
        rejected = client.get("/health")

        fake_clock.advance(61)
        after_window = client.get("/health")

    assert statuses == [200, 200, 200, 429]
    assert rejected.json() == {"error": "Rate limit exceeded. Try again later."}
    assert "Retry-After" in rejected.headers
    assert after_window.status_code == 200
    assert after_window.headers["X-RateLimit-Remaining"] == "2"


def test_rate_limit_applies_before_authentication(app_factory, verifier):
    app = app_factory(rate_limit_requests=1)

    with TestClient(app) as client:
        first = client.get("/api/v1/user/profile", headers=bearer(USER_TOKEN))
        second = client.get("/api/v1/user/profile", headers=bearer(USER_TOKEN))

    # The first passes auth and 404s on the unknown user; the second is
    # rejected before the verifier is called
    assert first.status_code == 404
    assert second.status_code == 429
    assert verifier.calls == [USER_TOKEN]


def test_authenticated_request_reaches_handler_with_uid(client):
    register = client.post(
        "/api/v1/auth/register",
        headers=bearer(USER_TOKEN),
        json={"name": "Ada", "email": "ada@example.com"},
    )
    profile = client.get("/api/v1/user/profile", headers=bearer(USER_TOKEN))

    assert register.status_code == 200
    assert profile.status_code == 200
    assert profile.json()["id"] == "u1"


def test_admin_route_with_user_token_is_forbidden(client):
    response = client.get("/api/v1/admin/users", headers=bearer(USER_TOKEN))
    assert response.status_code == 403
    assert response.json() == {"error": "Admin access required"}


def test_non_admin_token_reaches_user_routes_but_not_admin(client):
    client.post(
        "/api/v1/auth/register",
        headers=bearer(NON_ADMIN_TOKEN),
        json={"name": "Ada", "email": "ada@example.com"},
    )

    admin = client.get("/api/v1/admin/users", headers=bearer(NON_ADMIN_TOKEN))
    profile = client.get("/api/v1/user/profile", headers=bearer(NON_ADMIN_TOKEN))

    assert admin.status_code == 403
    assert admin.json() == {"error": "Admin access required"}
    assert profile.status_code == 200
    assert profile.json()["id"] == "u1"


def test_cors_preflight_is_answered(client):
    response = client.options(
        "/api/v1/user/profile",
        headers={
            "Origin": "https://blog.example.com",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "Authorization",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "GET" in response.headers["access-control-allow-methods"]


def test_cors_exposes_rate_limit_headers(client):
    response = client.get("/health", headers={"Origin": "https://blog.example.com"})

    exposed = response.headers["access-control-expose-headers"]
    assert "X-RateLimit-Remaining" in exposed
    assert "Retry-After" in exposed


def test_unknown_route_uses_error_shape(client):
    response = client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_invalid_body_returns_400(client):
    response = client.post(
        "/api/v1/auth/register",
        headers=bearer(USER_TOKEN),
        json={"name": "Ada"},
    )
    assert response.status_code == 400
    assert "email" in response.json()["error"]
