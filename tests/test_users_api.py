"""Tests for the auth, user, blog and admin endpoints."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from tests.conftest import ADMIN_TOKEN, USER_TOKEN, bearer

BLOG_ID = "64b7f0c2a1b2c3d4e5f60718"


@pytest.fixture
def registered(client):
    response = client.post(
        "/api/v1/auth/register",
        headers=bearer(USER_TOKEN),
        json={"name": "Ada", "email": "Ada@Example.com", "photo_url": "https://img/ada.png"},
    )
    assert response.status_code == 200
    return response.json()


class TestAuthEndpoints:
    def test_validate_token_creates_user(self, client):
        response = client.post(
            "/api/v1/auth/validate-token",
            json={
                "token": USER_TOKEN,
                "user": {"id": "u1", "name": "Ada", "email": "ada@example.com", "photo_url": ""},
            },
        )

        assert response.status_code == 200
        assert response.json() == {"uid": "u1", "email": "ada@example.com", "name": "Ada"}

        login = client.post("/api/v1/auth/login", headers=bearer(USER_TOKEN))
        assert login.status_code == 200
        assert login.json()["name"] == "Ada"

    def test_validate_token_rejects_bad_token(self, client):
        response = client.post(
            "/api/v1/auth/validate-token",
            json={"token": "forged", "user": {"id": "u1"}},
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}

    def test_handlers_log_through_app_logging_service(self, app_factory):
        app = app_factory()
        handler_logger = Mock()
        app.state.logging_service = Mock(get_logger=Mock(return_value=handler_logger))

        with TestClient(app) as client:
            response = client.post(
                "/api/v1/auth/validate-token",
                json={"token": "forged", "user": {"id": "u1"}},
            )

        assert response.status_code == 401
        app.state.logging_service.get_logger.assert_called_with("blogapi.api")
        message = handler_logger.warning.call_args.args[0]
        assert message == "Token validation failed: unknown token"

    def test_validate_token_rejects_uid_mismatch(self, client):
        response = client.post(
            "/api/v1/auth/validate-token",
            json={"token": USER_TOKEN, "user": {"id": "someone-else"}},
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Token UID does not match user ID"}

    def test_register_normalizes_email(self, registered):
        assert registered["id"] == "u1"
        assert registered["email"] == "ada@example.com"
        assert "created_at" in registered

    def test_register_twice_conflicts(self, client, registered):
        response = client.post(
            "/api/v1/auth/register",
            headers=bearer(USER_TOKEN),
            json={"name": "Ada", "email": "ada@example.com"},
        )
        assert response.status_code == 409
        assert response.json() == {"error": "user already exists"}

    def test_login_unregistered(self, client):
        response = client.post("/api/v1/auth/login", headers=bearer(USER_TOKEN))
        assert response.status_code == 404
        assert response.json() == {"error": "User not found. Please register first."}

    def test_login_or_register(self, client):
        body = {"name": "Ada", "email": "ada@example.com"}
        first = client.post("/api/v1/auth/login-or-register", headers=bearer(USER_TOKEN), json=body)
        second = client.post("/api/v1/auth/login-or-register", headers=bearer(USER_TOKEN), json=body)

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["created_at"] == second.json()["created_at"]

    def test_register_rejects_invalid_email(self, client):
        response = client.post(
            "/api/v1/auth/register",
            headers=bearer(USER_TOKEN),
            json={"name": "Ada", "email": "not-an-email"},
        )
        assert response.status_code == 400


class TestUserEndpoints:
    def test_profile(self, client, registered):
        response = client.get("/api/v1/user/profile", headers=bearer(USER_TOKEN))

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Ada"
        assert body["bookmarks_count"] == 0
        assert body["likes_count"] == 0

    def test_update_profile(self, client, registered):
        response = client.put(
            "/api/v1/user/profile",
            headers=bearer(USER_TOKEN),
            json={"name": "Ada Lovelace"},
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Ada Lovelace"
        profile = client.get("/api/v1/user/profile", headers=bearer(USER_TOKEN))
        assert profile.json()["name"] == "Ada Lovelace"

    def test_update_profile_rejects_blank_name(self, client, registered):
        response = client.put(
            "/api/v1/user/profile",
            headers=bearer(USER_TOKEN),
            json={"name": "   "},
        )
        assert response.status_code == 400

    def test_bookmarks_and_likes_lists(self, client, registered):
        client.post(f"/api/v1/blogs/{BLOG_ID}/bookmark", headers=bearer(USER_TOKEN))

        bookmarks = client.get("/api/v1/user/bookmarks", headers=bearer(USER_TOKEN))
        likes = client.get("/api/v1/user/likes", headers=bearer(USER_TOKEN))

        assert bookmarks.json() == {"user": "ada@example.com", "bookmarks": [BLOG_ID]}
        assert likes.json() == {"user": "ada@example.com", "likes": []}

    def test_profile_counts_reactions(self, client, registered):
        other = "64b7f0c2a1b2c3d4e5f60719"
        client.post(f"/api/v1/blogs/{BLOG_ID}/bookmark", headers=bearer(USER_TOKEN))
        client.post(f"/api/v1/blogs/{other}/bookmark", headers=bearer(USER_TOKEN))
        client.post(f"/api/v1/blogs/{other}/like", headers=bearer(USER_TOKEN))

        body = client.get("/api/v1/user/profile", headers=bearer(USER_TOKEN)).json()

        assert body["bookmarks_count"] == 2
        assert body["likes_count"] == 1

    def test_profile_requires_auth(self, client):
        response = client.get("/api/v1/user/profile")
        assert response.status_code == 401


class TestBlogEndpoints:
    def test_toggle_like(self, client, registered):
        first = client.post(f"/api/v1/blogs/{BLOG_ID}/like", headers=bearer(USER_TOKEN))
        second = client.post(f"/api/v1/blogs/{BLOG_ID}/like", headers=bearer(USER_TOKEN))

        assert first.status_code == 200
        assert first.json() == {
            "message": f"Blog {BLOG_ID} like toggled by user u1",
            "liked": True,
        }
        assert second.json()["liked"] is False

    def test_toggle_bookmark_invalid_id(self, client, registered):
        response = client.post("/api/v1/blogs/not-a-blog/bookmark", headers=bearer(USER_TOKEN))
        assert response.status_code == 400
        assert response.json() == {"error": "invalid blog ID format"}

    def test_toggle_like_unregistered_user(self, client):
        response = client.post(f"/api/v1/blogs/{BLOG_ID}/like", headers=bearer(USER_TOKEN))
        assert response.status_code == 404
        assert response.json() == {"error": "user not found"}

    def test_reactions_anonymous(self, client, registered):
        client.post(f"/api/v1/blogs/{BLOG_ID}/like", headers=bearer(USER_TOKEN))

        response = client.get(f"/api/v1/blogs/{BLOG_ID}/reactions")

        assert response.status_code == 200
        assert response.json() == {"blog_id": BLOG_ID, "likes": 1, "bookmarks": 0}

    def test_reactions_authenticated(self, client, registered):
        client.post(f"/api/v1/blogs/{BLOG_ID}/like", headers=bearer(USER_TOKEN))

        response = client.get(f"/api/v1/blogs/{BLOG_ID}/reactions", headers=bearer(USER_TOKEN))

        assert response.json() == {
            "blog_id": BLOG_ID,
            "likes": 1,
            "bookmarks": 0,
            "liked": True,
            "bookmarked": False,
        }

    def test_reactions_ignore_bad_token(self, client):
        response = client.get(f"/api/v1/blogs/{BLOG_ID}/reactions", headers=bearer("forged"))
        assert response.status_code == 200
        assert "liked" not in response.json()

    def test_reactions_ignore_malformed_header(self, client, registered, verifier):
        client.post(f"/api/v1/blogs/{BLOG_ID}/like", headers=bearer(USER_TOKEN))
        verifier.calls.clear()

        response = client.get(
            f"/api/v1/blogs/{BLOG_ID}/reactions",
            headers={"Authorization": "Token abc"},
        )

        assert response.status_code == 200
        assert response.json() == {"blog_id": BLOG_ID, "likes": 1, "bookmarks": 0}
        assert verifier.calls == []


class TestAdminEndpoints:
    def test_list_users(self, client, registered):
        response = client.get("/api/v1/admin/users?limit=10&offset=0", headers=bearer(ADMIN_TOKEN))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["limit"] == 10
        assert [u["id"] for u in body["users"]] == ["u1"]

    def test_list_users_rejects_bad_limit(self, client):
        response = client.get("/api/v1/admin/users?limit=0", headers=bearer(ADMIN_TOKEN))
        assert response.status_code == 400


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["components"]["database"]["status"] == "ok"
