"""Tests for signup and login endpoints."""

from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.user import User
from app.services.auth import check_password
from app.services.jwt import get_jwt_service

SIGNUP_BODY = {
    "name": "New User",
    "email": "new@example.com",
    "password": "password123",
    "passwordConfirm": "password123",
}


class TestSignup:
    """Tests for user registration."""

    def test_signup_success(self, client: TestClient, db_session: Session):
        """Signup returns 201 with a token that verifies to the new user."""
        response = client.post("/api/v1/users/signup", json=SIGNUP_BODY)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "success"
        user = data["data"]["user"]
        assert user["email"] == "new@example.com"
        assert user["name"] == "New User"
        assert user["role"] == "user"

        claims = get_jwt_service().verify_token(data["token"])
        assert claims.user_id == user["id"]
        assert db_session.get(User, user["id"]) is not None

    def test_signup_never_returns_password(self, client: TestClient):
        """Neither the password nor its hash is serialized."""
        response = client.post("/api/v1/users/signup", json=SIGNUP_BODY)
        user = response.json()["data"]["user"]
        assert "password" not in user
        assert "password_hash" not in user
        assert "password123" not in response.text

    def test_signup_hashes_password(self, client: TestClient, db_session: Session):
        """Stored hash is salted bcrypt, not the plaintext."""
        client.post("/api/v1/users/signup", json=SIGNUP_BODY)
        client.post("/api/v1/users/signup", json={**SIGNUP_BODY, "email": "other@example.com"})
        hashes = [u.password_hash for u in db_session.query(User).all()]
        assert "password123" not in hashes
        assert hashes[0] != hashes[1]
        assert all(h.startswith("$2") for h in hashes)

    def test_signup_with_role(self, client: TestClient):
        """An explicit role is stored."""
        response = client.post("/api/v1/users/signup", json={**SIGNUP_BODY, "role": "guide"})
        assert response.status_code == 201
        assert response.json()["data"]["user"]["role"] == "guide"

    def test_signup_unknown_role(self, client: TestClient):
        """Roles outside the enum are rejected by the schema."""
        response = client.post("/api/v1/users/signup", json={**SIGNUP_BODY, "role": "superuser"})
        assert response.status_code == 422

    def test_signup_normalizes_email(self, client: TestClient):
        """Email is lower-cased and stripped."""
        response = client.post("/api/v1/users/signup", json={**SIGNUP_BODY, "email": "  New@Example.COM "})
        assert response.json()["data"]["user"]["email"] == "new@example.com"

    def test_signup_duplicate_email(self, client: TestClient, test_user: dict):
        """Reject duplicate email registration regardless of case."""
        response = client.post("/api/v1/users/signup", json={**SIGNUP_BODY, "email": "TEST@example.com"})
        assert response.status_code == 400
        assert response.json()["status"] == "fail"
        assert "already registered" in response.json()["detail"]

    def test_signup_password_mismatch(self, client: TestClient, db_session: Session):
        """Password and confirmation must match."""
        response = client.post("/api/v1/users/signup", json={**SIGNUP_BODY, "passwordConfirm": "password124"})
        assert response.status_code == 400
        assert "not the same" in response.json()["detail"]
        assert db_session.query(User).count() == 0

    def test_signup_short_password(self, client: TestClient):
        """Passwords shorter than 8 characters are rejected."""
        response = client.post(
            "/api/v1/users/signup",
            json={**SIGNUP_BODY, "password": "short", "passwordConfirm": "short"},
        )
        assert response.status_code == 400
        assert "at least 8" in response.json()["detail"]

    def test_signup_missing_fields(self, client: TestClient):
        """Missing required body fields fail schema validation."""
        response = client.post("/api/v1/users/signup", json={"email": "x@example.com"})
        assert response.status_code == 422


class TestLogin:
    """Tests for user login."""

    def test_login_success(self, client: TestClient, test_user: dict):
        """Valid credentials yield a token for that user."""
        response = client.post(
            "/api/v1/users/login",
            json={"email": "test@example.com", "password": "password123"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert get_jwt_service().verify_token(data["token"]).user_id == test_user["user_id"]

    def test_login_wrong_password(self, client: TestClient, test_user: dict):
        """Reject login with wrong password and issue no token."""
        response = client.post(
            "/api/v1/users/login",
            json={"email": "test@example.com", "password": "wrongpassword"},
        )
        assert response.status_code == 401
        assert "token" not in response.json()
        assert response.json()["detail"] == "Incorrect email or password"

    def test_login_nonexistent_email(self, client: TestClient):
        """Unknown email fails exactly like a wrong password."""
        response = client.post(
            "/api/v1/users/login",
            json={"email": "nobody@example.com", "password": "password123"},
        )
        assert response.status_code == 401
        assert "token" not in response.json()
        assert response.json()["detail"] == "Incorrect email or password"

    def test_login_nonexistent_email_still_checks_a_hash(self, client: TestClient):
        """An unknown email costs one bcrypt check, like a known one."""
        with patch("app.services.auth.check_password", wraps=check_password) as checked:
            response = client.post(
                "/api/v1/users/login",
                json={"email": "nobody@example.com", "password": "password123"},
            )
        assert response.status_code == 401
        assert checked.call_count == 1

    def test_login_missing_password(self, client: TestClient):
        """Email and password are both required."""
        response = client.post("/api/v1/users/login", json={"email": "test@example.com"})
        assert response.status_code == 400
        assert "provide email and password" in response.json()["detail"]

    def test_login_case_insensitive(self, client: TestClient, test_user: dict):
        """Login works regardless of email case."""
        response = client.post(
            "/api/v1/users/login",
            json={"email": "TEST@EXAMPLE.COM", "password": "password123"},
        )
        assert response.status_code == 200

    def test_login_inactive_user(self, client: TestClient, test_user: dict, db_session: Session):
        """Deactivated accounts cannot log in."""
        user = db_session.get(User, test_user["user_id"])
        user.is_active = False
        db_session.commit()

        response = client.post(
            "/api/v1/users/login",
            json={"email": "test@example.com", "password": "password123"},
        )
        assert response.status_code == 401

    def test_login_records_last_login(self, client: TestClient, test_user: dict, db_session: Session):
        client.post("/api/v1/users/login", json={"email": "test@example.com", "password": "password123"})
        assert db_session.get(User, test_user["user_id"]).last_login_at is not None

    def test_login_is_audited(self, client: TestClient, test_user: dict):
        """Auth POSTs are written to the audit log."""
        with patch("main.logger") as mock_logger:
            client.post("/api/v1/users/login", json={"email": "test@example.com", "password": "password123"})
            calls = [str(c) for c in mock_logger.info.call_args_list]
            assert any("AUDIT" in c for c in calls)


class TestHealthCheck:
    """Tests for health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Health check returns ok status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["app"] == "natours"

    def test_security_headers(self, client: TestClient):
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_non_numeric_content_length(self, client: TestClient):
        response = client.get("/api/health", headers={"Content-Length": "abc"})
        assert response.status_code == 400
        assert response.json() == {"status": "fail", "detail": "Invalid Content-Length header"}

    def test_oversized_body_rejected(self, client: TestClient):
        response = client.post(
            "/api/v1/users/login",
            json={"email": "test@example.com", "password": "x" * (11 * 1024)},
        )
        assert response.status_code == 413
