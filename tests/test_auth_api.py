"""HTTP tests for /api/v1/auth: register, login, logout, cookies and the session guard."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import jwt
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.v1.auth import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import create_access_token
from app.main import app
from app.models import Base, User
from app.services.auth import TOKEN_FAILURE
from app.services.user_store import UserStore

TEST_SETTINGS = Settings(
    _env_file=None,
    ACCESS_TOKEN_SECRET="access-secret-for-tests-0123456789",
    REFRESH_TOKEN_SECRET="refresh-secret-for-tests-0123456789",
    BCRYPT_ROUNDS=4,
)

AUTH = "/api/v1/auth"
ALICE = {
    "fullName": "Alice A",
    "email": "alice@x.com",
    "password": "secret123",
    "username": "alice",
}


def _set_cookie_headers(resp) -> list[str]:
    return resp.headers.get_list("set-cookie")


def _cookie_header(resp, name: str) -> str:
    matches = [h for h in _set_cookie_headers(resp) if h.startswith(f"{name}=")]
    assert len(matches) == 1, f"expected one {name} cookie, got {_set_cookie_headers(resp)}"
    return matches[0].lower()


class AuthApiTestCase(unittest.TestCase):
    """Runs the app against an in-memory SQLite database with test token secrets."""

    def setUp(self) -> None:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(engine)
        self.SessionLocal = sessionmaker(bind=engine, autoflush=False)

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
        # https so the Secure cookies are sent back by the client
        self.client = TestClient(app, base_url="https://testserver")

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _stored_refresh_token(self, username: str) -> str | None:
        db = self.SessionLocal()
        try:
            return db.query(User).filter(User.username == username).one().refresh_token
        finally:
            db.close()


class TestAliceScenario(AuthApiTestCase):
    """register -> login -> bad login -> logout -> repeated logout."""

    def test_full_session(self) -> None:
        resp = self.client.post(f"{AUTH}/register", json=ALICE)
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["message"], "User registered successfully")
        self.assertEqual(body["user"]["username"], "alice")
        self.assertEqual(body["user"]["fullName"], "Alice A")
        for field in ("password", "password_hash", "refreshToken", "refresh_token"):
            self.assertNotIn(field, body["user"])

        resp = self.client.post(f"{AUTH}/login", json={"username": "alice", "password": "secret123"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        access_token = body["accessToken"]
        self.assertTrue(access_token)
        self.assertNotIn("refreshToken", body["user"])
        access_cookie = _cookie_header(resp, ACCESS_TOKEN_COOKIE)
        refresh_cookie = _cookie_header(resp, REFRESH_TOKEN_COOKIE)
        for cookie in (access_cookie, refresh_cookie):
            self.assertIn("httponly", cookie)
            self.assertIn("secure", cookie)
        self.assertIn(access_token.lower(), access_cookie)
        stored = self._stored_refresh_token("alice")
        self.assertIsNotNone(stored)
        self.assertIn(stored.lower(), refresh_cookie)

        resp = self.client.post(f"{AUTH}/login", json={"username": "alice", "password": "wrong"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Invalid credentials")
        self.assertEqual(_set_cookie_headers(resp), [])
        self.assertEqual(self._stored_refresh_token("alice"), stored)

        headers = {"Authorization": f"Bearer {access_token}"}
        resp = self.client.get(f"{AUTH}/logout", headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "User logged out successfully")
        self.assertIn("max-age=0", _cookie_header(resp, ACCESS_TOKEN_COOKIE))
        self.assertIn("max-age=0", _cookie_header(resp, REFRESH_TOKEN_COOKIE))
        self.assertIsNone(self._stored_refresh_token("alice"))

        resp = self.client.get(f"{AUTH}/logout", headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(self._stored_refresh_token("alice"))


class TestRegisterApi(AuthApiTestCase):
    def test_duplicate_registration(self) -> None:
        self.assertEqual(self.client.post(f"{AUTH}/register", json=ALICE).status_code, 201)
        resp = self.client.post(f"{AUTH}/register", json=ALICE)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "User already exists")

    def test_missing_field(self) -> None:
        resp = self.client.post(f"{AUTH}/register", json={**ALICE, "fullName": "  "})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "All fields are required")
        resp = self.client.post(f"{AUTH}/register", json={"email": "a@x.com"})
        self.assertEqual(resp.status_code, 400)

    def test_malformed_body(self) -> None:
        resp = self.client.post(f"{AUTH}/register", json={**ALICE, "username": ["alice"]})
        self.assertEqual(resp.status_code, 400)
        resp = self.client.post(
            f"{AUTH}/register",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 400)


class TestLoginApi(AuthApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.client.post(f"{AUTH}/register", json=ALICE)

    def test_login_by_email(self) -> None:
        resp = self.client.post(f"{AUTH}/login", json={"email": "ALICE@x.com", "password": "secret123"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["email"], "alice@x.com")

    def test_unknown_user(self) -> None:
        resp = self.client.post(f"{AUTH}/login", json={"email": "bob@x.com", "password": "secret123"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["detail"], "Email not found")

    def test_missing_credentials(self) -> None:
        resp = self.client.post(f"{AUTH}/login", json={"password": "secret123"})
        self.assertEqual(resp.status_code, 400)
        resp = self.client.post(f"{AUTH}/login", json={"username": "alice"})
        self.assertEqual(resp.status_code, 400)

    def test_new_login_overwrites_refresh_token(self) -> None:
        self.client.post(f"{AUTH}/login", json={"username": "alice", "password": "secret123"})
        first = self._stored_refresh_token("alice")
        self.client.post(f"{AUTH}/login", json={"username": "alice", "password": "secret123"})
        second = self._stored_refresh_token("alice")
        self.assertNotEqual(first, second)


class TestSessionGuard(AuthApiTestCase):
    """GET /logout is rejected before any store mutation when the token is bad."""

    def setUp(self) -> None:
        super().setUp()
        self.client.post(f"{AUTH}/register", json=ALICE)
        resp = self.client.post(f"{AUTH}/login", json={"username": "alice", "password": "secret123"})
        self.access_token = resp.json()["accessToken"]
        self.refresh_token = self._stored_refresh_token("alice")
        self.anonymous = TestClient(app, base_url="https://testserver")

    def _assert_rejected(self, resp) -> None:
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.headers.get("www-authenticate"), "Bearer")
        self.assertEqual(self._stored_refresh_token("alice"), self.refresh_token)

    def test_missing_token(self) -> None:
        self._assert_rejected(self.anonymous.get(f"{AUTH}/logout"))

    def test_garbage_token(self) -> None:
        resp = self.anonymous.get(f"{AUTH}/logout", headers={"Authorization": "Bearer nonsense"})
        self._assert_rejected(resp)

    def test_expired_token(self) -> None:
        past = datetime.now(UTC) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "1", "type": "access", "iat": past, "exp": past + timedelta(minutes=15)},
            TEST_SETTINGS.ACCESS_TOKEN_SECRET.get_secret_value(),
            algorithm="HS256",
        )
        resp = self.anonymous.get(f"{AUTH}/logout", headers={"Authorization": f"Bearer {token}"})
        self._assert_rejected(resp)

    def test_refresh_token_is_not_an_access_token(self) -> None:
        resp = self.anonymous.get(
            f"{AUTH}/logout", headers={"Authorization": f"Bearer {self.refresh_token}"}
        )
        self._assert_rejected(resp)

    def test_unknown_user(self) -> None:
        token = create_access_token(999, "ghost", "ghost@x.com", TEST_SETTINGS)
        resp = self.anonymous.get(f"{AUTH}/logout", headers={"Authorization": f"Bearer {token}"})
        self._assert_rejected(resp)

    def test_cookie_token_is_accepted(self) -> None:
        self.anonymous.cookies.set(ACCESS_TOKEN_COOKIE, self.access_token)
        resp = self.anonymous.get(f"{AUTH}/logout")
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(self._stored_refresh_token("alice"))


class TestUnexpectedErrors(AuthApiTestCase):
    """Store faults reach the client as a 500 without internal details."""

    def setUp(self) -> None:
        super().setUp()
        self.client.post(f"{AUTH}/register", json=ALICE)
        self.faulty = TestClient(app, base_url="https://testserver", raise_server_exceptions=False)

    def test_unclassified_store_error_is_generic(self) -> None:
        error = OperationalError("SELECT", {}, Exception("connect failed: password=hunter2"))
        with patch.object(UserStore, "get_by_username", side_effect=error):
            resp = self.faulty.post(f"{AUTH}/login", json={"username": "alice", "password": "secret123"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"detail": "Internal server error"})
        self.assertNotIn("hunter2", resp.text)
        self.assertEqual(_set_cookie_headers(resp), [])

    def test_refresh_token_save_failure(self) -> None:
        error = OperationalError("UPDATE", {}, Exception("password=hunter2"))
        with patch.object(UserStore, "set_refresh_token", side_effect=error):
            resp = self.faulty.post(f"{AUTH}/login", json={"username": "alice", "password": "secret123"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"detail": TOKEN_FAILURE})
        self.assertNotIn("hunter2", resp.text)
        self.assertEqual(_set_cookie_headers(resp), [])
        self.assertIsNone(self._stored_refresh_token("alice"))

    def test_register_save_failure(self) -> None:
        error = OperationalError("INSERT", {}, Exception("password=hunter2"))
        with patch.object(UserStore, "create", side_effect=error):
            resp = self.faulty.post(
                f"{AUTH}/register",
                json={**ALICE, "email": "bob@x.com", "username": "bob"},
            )
        self.assertEqual(resp.status_code, 500)
        self.assertNotIn("hunter2", resp.text)


class TestHealthApi(AuthApiTestCase):
    def test_health_reports_database(self) -> None:
        resp = self.client.get("/api/v1/health/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok", "environment": "dev", "database": "connected"})


if __name__ == "__main__":
    unittest.main()
