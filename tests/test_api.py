"""HTTP-level tests: routes, cookies, status codes and error bodies through the FastAPI app."""

import unittest

from fastapi.testclient import TestClient

from db_support import (
    STRONG_PASSWORD,
    db_override,
    fake_channels,
    make_session_factory,
    make_settings,
)
from portfolio.api.v1.contact import get_contact_channels
from portfolio.core.config import get_settings
from portfolio.core.database import get_db
from portfolio.main import app
from portfolio.services.credentials import set_role

PREFIX = "/api/v1"


class ApiTestCase(unittest.TestCase):
    settings_overrides: dict[str, object] = {}

    def setUp(self) -> None:
        self.settings = make_settings(**self.settings_overrides)
        self.factory = make_session_factory()
        self.channels = fake_channels()
        app.dependency_overrides[get_db] = db_override(self.factory)
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_contact_channels] = lambda: self.channels
        self.client = TestClient(app)

    def tearDown(self) -> None:
        self.client.close()
        app.dependency_overrides.clear()

    def register(self, username: str = "alice1", email: str = "a@example.com"):
        return self.client.post(
            f"{PREFIX}/auth/register",
            json={
                "username": username,
                "email": email,
                "password": STRONG_PASSWORD,
                "confirmPassword": STRONG_PASSWORD,
            },
        )

    def login(self, password: str = STRONG_PASSWORD, email: str = "a@example.com"):
        return self.client.post(
            f"{PREFIX}/auth/login", json={"email": email, "password": password}
        )


class TestRegisterAndSession(ApiTestCase):
    def test_register_returns_token_cookie_and_camel_case_user(self) -> None:
        resp = self.register()
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["message"], "User registered successfully")
        self.assertTrue(body["token"])
        self.assertIn("portfolio_sid", resp.cookies)
        user = body["user"]
        self.assertEqual(user["username"], "alice1")
        self.assertIn("lastLogin", user)
        self.assertIn("createdAt", user)
        self.assertEqual(user["preferences"], {"theme": "dark", "notifications": True})
        for key in ("password", "passwordHash", "password_hash", "loginAttempts", "lockUntil"):
            self.assertNotIn(key, user)

    def test_conflict_body_names_field(self) -> None:
        self.register()
        resp = self.register(username="bob_2")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"message": "Email already exists", "field": "email"})

    def test_me_via_session_cookie(self) -> None:
        self.register()
        resp = self.client.get(f"{PREFIX}/auth/me")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["email"], "a@example.com")

    def test_verify_via_bearer_header(self) -> None:
        token = self.register().json()["token"]
        self.client.cookies.clear()
        resp = self.client.get(
            f"{PREFIX}/auth/verify", headers={"Authorization": f"Bearer {token}"}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["username"], "alice1")

    def test_verify_via_token_cookie(self) -> None:
        token = self.register().json()["token"]
        self.client.cookies.clear()
        self.client.cookies.set("token", token)
        self.assertEqual(self.client.get(f"{PREFIX}/auth/verify").status_code, 200)

    def test_no_token_is_401_with_redirect(self) -> None:
        resp = self.client.get(f"{PREFIX}/auth/me")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["redirect"], "/signin.html")

    def test_bad_token_is_403(self) -> None:
        resp = self.client.get(
            f"{PREFIX}/auth/verify", headers={"Authorization": "Bearer not-a-token"}
        )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["redirect"], "/signin.html")

    def test_logout_twice_then_me_is_401(self) -> None:
        self.register()
        first = self.client.post(f"{PREFIX}/auth/logout")
        second = self.client.post(f"{PREFIX}/auth/logout")
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(first.json()["message"], "Logout successful")
        self.assertEqual(self.client.get(f"{PREFIX}/auth/me").status_code, 401)

    def test_status_reports_redirects(self) -> None:
        anonymous = self.client.get(f"{PREFIX}/auth/status").json()
        self.assertEqual(anonymous, {"authenticated": False, "user": None, "redirect": "/signin.html"})
        self.register()
        signed_in = self.client.get(f"{PREFIX}/auth/status").json()
        self.assertTrue(signed_in["authenticated"])
        self.assertEqual(signed_in["redirect"], "/index.html")

    def test_malformed_json_is_400(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/auth/login",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 400)


class TestLoginLockout(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.register()
        self.client.post(f"{PREFIX}/auth/logout")

    def test_wrong_password_and_unknown_email_match(self) -> None:
        wrong = self.login(password="wrong-password")
        unknown = self.login(email="nobody@example.com")
        self.assertEqual(wrong.status_code, 400)
        self.assertEqual(unknown.status_code, 400)
        self.assertEqual(wrong.json(), unknown.json())
        self.assertEqual(wrong.json(), {"message": "Invalid email or password"})

    def test_sixth_attempt_is_423_even_with_correct_password(self) -> None:
        for _ in range(5):
            self.assertEqual(self.login(password="wrong-password").status_code, 400)
        resp = self.login()
        self.assertEqual(resp.status_code, 423)
        self.assertIn("temporarily locked", resp.json()["message"])

    def test_login_sets_session_and_last_login(self) -> None:
        resp = self.login()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Login successful")
        self.assertIsNotNone(resp.json()["user"]["lastLogin"])
        self.assertEqual(self.client.get(f"{PREFIX}/auth/me").status_code, 200)


class TestRateLimit(ApiTestCase):
    settings_overrides = {"AUTH_RATE_LIMIT_MAX": 5}

    def test_sixth_auth_request_is_429(self) -> None:
        for _ in range(5):
            self.assertNotEqual(self.login().status_code, 429)
        resp = self.login()
        self.assertEqual(resp.status_code, 429)
        self.assertEqual(
            resp.json()["message"],
            "Too many authentication attempts. Please try again later.",
        )

    def test_other_routes_are_not_throttled(self) -> None:
        for _ in range(6):
            self.login()
        self.assertEqual(self.client.get(f"{PREFIX}/auth/status").status_code, 200)


class TestProfileAndPassword(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.token = self.register().json()["token"]

    def test_update_profile(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/auth/profile",
            json={"username": "alice_2", "preferences": {"theme": "light"}},
        )
        self.assertEqual(resp.status_code, 200)
        user = resp.json()["user"]
        self.assertEqual(user["username"], "alice_2")
        self.assertEqual(user["preferences"], {"theme": "light", "notifications": True})

    def test_verify_reports_new_username_after_rename(self) -> None:
        self.client.put(f"{PREFIX}/auth/profile", json={"username": "alice2"})
        session_view = self.client.get(f"{PREFIX}/auth/verify").json()
        self.assertEqual(session_view["user"]["username"], "alice2")
        with TestClient(app) as other:
            header_view = other.get(
                f"{PREFIX}/auth/verify",
                headers={"Authorization": f"Bearer {self.token}"},
            ).json()
        self.assertEqual(header_view["user"]["username"], "alice2")

    def test_unknown_preference_key_is_400(self) -> None:
        resp = self.client.put(f"{PREFIX}/auth/profile", json={"preferences": {"color": "red"}})
        self.assertEqual(resp.status_code, 400)

    def test_change_password_revokes_old_token_keeps_session(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/auth/change-password",
            json={
                "currentPassword": STRONG_PASSWORD,
                "newPassword": "N3w!passw",
                "confirmNewPassword": "N3w!passw",
            },
        )
        self.assertEqual(resp.status_code, 200)
        new_token = resp.json()["token"]
        self.assertNotEqual(new_token, self.token)
        self.assertEqual(self.client.get(f"{PREFIX}/auth/me").status_code, 200)

        with TestClient(app) as other:
            old = other.get(
                f"{PREFIX}/auth/verify",
                headers={"Authorization": f"Bearer {self.token}"},
            )
        self.assertEqual(old.status_code, 403)

    def test_change_password_wrong_current(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/auth/change-password",
            json={
                "currentPassword": "nope-nope",
                "newPassword": "N3w!passw",
                "confirmNewPassword": "N3w!passw",
            },
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["field"], "currentPassword")


class TestAdminUsers(ApiTestCase):
    def test_user_forbidden_admin_allowed(self) -> None:
        self.register()
        self.assertEqual(self.client.get(f"{PREFIX}/auth/users").status_code, 403)

        db = self.factory()
        try:
            set_role(db, "a@example.com", "admin")
        finally:
            db.close()
        self.login()
        resp = self.client.get(f"{PREFIX}/auth/users")
        self.assertEqual(resp.status_code, 200)
        users = resp.json()["users"]
        self.assertEqual([u["username"] for u in users], ["alice1"])
        self.assertNotIn("password_hash", users[0])


class TestContactApi(ApiTestCase):
    def test_submit_reports_channel_statuses(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/contact/submit",
            json={
                "name": "Jane",
                "email": "jane@example.com",
                "subject": "Hi",
                "message": "Hello there",
            },
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(
            body["notifications"], {"email": "sent", "relay": "sent", "autoReply": "sent"}
        )

    def test_submit_malformed_email_is_400(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/contact/submit",
            json={"name": "Jane", "email": "jane", "subject": "Hi", "message": "Hello"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["field"], "email")
        self.assertTrue(all(not channel.sent for channel in self.channels))

    def test_submit_oversized_message_is_400(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/contact/submit",
            json={
                "name": "Jane",
                "email": "jane@example.com",
                "subject": "Hi",
                "message": "x" * 5001,
            },
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["field"], "message")
        self.assertTrue(all(not channel.sent for channel in self.channels))

    def test_contact_liveness_route(self) -> None:
        resp = self.client.get(f"{PREFIX}/contact/test")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Contact API is working")


class TestHealth(ApiTestCase):
    def test_health_reports_database(self) -> None:
        body = self.client.get(f"{PREFIX}/health/").json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")


if __name__ == "__main__":
    unittest.main()
