import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from fastapi.testclient import TestClient
from jose import jwt

from app.core.config import settings
from app.core.constants import AuthErrorDetails, GeneralErrorDetails
from app.core.dependencies import (
    authenticate,
    check_login_rate_limit,
    check_otp_verify_rate_limit,
    check_register_rate_limit,
    get_book_repository,
    get_book_service,
    get_user_repository,
)
from app.core.security import TokenError, TokenIssuer
from app.main import app
from app.repositories.memory import InMemoryBookRepository, InMemoryUserRepository
from app.schemas.user import Principal
from app.services.email import get_email_sender
from app.services.notification_service import NotificationService, get_notification_service
from helpers import RecordingEmailSender, make_settings

EMAIL = "reader@example.com"
PASSWORD = "secret1"

BOOK = {
    "title": "Dune",
    "author": "Frank Herbert",
    "pdf_url": "https://example.com/dune.pdf",
    "published_date": "1965-08-01",
    "category": "Fiction",
}


async def no_rate_limit() -> None:
    return None


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.users = InMemoryUserRepository()
        self.books = InMemoryBookRepository()
        self.email = RecordingEmailSender()
        self.notifier = NotificationService(self.email)

        app.dependency_overrides[get_user_repository] = lambda: self.users
        app.dependency_overrides[get_book_repository] = lambda: self.books
        app.dependency_overrides[get_email_sender] = lambda: self.email
        app.dependency_overrides[get_notification_service] = lambda: self.notifier
        for limit in (check_login_rate_limit, check_register_rate_limit, check_otp_verify_rate_limit):
            app.dependency_overrides[limit] = no_rate_limit

        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def register_and_login(self, email=EMAIL, password=PASSWORD) -> dict:
        response = self.client.post(
            "/api/v1/user/register",
            json={"email": email, "password": password, "confirmPassword": password},
        )
        self.assertEqual(response.status_code, 201, response.text)

        response = self.client.post(
            "/api/v1/user/verify-otp",
            json={"email": email, "otp": self.email.last_otp(email), "type": "register"},
        )
        self.assertEqual(response.status_code, 200, response.text)

        response = self.client.post("/api/v1/user/login", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["data"]

    @staticmethod
    def bearer(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}


class TestUserApi(ApiTestCase):
    def test_register_verify_login(self):
        data = self.register_and_login()

        self.assertEqual(data["email"], EMAIL)
        self.assertEqual(set(data["authToken"]), {"accessToken", "refreshToken", "expirationTime"})

        response = self.client.get("/api/v1/user/me", headers=self.bearer(data["authToken"]["accessToken"]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"], {"uid": data["uid"], "email": EMAIL, "isVerified": True})

    def test_password_mismatch_is_a_validation_error(self):
        response = self.client.post(
            "/api/v1/user/register",
            json={"email": EMAIL, "password": PASSWORD, "confirmPassword": "different"},
        )

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["message"], GeneralErrorDetails.VALIDATION_ERROR)
        messages = [e["message"] for e in body["data"]["validation_errors"]]
        self.assertIn(AuthErrorDetails.PASSWORD_MISMATCH, messages)

    def test_short_password_is_rejected(self):
        response = self.client.post(
            "/api/v1/user/register",
            json={"email": EMAIL, "password": "abc", "confirmPassword": "abc"},
        )

        self.assertEqual(response.status_code, 400)

    def test_business_errors_use_the_envelope(self):
        response = self.client.post("/api/v1/user/login", json={"email": EMAIL, "password": PASSWORD})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json(),
            {"success": False, "code": 404, "message": AuthErrorDetails.USER_NOT_REGISTERED, "data": {}},
        )

    def test_forgot_password_flow(self):
        self.register_and_login()

        response = self.client.post(
            "/api/v1/user/forgot-password",
            json={"email": EMAIL, "password": "newpass1", "confirmPassword": "newpass1"},
        )
        self.assertEqual(response.status_code, 200, response.text)

        response = self.client.post(
            "/api/v1/user/verify-otp",
            json={"email": EMAIL, "otp": self.email.last_otp(EMAIL), "type": "forgot-password"},
        )
        self.assertEqual(response.status_code, 200, response.text)

        response = self.client.post("/api/v1/user/login", json={"email": EMAIL, "password": "newpass1"})
        self.assertEqual(response.status_code, 200)

    def test_resend_otp(self):
        self.client.post(
            "/api/v1/user/register",
            json={"email": EMAIL, "password": PASSWORD, "confirmPassword": PASSWORD},
        )

        response = self.client.post("/api/v1/user/resend-otp", json={"email": EMAIL})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(self.email.sent), 2)
        self.assertEqual(self.email.sent[0].template_data["otp"], self.email.sent[1].template_data["otp"])

    def test_refresh_token(self):
        tokens = self.register_and_login()["authToken"]

        response = self.client.get("/api/v1/user/refresh-token", headers=self.bearer(tokens["refreshToken"]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["refreshToken"], tokens["refreshToken"])

    def test_refresh_token_for_deleted_user(self):
        tokens = self.register_and_login()["authToken"]
        self.client.delete("/api/v1/user/me", headers=self.bearer(tokens["accessToken"]))

        response = self.client.get("/api/v1/user/refresh-token", headers=self.bearer(tokens["refreshToken"]))

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], AuthErrorDetails.REFRESH_TOKEN_INVALID)


class TestAuthGate(ApiTestCase):
    def assertUnauthorized(self, headers, message=None):
        response = self.client.get("/api/v1/books", headers=headers)
        self.assertEqual(response.status_code, 401)
        if message is not None:
            self.assertEqual(response.json()["message"], message)
        return response.json()["message"]

    def test_missing_or_malformed_header(self):
        for headers in ({}, {"Authorization": "Token abc"}, {"Authorization": "bearer abc"}):
            self.assertUnauthorized(headers, AuthErrorDetails.ACCESS_TOKEN_REQUIRED)

    def test_invalid_token_reports_verifier_message(self):
        message = self.assertUnauthorized(self.bearer("not-a-jwt"))

        self.assertNotEqual(message, AuthErrorDetails.ACCESS_TOKEN_REQUIRED)
        self.assertTrue(message)

    def test_expired_token_reports_verifier_message(self):
        data = self.register_and_login()
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        token = jwt.encode(
            {"uid": data["uid"], "email": EMAIL, "iss": settings.JWT_ISSUER, "exp": past},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        with self.assertRaises(TokenError) as ctx:
            TokenIssuer(settings).verify(token)

        message = self.assertUnauthorized(self.bearer(token), ctx.exception.message)

        self.assertIn("expired", message.lower())

    def test_token_is_not_trimmed(self):
        token = self.register_and_login()["authToken"]["accessToken"]

        self.assertUnauthorized({"Authorization": f"Bearer  {token}"})

    def test_deleted_user_is_rejected(self):
        token = self.register_and_login()["authToken"]["accessToken"]

        response = self.client.delete("/api/v1/user/me", headers=self.bearer(token))
        self.assertEqual(response.status_code, 200)

        self.assertUnauthorized(self.bearer(token), AuthErrorDetails.PRINCIPAL_NOT_FOUND)


class FailingBookService:
    async def get_all_books(self, filters):
        raise RuntimeError("catalogue offline")


class TestUnhandledErrors(ApiTestCase):
    def setUp(self):
        super().setUp()
        app.dependency_overrides[authenticate] = lambda: Principal(uid=1, email=EMAIL)
        app.dependency_overrides[get_book_service] = FailingBookService
        self.client = TestClient(app, raise_server_exceptions=False)

    def get_books(self, environment: str):
        with mock.patch("app.core.handler.settings", make_settings(ENVIRONMENT=environment)):
            with self.assertLogs("app.core.handler", level="ERROR"):
                response = self.client.get("/api/v1/books")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["message"], GeneralErrorDetails.INTERNAL_SERVER_ERROR)
        return response.json()

    def test_dev_includes_error_detail(self):
        body = self.get_books("dev")

        self.assertEqual(body["data"], {"error": "catalogue offline"})

    def test_prod_withholds_error_detail(self):
        body = self.get_books("prod")

        self.assertIsNone(body["data"])


class TestBooksApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        token = self.register_and_login()["authToken"]["accessToken"]
        self.headers = self.bearer(token)

    def create(self, **overrides) -> dict:
        response = self.client.post("/api/v1/books", json={**BOOK, **overrides}, headers=self.headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def test_create_queues_announcement(self):
        book = self.create()

        self.assertEqual(book["title"], "Dune")
        self.assertEqual(book["published_date"], "1965-08-01")
        self.assertEqual(self.notifier.pending, 1)

    def test_invalid_book_payload(self):
        response = self.client.post(
            "/api/v1/books",
            json={**BOOK, "category": "Poetry", "pdf_url": "not a url"},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 400)
        fields = {e["field"] for e in response.json()["data"]["validation_errors"]}
        self.assertEqual(fields, {"category", "pdf_url"})

    def test_list_with_query_parameters(self):
        self.create(title="Emma", author="Jane Austen")
        self.create(title="Persuasion", author="Jane Austen")
        self.create()

        response = self.client.get(
            "/api/v1/books",
            params={"search": "austen", "sortBy": "title", "sortOrder": "asc", "limit": 1, "page": 2},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual([b["title"] for b in data["books"]], ["Persuasion"])
        self.assertEqual(
            data["pagination"],
            {
                "current_page": 2,
                "total_pages": 2,
                "total_books": 2,
                "limit": 1,
                "has_next": False,
                "has_prev": True,
            },
        )

    def test_unknown_sort_field(self):
        response = self.client.get("/api/v1/books", params={"sortBy": "secret"}, headers=self.headers)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], GeneralErrorDetails.VALIDATION_ERROR)

    def test_update_and_delete(self):
        book = self.create()

        response = self.client.put(
            f"/api/v1/books/{book['id']}", json={"description": "Spice"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["description"], "Spice")

        response = self.client.delete(f"/api/v1/books/{book['id']}", headers=self.headers)
        self.assertEqual(response.json()["message"], "Book deleted successfully")

        response = self.client.get(f"/api/v1/books/{book['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 404)


class TestHealthApi(ApiTestCase):
    def test_liveness(self):
        response = self.client.get("/api/v1/health/live")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "alive")


if __name__ == "__main__":
    unittest.main()
