import base64
import unittest
from datetime import datetime, timedelta, timezone

from jose import jwt

from app.core.security import PasswordHasher, TokenError, TokenIssuer
from helpers import TEST_SECRET, make_settings


class TestPasswordHasher(unittest.TestCase):
    def setUp(self):
        self.hasher = PasswordHasher()

    def test_random_salt_is_16_bytes_base64(self):
        credential = self.hasher.hash("hunter22")

        self.assertEqual(len(base64.b64decode(credential.salt)), 16)
        self.assertEqual(len(credential.hash), 128)
        int(credential.hash, 16)

    def test_same_salt_reproduces_hash(self):
        first = self.hasher.hash("hunter22")
        second = self.hasher.hash("hunter22", first.salt)

        self.assertEqual(first, second)

    def test_byte_salt_is_base64_encoded(self):
        credential = self.hasher.hash("pw", b"\x00" * 16)

        self.assertEqual(credential.salt, base64.b64encode(b"\x00" * 16).decode())

    def test_verify(self):
        credential = self.hasher.hash("correct horse")

        self.assertTrue(self.hasher.verify(credential.hash, credential.salt, "correct horse"))
        self.assertFalse(self.hasher.verify(credential.hash, credential.salt, "battery staple"))

    def test_verify_fails_without_hash_or_salt(self):
        credential = self.hasher.hash("pw")

        self.assertFalse(self.hasher.verify(None, credential.salt, "pw"))
        self.assertFalse(self.hasher.verify(credential.hash, "", "pw"))

    def test_verify_by_keyword(self):
        credential = self.hasher.hash("pw")

        self.assertTrue(self.hasher.verify(stored_hash=credential.hash, salt=credential.salt, password="pw"))


class TestTokenIssuer(unittest.TestCase):
    def setUp(self):
        self.settings = make_settings(ACCESS_TOKEN_EXPIRE_MINUTES=15, REFRESH_TOKEN_EXPIRE_DAYS=30)
        self.issuer = TokenIssuer(self.settings)

    def test_issue_pair_carries_claims(self):
        pair = self.issuer.issue_pair({"uid": 7, "email": "a@example.com"})

        access = self.issuer.verify(pair.access_token)
        refresh = self.issuer.verify(pair.refresh_token)

        self.assertEqual(access["uid"], 7)
        self.assertEqual(access["email"], "a@example.com")
        self.assertEqual(access["iss"], self.settings.JWT_ISSUER)
        self.assertEqual(pair.expiration_time, access["exp"])
        self.assertGreater(refresh["exp"], access["exp"])

    def test_refresh_passes_refresh_token_through(self):
        pair = self.issuer.issue_pair({"uid": 1, "email": "a@example.com"})

        refreshed = self.issuer.refresh({"uid": 1, "email": "a@example.com"}, pair.refresh_token)

        self.assertEqual(refreshed.refresh_token, pair.refresh_token)
        self.assertEqual(self.issuer.verify(refreshed.access_token)["uid"], 1)

    def test_expired_token_is_rejected(self):
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        token = jwt.encode(
            {"uid": 1, "email": "a@example.com", "iss": self.settings.JWT_ISSUER, "exp": past},
            TEST_SECRET,
            algorithm="HS256",
        )

        with self.assertRaises(TokenError) as ctx:
            self.issuer.verify(token)
        self.assertIn("expired", ctx.exception.message)

    def test_wrong_issuer_is_rejected(self):
        other = TokenIssuer(make_settings(JWT_ISSUER="someone-else"))
        pair = other.issue_pair({"uid": 1, "email": "a@example.com"})

        with self.assertRaises(TokenError):
            self.issuer.verify(pair.access_token)

    def test_rotated_secret_invalidates_tokens(self):
        pair = self.issuer.issue_pair({"uid": 1, "email": "a@example.com"})
        rotated = TokenIssuer(make_settings(SECRET_KEY="another-secret-key-that-is-32-chars-long"))

        with self.assertRaises(TokenError):
            rotated.verify(pair.access_token)

    def test_garbage_is_rejected(self):
        with self.assertRaises(TokenError) as ctx:
            self.issuer.verify("not-a-jwt")
        self.assertTrue(ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
