"""Password hashing and JWT issuance."""
import base64
import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import Settings, settings as default_settings
from app.schemas.user import TokenPair

SALT_BYTES = 16


@dataclass(frozen=True)
class Credential:
    """Salted hash of a password. Replaced wholesale, never mutated."""
    hash: str
    salt: str


class TokenError(Exception):
    """Raised when a token fails signature, expiry or issuer checks."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PasswordHasher:
    """HMAC-SHA512 password hashing keyed by a per-password random salt."""

    def hash(self, password: str, salt: bytes | str | None = None) -> Credential:
        """Hash ``password``.

        A missing salt is drawn from ``os.urandom``. Byte salts are base64
        encoded; string salts are used as given, so re-hashing with a stored
        salt reproduces the stored hash.
        """
        if salt is None:
            salt = os.urandom(SALT_BYTES)
        if isinstance(salt, bytes):
            salt = base64.b64encode(salt).decode("ascii")

        digest = hmac.new(salt.encode("utf-8"), password.encode("utf-8"), hashlib.sha512).hexdigest()
        return Credential(hash=digest, salt=salt)

    def verify(self, stored_hash: str | None, salt: str | None, password: str) -> bool:
        """Check ``password`` against a stored hash and salt."""
        if not stored_hash or not salt:
            return False
        candidate = self.hash(password, salt)
        return hmac.compare_digest(candidate.hash, stored_hash)


class TokenIssuer:
    """Signs and verifies the access/refresh JWT pair.

    Both tokens carry the same claims and are signed with the same secret;
    they differ only by lifetime. Nothing is stored server side.
    """

    def __init__(self, settings: Settings = None, logger: logging.Logger = None):
        self.settings = settings or default_settings
        self.logger = logger or logging.getLogger(__name__)

    def _sign(self, claims: dict[str, Any], ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = dict(claims)
        payload.update({
            "iat": now,
            "exp": now + ttl,
            "iss": self.settings.JWT_ISSUER,
        })
        return jwt.encode(payload, self.settings.SECRET_KEY, algorithm=self.settings.ALGORITHM)

    def _access_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    def _refresh_ttl(self) -> timedelta:
        return timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS)

    @staticmethod
    def _expiration_of(token: str) -> int:
        return int(jwt.get_unverified_claims(token)["exp"])

    def issue_pair(self, claims: dict[str, Any]) -> TokenPair:
        """Sign a fresh access token and refresh token for ``claims``."""
        access_token = self._sign(claims, self._access_ttl())
        refresh_token = self._sign(claims, self._refresh_ttl())
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expiration_time=self._expiration_of(access_token),
        )

    def refresh(self, claims: dict[str, Any], existing_refresh_token: str) -> TokenPair:
        """Sign a new access token; the refresh token is returned unchanged."""
        access_token = self._sign(claims, self._access_ttl())
        return TokenPair(
            access_token=access_token,
            refresh_token=existing_refresh_token,
            expiration_time=self._expiration_of(access_token),
        )

    def verify(self, token: str) -> dict[str, Any]:
        """Decode ``token`` and return its claims, raising TokenError on any failure."""
        try:
            return jwt.decode(
                token,
                self.settings.SECRET_KEY,
                algorithms=[self.settings.ALGORITHM],
                issuer=self.settings.JWT_ISSUER,
            )
        except JWTError as exc:
            self.logger.debug(f"Token verification failed: {exc}")
            raise TokenError(str(exc)) from exc
