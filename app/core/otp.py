"""One-time password generation and the OTP record stored on a user."""
import hmac
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Union

from app.core.constants import OtpType
from app.core.security import Credential

OTP_MIN = 100000
OTP_MAX = 999999


@dataclass(frozen=True)
class NoChange:
    """Verification only flips state; no credential is waiting."""


@dataclass(frozen=True)
class PendingCredential:
    """A hashed password that becomes active once the OTP is confirmed."""
    credential: Credential


PendingChange = Union[NoChange, PendingCredential]


@dataclass(frozen=True)
class GeneratedOtp:
    code: str
    updated_at: datetime


@dataclass(frozen=True)
class OtpRecord:
    """OTP attached to a user.

    ``updated_at`` drives the resend reuse window, ``created_at`` drives the
    absolute expiry. Every persisted record gets a fresh ``created_at``.
    """
    code: str
    type: OtpType
    created_at: datetime
    updated_at: datetime
    pending: PendingChange = field(default_factory=NoChange)

    def is_expired(self, expiry_minutes: int, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now > self.created_at + timedelta(minutes=expiry_minutes)

    def matches(self, code: str | int) -> bool:
        return hmac.compare_digest(self.code.encode("utf-8"), str(code).strip().encode("utf-8"))

    def to_dict(self) -> dict:
        """Serialize for the JSON column on the users table."""
        data = {
            "otp": self.code,
            "type": self.type.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if isinstance(self.pending, PendingCredential):
            data["user_password"] = {
                "hash": self.pending.credential.hash,
                "salt": self.pending.credential.salt,
            }
        return data

    @classmethod
    def from_dict(cls, data: dict | None) -> "OtpRecord | None":
        if not data or not data.get("otp"):
            return None

        password = data.get("user_password")
        pending: PendingChange = NoChange()
        if password and password.get("hash") and password.get("salt"):
            pending = PendingCredential(Credential(hash=password["hash"], salt=password["salt"]))

        return cls(
            code=str(data["otp"]),
            type=OtpType(data.get("type", OtpType.REGISTER)),
            created_at=_parse_timestamp(data["created_at"]),
            updated_at=_parse_timestamp(data.get("updated_at") or data["created_at"]),
            pending=pending,
        )


def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_otp(
    existing: OtpRecord | None = None,
    now: datetime | None = None,
    reuse_window_minutes: int = 5,
    fixed_otp: str | None = None,
) -> GeneratedOtp:
    """Return a code to send, reusing ``existing`` while its reuse window is open.

    The window is measured from ``existing.updated_at`` and the returned
    ``updated_at`` is always ``now``, so every resend inside the window
    extends it.
    """
    now = now or datetime.now(timezone.utc)

    if existing is not None and existing.code:
        elapsed = now - existing.updated_at
        if elapsed < timedelta(minutes=reuse_window_minutes):
            return GeneratedOtp(code=existing.code, updated_at=now)

    if fixed_otp:
        return GeneratedOtp(code=fixed_otp, updated_at=now)

    return GeneratedOtp(code=str(secrets.randbelow(OTP_MAX - OTP_MIN + 1) + OTP_MIN), updated_at=now)
