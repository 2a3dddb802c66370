"""Shared fakes for the test suite."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from app.core.config import Settings
from app.services.email import EmailSender

TEST_SECRET = "test-secret-key-with-at-least-32-chars"


def make_settings(**overrides) -> Settings:
    values = {
        "SECRET_KEY": TEST_SECRET,
        "FIXED_OTP": "",
        "EMAIL_PROVIDER": "console",
        "ENVIRONMENT": "dev",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@dataclass
class SentEmail:
    to: str
    subject: str
    template_key: str
    template_data: dict


class RecordingEmailSender(EmailSender):
    """Keeps every message instead of delivering it."""

    def __init__(self, result: bool = True, fail_for: set[str] = None):
        self.sent: list[SentEmail] = []
        self.result = result
        self.fail_for = fail_for or set()

    async def send(self, to: str, subject: str, template_key: str, template_data: dict) -> bool:
        if to in self.fail_for:
            raise RuntimeError(f"provider rejected {to}")
        self.sent.append(SentEmail(to, subject, template_key, dict(template_data)))
        return self.result

    def last_otp(self, to: str) -> str:
        for email in reversed(self.sent):
            if email.to == to and "otp" in email.template_data:
                return email.template_data["otp"]
        raise AssertionError(f"no OTP email sent to {to}")


class FakeClock:
    def __init__(self, now: datetime = None):
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)
