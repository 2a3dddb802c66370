import unittest
from datetime import datetime, timedelta, timezone

from app.core.constants import OtpType
from app.core.otp import NoChange, OtpRecord, PendingCredential, generate_otp
from app.core.security import Credential

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def record(code="123456", created=NOW, updated=NOW, pending=None):
    return OtpRecord(
        code=code,
        type=OtpType.REGISTER,
        created_at=created,
        updated_at=updated,
        pending=pending or NoChange(),
    )


class TestGenerateOtp(unittest.TestCase):
    def test_fresh_code_is_six_digits(self):
        for _ in range(50):
            generated = generate_otp(now=NOW)
            self.assertEqual(len(generated.code), 6)
            self.assertTrue(100000 <= int(generated.code) <= 999999)
            self.assertEqual(generated.updated_at, NOW)

    def test_code_reused_inside_window(self):
        existing = record(code="654321")

        generated = generate_otp(existing, now=NOW + timedelta(minutes=4, seconds=59), fixed_otp="111111")

        self.assertEqual(generated.code, "654321")
        self.assertEqual(generated.updated_at, NOW + timedelta(minutes=4, seconds=59))

    def test_new_code_once_window_has_passed(self):
        existing = record(code="654321")

        generated = generate_otp(existing, now=NOW + timedelta(minutes=5), fixed_otp="111111")

        self.assertEqual(generated.code, "111111")

    def test_window_is_measured_from_last_update(self):
        existing = record(code="654321", created=NOW, updated=NOW + timedelta(minutes=4))

        generated = generate_otp(existing, now=NOW + timedelta(minutes=8), fixed_otp="111111")

        self.assertEqual(generated.code, "654321")


class TestOtpRecord(unittest.TestCase):
    def test_expiry_counts_from_creation(self):
        otp = record(updated=NOW + timedelta(minutes=9))

        self.assertFalse(otp.is_expired(10, now=NOW + timedelta(minutes=10)))
        self.assertTrue(otp.is_expired(10, now=NOW + timedelta(minutes=10, seconds=1)))

    def test_matches(self):
        otp = record(code="123456")

        self.assertTrue(otp.matches("123456"))
        self.assertTrue(otp.matches(123456))
        self.assertFalse(otp.matches("123457"))

    def test_serialization_keeps_pending_credential(self):
        otp = record(pending=PendingCredential(Credential(hash="h" * 128, salt="salt")))

        restored = OtpRecord.from_dict(otp.to_dict())

        self.assertEqual(restored, otp)
        self.assertEqual(otp.to_dict()["user_password"], {"hash": "h" * 128, "salt": "salt"})

    def test_from_dict_without_code(self):
        self.assertIsNone(OtpRecord.from_dict(None))
        self.assertIsNone(OtpRecord.from_dict({}))
        self.assertIsNone(OtpRecord.from_dict({"otp": None, "created_at": NOW.isoformat()}))


if __name__ == "__main__":
    unittest.main()
