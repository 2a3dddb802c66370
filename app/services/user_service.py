"""Account lifecycle: registration, OTP verification, login and password reset."""
import logging
from datetime import datetime, timezone
from typing import Callable

from app.core.config import Settings, settings as default_settings
from app.core.constants import AuthErrorDetails, EmailSubject, EmailTemplate, OtpType
from app.core.handler import AppException
from app.core.otp import NoChange, OtpRecord, PendingCredential, generate_otp
from app.core.security import PasswordHasher, TokenIssuer
from app.interfaces.user import IUserRepository, UNSET
from app.schemas.user import LoginResponse, TokenPair, UserData
from app.services.email import EmailSender

OTP_SUBJECTS = {
    OtpType.REGISTER: EmailSubject.ACCOUNT_VERIFICATION,
    OtpType.FORGOT_PASSWORD: EmailSubject.PASSWORD_RESET,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserService:
    """Moves a user through Unregistered -> PendingVerification -> Verified,
    and Verified -> PasswordResetPending -> Verified.

    Every state change is persisted before the OTP email goes out. A failed
    email is logged and does not undo the write.
    """

    def __init__(
        self,
        user_repository: IUserRepository,
        email_sender: EmailSender,
        token_issuer: TokenIssuer = None,
        password_hasher: PasswordHasher = None,
        settings: Settings = None,
        logger: logging.Logger = None,
        clock: Callable[[], datetime] = None,
    ):
        self.user_repository = user_repository
        self.email_sender = email_sender
        self.settings = settings or default_settings
        self.token_issuer = token_issuer or TokenIssuer(self.settings)
        self.password_hasher = password_hasher or PasswordHasher()
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock or _utcnow

    def _new_otp(
        self, user: dict | None, otp_type: OtpType, pending=None
    ) -> OtpRecord:
        """Build the OTP record to persist, reusing the current code inside its window."""
        now = self.clock()
        existing = OtpRecord.from_dict(user.get("otp_data")) if user else None
        generated = generate_otp(
            existing,
            now=now,
            reuse_window_minutes=self.settings.OTP_REUSE_WINDOW_MINUTES,
            fixed_otp=self.settings.FIXED_OTP,
        )

        if pending is None:
            if existing is not None and existing.type == otp_type:
                pending = existing.pending
            else:
                pending = NoChange()

        return OtpRecord(
            code=generated.code,
            type=otp_type,
            created_at=now,
            updated_at=generated.updated_at,
            pending=pending,
        )

    async def _send_otp(self, email: str, record: OtpRecord) -> None:
        sent = await self.email_sender.send(
            email,
            OTP_SUBJECTS[record.type],
            EmailTemplate.OTP,
            {"otp": record.code, "type": record.type.value},
        )
        if not sent:
            self.logger.warning(f"OTP email to {email} was not delivered")

    async def register(self, email: str, password: str) -> UserData:
        """Create or refresh an unverified account and email it an OTP.

        Raises:
            AppException: 400 if a verified account already uses the email
        """
        email = email.lower()
        user = await self.user_repository.find_by_email(email, include_inactive=True)
        if user and (user["is_verified"] or not user["is_active"]):
            raise AppException(
                message=AuthErrorDetails.USER_ALREADY_EXISTS,
                status_code=400,
            )

        credential = self.password_hasher.hash(password)
        record = self._new_otp(user, OtpType.REGISTER, PendingCredential(credential))

        if user:
            user = await self.user_repository.update(user["id"], {"otp_data": record.to_dict()})
        else:
            user = await self.user_repository.create({
                "email": email,
                "password_hash": credential.hash,
                "password_salt": credential.salt,
                "otp_data": record.to_dict(),
                "is_verified": False,
            })

        self.logger.info(f"Registration OTP issued for user {user['id']}")
        await self._send_otp(email, record)

        return UserData(
            uid=user["id"],
            email=user["email"],
            is_verified=False,
            message="OTP sent to your email",
        )

    async def verify_otp(self, email: str, code: str, otp_type: OtpType = OtpType.REGISTER) -> UserData:
        """Check ``code`` and apply whatever change the OTP was guarding.

        Raises:
            AppException: 404 for an unknown user; 400 when there is no OTP of
                this type, it has expired, or the code is wrong
        """
        email = email.lower()
        user = await self.user_repository.find_by_email(email)
        if not user:
            raise AppException(message=AuthErrorDetails.USER_NOT_FOUND, status_code=404)

        record = OtpRecord.from_dict(user.get("otp_data"))
        if record is None or record.type != otp_type:
            raise AppException(message=AuthErrorDetails.OTP_REQUEST_NOT_FOUND, status_code=400)

        if record.is_expired(self.settings.OTP_EXPIRY_MINUTES, now=self.clock()):
            raise AppException(message=AuthErrorDetails.OTP_EXPIRED, status_code=400)

        if not record.matches(code):
            raise AppException(message=AuthErrorDetails.OTP_INVALID, status_code=400)

        patch = {"otp_data": UNSET}
        if isinstance(record.pending, PendingCredential):
            patch["password_hash"] = record.pending.credential.hash
            patch["password_salt"] = record.pending.credential.salt

        if otp_type == OtpType.REGISTER:
            patch["is_verified"] = True
            user = await self.user_repository.update(user["id"], patch)
            message = "Email verified successfully"
        elif isinstance(record.pending, PendingCredential):
            user = await self.user_repository.update_credential(user["id"], patch)
            message = "Password updated successfully"
        else:
            user = await self.user_repository.update(user["id"], patch)
            message = "OTP verified successfully"

        self.logger.info(f"OTP ({otp_type.value}) verified for user {user['id']}")
        return UserData(
            uid=user["id"],
            email=user["email"],
            is_verified=user["is_verified"],
            message=message,
        )

    async def resend_otp(self, email: str, otp_type: OtpType = OtpType.REGISTER) -> UserData:
        """Email the current code again, or a new one once the reuse window has passed."""
        email = email.lower()
        user = await self.user_repository.find_by_email(email)
        if not user:
            raise AppException(message=AuthErrorDetails.USER_NOT_FOUND, status_code=404)

        record = self._new_otp(user, otp_type)
        await self.user_repository.update(user["id"], {"otp_data": record.to_dict()})
        await self._send_otp(email, record)

        return UserData(
            uid=user["id"],
            email=user["email"],
            is_verified=user["is_verified"],
            message="OTP sent to your email",
        )

    async def login(self, email: str, password: str) -> LoginResponse:
        email = email.lower()
        user = await self.user_repository.find_by_email(email, verified_only=True)
        if not user:
            raise AppException(message=AuthErrorDetails.USER_NOT_REGISTERED, status_code=404)

        if not self.password_hasher.verify(user["password_hash"], user["password_salt"], password):
            raise AppException(message=AuthErrorDetails.INVALID_PASSWORD, status_code=400)

        tokens = self.token_issuer.issue_pair({"uid": user["id"], "email": user["email"]})
        self.logger.info(f"User {user['id']} logged in")
        return LoginResponse(uid=user["id"], email=user["email"], auth_token=tokens)

    async def refresh_session(self, claims: dict, refresh_token: str) -> TokenPair:
        """Issue a new access token for verified ``claims``; the refresh token is reused."""
        uid = claims.get("uid")
        user = await self.user_repository.find_by_id(uid) if isinstance(uid, int) else None
        if not user:
            raise AppException(message=AuthErrorDetails.REFRESH_TOKEN_INVALID, status_code=401)

        return self.token_issuer.refresh({"uid": user["id"], "email": user["email"]}, refresh_token)

    async def forgot_password(self, email: str, new_password: str) -> UserData:
        """Park a new credential behind a forgot-password OTP.

        The current password keeps working until the OTP is verified.
        """
        email = email.lower()
        user = await self.user_repository.find_by_email(email, verified_only=True)
        if not user:
            raise AppException(message=AuthErrorDetails.USER_NOT_FOUND, status_code=404)

        credential = self.password_hasher.hash(new_password)
        record = self._new_otp(user, OtpType.FORGOT_PASSWORD, PendingCredential(credential))
        await self.user_repository.update(user["id"], {"otp_data": record.to_dict()})
        await self._send_otp(email, record)

        return UserData(
            uid=user["id"],
            email=user["email"],
            is_verified=True,
            message="OTP sent to your email",
        )

    async def get_user(self, user_id: int) -> UserData:
        user = await self.user_repository.find_by_id(user_id)
        if not user:
            raise AppException(message=AuthErrorDetails.USER_NOT_FOUND, status_code=404)
        return UserData(uid=user["id"], email=user["email"], is_verified=user["is_verified"])

    async def delete_user(self, user_id: int) -> None:
        deleted = await self.user_repository.soft_delete(user_id)
        if not deleted:
            raise AppException(message=AuthErrorDetails.USER_NOT_FOUND, status_code=404)
        self.logger.info(f"User {user_id} deactivated")
