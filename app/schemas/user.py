from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from pydantic.alias_generators import to_camel
import re
from app.core.constants import AuthErrorDetails, OtpType

EMAIL_PATTERN = r'^[^\s@]+@[^\s@]+\.[^\s@]+$'


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if not re.match(EMAIL_PATTERN, v):
        raise ValueError("Invalid email format")
    return v


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while keeping snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    expiration_time: int


class UserLoginRequest(CamelModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class LoginResponse(CamelModel):
    uid: int
    email: str
    auth_token: TokenPair


class RegisterRequest(CamelModel):
    """Request schema for registration; the OTP is emailed on success."""
    email: str
    password: str = Field(min_length=6)
    confirm_password: str = Field(min_length=6)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)

    @model_validator(mode='after')
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError(AuthErrorDetails.PASSWORD_MISMATCH)
        return self


class ForgotPasswordRequest(RegisterRequest):
    """Request schema for a password reset; the new password waits for OTP confirmation."""


class UserData(CamelModel):
    uid: int
    email: str
    is_verified: bool = False
    message: str | None = None


class OTPVerifyRequest(CamelModel):
    email: str
    otp: str
    type: OtpType = OtpType.REGISTER

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator('otp', mode='before')
    @classmethod
    def validate_otp(cls, v) -> str:
        v = str(v).strip()
        if len(v) != 6:
            raise ValueError("OTP must be 6 digits")
        if not v.isdigit():
            raise ValueError("OTP must contain only digits")
        return v


class ResendOTPRequest(CamelModel):
    email: str
    type: OtpType = OtpType.REGISTER

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class Principal(BaseModel):
    """Authenticated caller, loaded from the user store."""
    uid: int
    email: str
