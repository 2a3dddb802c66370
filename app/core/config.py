from pydantic import Field, field_validator, model_validator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    APP_NAME: str = Field(default="Library API", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    ENVIRONMENT: Literal["dev", "prod"] = Field(default="dev", description="Application environment")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    CORS_ORIGINS: list[str] = Field(default=["http://localhost:3000"], description="Allowed CORS origins")

    SECRET_KEY: str = Field(default="secret-key", description="Secret key for JWT signing")
    ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_ISSUER: str = Field(default="library-api", description="JWT issuer claim")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=14400, description="Access token expiration in minutes")
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=30, description="Refresh token expiration in days")

    # Database Configuration
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="library_db", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="", description="Database password")
    DATABASE_URL: Optional[str] = Field(default=None, description="Full database URL (overrides individual DB_* settings)")
    DB_POOL_SIZE: int = Field(default=5, description="Database connection pool size")
    DB_ECHO: bool = Field(default=False, description="Enable SQL query logging")

    LOGIN_RATE_LIMIT_PER_MINUTE: int = Field(default=5, description="Maximum login attempts per minute per IP")
    REGISTER_RATE_LIMIT_PER_HOUR: int = Field(default=10, description="Maximum registration attempts per hour per IP")
    OTP_VERIFY_RATE_LIMIT_PER_MINUTE: int = Field(default=5, description="Maximum OTP verification attempts per minute per IP")

    @computed_field
    @property
    def database_url_computed(self) -> str:
        """
        Compute the database URL from individual settings or use DATABASE_URL if provided.

        Returns:
            str: SQLAlchemy async connection URL
        """
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url

        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # OTP Configuration
    OTP_REUSE_WINDOW_MINUTES: int = Field(default=5, description="Minutes during which a resend returns the same OTP")
    OTP_EXPIRY_MINUTES: int = Field(default=10, description="OTP expiration time in minutes, counted from creation")
    FIXED_OTP: str | None = Field(default="", description="Fixed OTP for testing (leave empty for random OTP in production)")

    # Email Configuration
    EMAIL_PROVIDER: Literal["ses", "resend", "console"] = Field(default="console", description="Email provider: 'ses', 'resend' or 'console'")
    EMAIL_FROM_ADDRESS: str = Field(default="noreply@library.local", description="Sender email address")
    EMAIL_FROM_NAME: str = Field(default="Library", description="From name displayed in emails")

    # AWS SES Configuration (used when EMAIL_PROVIDER=ses)
    AWS_SES_REGION: str = Field(default="us-east-1", description="AWS SES region")
    SES_CONFIGURATION_SET: str | None = Field(default=None, description="Optional SES configuration set name")

    # Resend Configuration (used when EMAIL_PROVIDER=resend)
    RESEND_API_KEY: str | None = Field(default=None, description="Resend API key")

    NOTIFICATION_QUEUE_SIZE: int = Field(default=100, description="Maximum pending book notification jobs")

    # Pagination
    DEFAULT_PAGE_SIZE: int = Field(default=10, description="Books per page when no limit is given")
    MAX_PAGE_SIZE: int = Field(default=100, description="Upper bound for the limit query parameter")

    @field_validator("ACCESS_TOKEN_EXPIRE_MINUTES", "REFRESH_TOKEN_EXPIRE_DAYS")
    @classmethod
    def validate_token_expiration(cls, v: int, info) -> int:
        if info.field_name == "ACCESS_TOKEN_EXPIRE_MINUTES" and v < 1:
            raise ValueError("Access token expiration must be at least 1 minute")
        if info.field_name == "REFRESH_TOKEN_EXPIRE_DAYS" and v < 1:
            raise ValueError("Refresh token expiration must be at least 1 day")
        return v

    @field_validator("FIXED_OTP")
    @classmethod
    def validate_fixed_otp(cls, v: str | None) -> str | None:
        if v and (len(v) != 6 or not v.isdigit()):
            raise ValueError("FIXED_OTP must be a 6 digit number")
        return v

    @model_validator(mode="after")
    def set_environment_defaults(self):
        """Set environment-specific defaults and validations."""
        if self.ENVIRONMENT == "prod":
            if self.SECRET_KEY == "secret-key" or len(self.SECRET_KEY) < 32:
                raise ValueError(
                    "SECRET_KEY must be at least 32 characters long in production. "
                    "Set a strong secret key in your .env file."
                )
            if self.FIXED_OTP:
                raise ValueError("FIXED_OTP must not be set in production")
            if self.EMAIL_PROVIDER == "console":
                logger.warning("EMAIL_PROVIDER=console in production, emails will only be logged")

        return self

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "dev"


settings = Settings()
