"""Dependencies for FastAPI endpoints."""
from typing import Callable
from fastapi import Request, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address
from limits import parse_many
from app.core.handler import AppException
from app.core.constants import AuthErrorDetails
from app.core.config import settings
from app.core.security import TokenError, TokenIssuer
from app.core.database import get_db
from app.interfaces.book import IBookRepository
from app.interfaces.user import IUserRepository
from app.repositories.book_repository import BookRepository
from app.repositories.user_repository import UserRepository
from app.schemas.user import Principal
from app.services.book_service import BookService
from app.services.email import EmailSender, get_email_sender
from app.services.notification_service import NotificationService, get_notification_service
from app.services.user_service import UserService

BEARER_PREFIX = "Bearer "

# Can be changed to Redis later: storage_uri="redis://localhost:6379"
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def create_rate_limit_dependency(
    limit: int,
    window_seconds: int,
    error_message: str
) -> Callable:
    """
    Build a dependency that counts requests per client IP with the app's slowapi limiter.

    Args:
        limit: Maximum number of requests allowed
        window_seconds: Time window in seconds
        error_message: Error message to return when rate limit exceeded

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    if window_seconds == 60:
        rate_limit_str = f"{limit}/minute"
    elif window_seconds == 3600:
        rate_limit_str = f"{limit}/hour"
    else:
        rate_limit_str = f"{limit}/{window_seconds} seconds"
    rate_limit = parse_many(rate_limit_str)[0]

    async def rate_limit_check(request: Request) -> None:
        app_limiter = request.app.state.limiter
        key = get_remote_address(request)

        if not app_limiter._limiter.hit(rate_limit, key):
            raise AppException(
                message=error_message,
                status_code=429
            )

    return rate_limit_check


check_login_rate_limit = create_rate_limit_dependency(
    settings.LOGIN_RATE_LIMIT_PER_MINUTE, 60, AuthErrorDetails.RATE_LIMIT_EXCEEDED_LOGIN
)
check_register_rate_limit = create_rate_limit_dependency(
    settings.REGISTER_RATE_LIMIT_PER_HOUR, 3600, AuthErrorDetails.RATE_LIMIT_EXCEEDED_REGISTER
)
check_otp_verify_rate_limit = create_rate_limit_dependency(
    settings.OTP_VERIFY_RATE_LIMIT_PER_MINUTE, 60, AuthErrorDetails.RATE_LIMIT_EXCEEDED_OTP_VERIFY
)


# =============================================================================
# Service wiring
# =============================================================================

def get_user_repository(db: AsyncSession = Depends(get_db)) -> IUserRepository:
    return UserRepository(db)


def get_book_repository(db: AsyncSession = Depends(get_db)) -> IBookRepository:
    return BookRepository(db)


def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(settings)


def get_user_service(
    user_repository: IUserRepository = Depends(get_user_repository),
    email_sender: EmailSender = Depends(get_email_sender),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> UserService:
    return UserService(
        user_repository=user_repository,
        email_sender=email_sender,
        token_issuer=token_issuer,
        settings=settings,
    )


def get_book_service(
    book_repository: IBookRepository = Depends(get_book_repository),
    user_repository: IUserRepository = Depends(get_user_repository),
    notifier: NotificationService = Depends(get_notification_service),
) -> BookService:
    return BookService(
        book_repository=book_repository,
        user_repository=user_repository,
        notifier=notifier,
        settings=settings,
    )


# =============================================================================
# Authentication
# =============================================================================

def extract_bearer_token(request: Request) -> str:
    """Return the raw token after ``Bearer `` or raise 401.

    The prefix match is exact and the remainder is not trimmed.
    """
    header = request.headers.get("Authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        raise AppException(
            message=AuthErrorDetails.ACCESS_TOKEN_REQUIRED,
            status_code=401
        )
    return header[len(BEARER_PREFIX):]


def verify_token(token_issuer: TokenIssuer, token: str) -> dict:
    try:
        return token_issuer.verify(token)
    except TokenError as e:
        raise AppException(
            message=e.message or AuthErrorDetails.TOKEN_INVALID,
            status_code=401
        )


async def authenticate(
    request: Request,
    user_repository: IUserRepository = Depends(get_user_repository),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> Principal:
    """
    Gate a request on its Bearer access token.

    Returns:
        Principal for the active user the token names

    Raises:
        AppException: 401 for a missing or malformed header, a token that
            fails verification, or a user that no longer exists
    """
    token = extract_bearer_token(request)
    claims = verify_token(token_issuer, token)

    user = None
    uid = claims.get("uid")
    if isinstance(uid, int):
        user = await user_repository.find_by_id(uid)
    if not user:
        raise AppException(
            message=AuthErrorDetails.PRINCIPAL_NOT_FOUND,
            status_code=401
        )

    return Principal(uid=user["id"], email=user["email"])
