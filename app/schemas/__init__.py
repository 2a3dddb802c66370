"""Pydantic schemas for request/response validation."""
from app.schemas.user import (
    UserLoginRequest,
    RegisterRequest,
    ForgotPasswordRequest,
    OTPVerifyRequest,
    ResendOTPRequest,
    LoginResponse,
    TokenPair,
    UserData,
    Principal,
)
from app.schemas.book import (
    BookCreateRequest,
    BookUpdateRequest,
    BookFilters,
    BookData,
    BookListData,
    Pagination,
)
from app.schemas.response import ApiResponse

__all__ = [
    # User schemas
    "UserLoginRequest",
    "RegisterRequest",
    "ForgotPasswordRequest",
    "OTPVerifyRequest",
    "ResendOTPRequest",
    "LoginResponse",
    "TokenPair",
    "UserData",
    "Principal",
    # Book schemas
    "BookCreateRequest",
    "BookUpdateRequest",
    "BookFilters",
    "BookData",
    "BookListData",
    "Pagination",
    # Response wrapper
    "ApiResponse",
]
