from enum import StrEnum


class OtpType(StrEnum):
    """Purpose an OTP was issued for."""
    REGISTER = "register"
    FORGOT_PASSWORD = "forgot-password"


class BookCategory(StrEnum):
    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    SCIENCE = "Science"
    TECHNOLOGY = "Technology"
    BIOGRAPHY = "Biography"


class SortOrder(StrEnum):
    ASC = "ASC"
    DESC = "DESC"


BOOK_SORT_FIELDS = ("title", "author", "category", "published_date", "created_at")


class EmailTemplate(StrEnum):
    OTP = "otp-email"
    NEW_BOOK = "new-book"


class EmailSubject(StrEnum):
    ACCOUNT_VERIFICATION = "Your OTP for Account Verification"
    PASSWORD_RESET = "Your OTP for Password Reset"
    NEW_BOOK = "New Book Added to Library"


class AuthErrorDetails(StrEnum):
    """Authentication and authorization related error messages."""

    USER_ALREADY_EXISTS = "User already exists"
    USER_NOT_FOUND = "User not found"
    USER_NOT_REGISTERED = "User not found, Please register first"
    INVALID_PASSWORD = "Invalid password"
    PASSWORD_MISMATCH = "Password and confirm password do not match"

    ACCESS_TOKEN_REQUIRED = "Access token required"
    TOKEN_INVALID = "Invalid token"
    PRINCIPAL_NOT_FOUND = "User not found or inactive"
    REFRESH_TOKEN_INVALID = "invalid token"

    RATE_LIMIT_EXCEEDED_LOGIN = "Too many login attempts. Please try again later"
    RATE_LIMIT_EXCEEDED_REGISTER = "Too many registration attempts. Please try again later"
    RATE_LIMIT_EXCEEDED_OTP_VERIFY = "Too many OTP verification attempts. Please try again later"

    # OTP Verification Errors
    OTP_REQUEST_NOT_FOUND = "OTP request not found"
    OTP_EXPIRED = "OTP has expired"
    OTP_INVALID = "Invalid OTP"


class BookErrorDetails(StrEnum):
    BOOK_NOT_FOUND = "Book not found"
    ISBN_ALREADY_EXISTS = "Book with this isbn already exists"


class GeneralErrorDetails(StrEnum):
    """General application error messages."""

    INTERNAL_SERVER_ERROR = "Internal server error"
    VALIDATION_ERROR = "Validation error"
