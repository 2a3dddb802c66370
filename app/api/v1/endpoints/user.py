from fastapi import APIRouter, Request, status, Depends
from app.schemas.user import (
    UserLoginRequest,
    RegisterRequest,
    ForgotPasswordRequest,
    OTPVerifyRequest,
    ResendOTPRequest,
    Principal,
)
from app.schemas.response import ApiResponse
from app.services.user_service import UserService
from app.core.dependencies import (
    authenticate,
    check_login_rate_limit,
    check_register_rate_limit,
    check_otp_verify_rate_limit,
    extract_bearer_token,
    get_token_issuer,
    get_user_service,
    verify_token,
)
from app.core.security import TokenIssuer

router = APIRouter()


@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    _: None = Depends(check_register_rate_limit),
    user_service: UserService = Depends(get_user_service)
):
    """Create an unverified account and email a verification OTP."""
    result = await user_service.register(payload.email, payload.password)
    return ApiResponse(
        success=True,
        code=status.HTTP_201_CREATED,
        message="User registered successfully, please verify your email",
        data=result.model_dump(by_alias=True)
    )


@router.post("/verify-otp", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def verify_otp(
    payload: OTPVerifyRequest,
    _: None = Depends(check_otp_verify_rate_limit),
    user_service: UserService = Depends(get_user_service)
):
    result = await user_service.verify_otp(payload.email, payload.otp, payload.type)
    return ApiResponse(
        success=True,
        message=result.message,
        data=result.model_dump(by_alias=True)
    )


@router.post("/resend-otp", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def resend_otp(
    payload: ResendOTPRequest,
    _: None = Depends(check_otp_verify_rate_limit),
    user_service: UserService = Depends(get_user_service)
):
    result = await user_service.resend_otp(payload.email, payload.type)
    return ApiResponse(
        success=True,
        message=result.message,
        data=result.model_dump(by_alias=True)
    )


@router.post("/login", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: UserLoginRequest,
    _: None = Depends(check_login_rate_limit),
    user_service: UserService = Depends(get_user_service)
):
    """Exchange email and password for an access/refresh token pair."""
    result = await user_service.login(payload.email, payload.password)
    return ApiResponse(
        success=True,
        message="Login successful",
        data=result.model_dump(by_alias=True)
    )


@router.post("/forgot-password", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def forgot_password(
    payload: ForgotPasswordRequest,
    _: None = Depends(check_register_rate_limit),
    user_service: UserService = Depends(get_user_service)
):
    """Stage a new password; it takes effect after /verify-otp with type forgot-password."""
    result = await user_service.forgot_password(payload.email, payload.password)
    return ApiResponse(
        success=True,
        message=result.message,
        data=result.model_dump(by_alias=True)
    )


@router.get("/refresh-token", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def refresh_token(
    request: Request,
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    user_service: UserService = Depends(get_user_service)
):
    """Send the refresh token as a Bearer header to get a new access token."""
    token = extract_bearer_token(request)
    claims = verify_token(token_issuer, token)
    tokens = await user_service.refresh_session(claims, token)
    return ApiResponse(
        success=True,
        message="Token refreshed successfully",
        data=tokens.model_dump(by_alias=True)
    )


@router.get("/me", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def get_me(
    principal: Principal = Depends(authenticate),
    user_service: UserService = Depends(get_user_service)
):
    result = await user_service.get_user(principal.uid)
    return ApiResponse(
        success=True,
        message="User fetched successfully",
        data=result.model_dump(by_alias=True, exclude_none=True)
    )


@router.delete("/me", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def delete_me(
    principal: Principal = Depends(authenticate),
    user_service: UserService = Depends(get_user_service)
):
    """Deactivate the calling account. Its tokens stop working immediately."""
    await user_service.delete_user(principal.uid)
    return ApiResponse(success=True, message="User deleted successfully")
