"""
comfin/api/auth.py

Authentication API Endpoints
============================

Login (password or OTP), registration, OTP request/verification,
OTP toggle, password reset/change and the signed-in user's profile.

All failures are raised as ComFinError subclasses and rendered by the
shared exception handlers as {error, code, details}.
"""

from typing import Any, Dict, Tuple

from fastapi import APIRouter, Depends

from comfin.api.deps import (
    get_auth_service,
    get_current_user,
    get_user_allow_temp,
    require_temp_token,
)
from comfin.models.user import User
from comfin.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    OtpRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    ToggleOtpRequest,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from comfin.schemas.response import MessageResponse
from comfin.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


# ============================================================================
# LOGIN / REGISTER
# ============================================================================

@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    Authenticate and get a 5-day session token.

    Password accounts send `password`; OTP accounts send the `otp` they
    requested through /request-otp.
    """
    result = await auth.login(
        email=request.email,
        password=request.password,
        otp=request.otp,
        role=request.role,
    )
    return result.to_response()


@router.post("/register", response_model=AuthResponse)
async def register(
    request: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Create an account; OTP accounts are sent their first code."""
    result = await auth.register(
        name=request.name,
        email=request.email,
        password=request.password,
        use_otp=request.use_otp,
    )
    return result.to_response()


# ============================================================================
# ONE-TIME CODES
# ============================================================================

@router.post("/request-otp", response_model=MessageResponse)
async def request_otp(
    request: OtpRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Same response whether or not the email is registered."""
    message = await auth.request_otp(request.email)
    return {"message": message}


@router.post("/verify-otp", response_model=VerifyOtpResponse)
async def verify_otp(
    request: VerifyOtpRequest,
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    Verify a code outside of login.

    Returns a 15-minute temporary token accepted only by /reset-password
    and /toggle-otp.
    """
    temp_token = await auth.verify_otp(request.email, request.otp)
    return {"message": "OTP verified successfully", "tempToken": temp_token}


@router.post("/toggle-otp")
async def toggle_otp(
    request: ToggleOtpRequest,
    current: Tuple[User, bool] = Depends(get_user_allow_temp),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    Switch between password and OTP login.

    Called with a temporary token this sets a new password instead.
    """
    user, is_temp = current
    updated = await auth.toggle_otp(user, password=request.password, temp=is_temp)

    if is_temp:
        message = "Password reset successfully"
    elif updated.uses_otp:
        message = "OTP authentication enabled"
    else:
        message = "OTP authentication disabled"

    return {"message": message, "useOTP": updated.uses_otp}


@router.post("/reset-password")
async def reset_password(
    request: ResetPasswordRequest,
    user: User = Depends(require_temp_token),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    updated = await auth.reset_password(user, request.password)
    return {"message": "Password reset successfully", "useOTP": updated.uses_otp}


# ============================================================================
# PROFILE
# ============================================================================

@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return user.to_public()


@router.put("/profile")
async def update_profile(
    request: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    updated = await auth.update_profile(
        user,
        name=request.name,
        email=request.email,
        pan=request.pan,
        mobile=request.mobile,
    )
    return updated.to_public()


@router.put("/password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    await auth.change_password(user, request.currentPassword, request.newPassword)
    return {"message": "Password updated successfully"}
