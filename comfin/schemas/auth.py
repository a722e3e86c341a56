"""
comfin/schemas/auth.py

Pydantic models for the authentication endpoints.
Field names follow the JSON the web client sends (camelCase where it does).
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Any, Dict, Optional


class LoginRequest(BaseModel):
    """Request schema for login. Exactly one of password / otp is expected."""

    email: EmailStr = Field(..., description="Account email")
    password: Optional[str] = Field(default=None, description="Password for password-mode accounts")
    otp: Optional[str] = Field(default=None, description="6-digit code for OTP-mode accounts")
    role: Optional[str] = Field(default=None, description="Restrict login to this role")


class RegisterRequest(BaseModel):
    """Request schema for registration."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, description="Display name")
    email: EmailStr = Field(..., description="Account email")
    password: Optional[str] = Field(default=None, description="Required unless useOTP is set")
    use_otp: bool = Field(default=False, alias="useOTP", description="Create the account in OTP mode")

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Name is required')
        return v


class OtpRequest(BaseModel):
    """Request schema for requesting a one-time code."""

    email: EmailStr = Field(..., description="Account email")


class VerifyOtpRequest(BaseModel):
    """Request schema for verifying a code outside of login."""

    email: EmailStr = Field(..., description="Account email")
    otp: str = Field(..., description="6-digit code")


class VerifyOtpResponse(BaseModel):
    message: str
    tempToken: str


class ToggleOtpRequest(BaseModel):
    """A new password is needed when leaving OTP mode or resetting."""

    password: Optional[str] = Field(default=None, description="New password")


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., description="New password")


class ChangePasswordRequest(BaseModel):
    currentPassword: str = Field(..., description="Current password")
    newPassword: str = Field(..., description="New password")


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    pan: Optional[str] = None
    mobile: Optional[str] = None


class AuthResponse(BaseModel):
    """Token plus the user summary returned by login and register."""

    token: str
    user: Dict[str, Any]
