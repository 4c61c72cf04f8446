"""Contracts for signup, verification, login and password reset."""

from typing import Optional

from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    """New account registration."""

    email: str = Field(..., min_length=1, description="Account email")
    password: str = Field(..., min_length=1, description="Account password")
    captcha: Optional[str] = Field(None, description="Captcha response token")
    referral: Optional[str] = Field(None, description="Affiliation code of the referrer")


class VerifyUserRequest(BaseModel):
    """Email verification with the code sent at signup."""

    email: str = Field(..., min_length=1)
    verification_code: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    """Credentials, optionally for a third-party helpdesk login."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    otp_code: Optional[str] = Field(None, description="One-time password if 2FA is enabled")
    captcha: Optional[str] = Field(None)
    service: Optional[str] = Field(
        None, description="Third-party service to sign in to (freshdesk, zendesk)"
    )


class ResetPasswordRequest(BaseModel):
    """New password with the code from the reset email."""

    code: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    token: str


class ServiceCallbackResponse(BaseModel):
    """Signed redirect for a third-party service login."""

    service: str
    callbackUrl: str


class VerificationResponse(BaseModel):
    email: str
    verification_code: str
    message: str
