"""Contracts for profile, settings and login history."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class UpdateSettingsRequest(BaseModel):
    """Partial settings update; each section is merged into the stored one."""

    notification: Optional[dict[str, Any]] = None
    interface: Optional[dict[str, Any]] = None
    audio: Optional[dict[str, Any]] = None
    risk: Optional[dict[str, Any]] = None
    chat: Optional[dict[str, Any]] = None
    language: Optional[str] = Field(None, max_length=8)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class UsernameRequest(BaseModel):
    username: str = Field(..., min_length=1)


class AffiliationResponse(BaseModel):
    count: int
