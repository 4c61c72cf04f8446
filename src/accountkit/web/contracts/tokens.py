"""Contracts for HMAC API token management."""

from typing import Optional

from pydantic import BaseModel, Field


class CreateTokenRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Label for the token")
    otp_code: Optional[str] = Field(None)


class DeleteTokenRequest(BaseModel):
    token_id: int = Field(..., description="Id of the token to revoke")
    otp_code: Optional[str] = Field(None)
