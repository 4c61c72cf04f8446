"""Contracts for wallet operations."""

from pydantic import BaseModel, Field


class CancelWithdrawalRequest(BaseModel):
    transaction_id: str = Field(..., min_length=1, description="Withdrawal transaction id")
