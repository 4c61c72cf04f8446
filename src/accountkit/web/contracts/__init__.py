"""Request and response contracts for the account API.

These Pydantic models are the upstream shape check: a request that does
not fit them never reaches a handler.
"""

from accountkit.web.contracts.auth import (
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    ServiceCallbackResponse,
    SignupRequest,
    TokenResponse,
    VerificationResponse,
    VerifyUserRequest,
)
from accountkit.web.contracts.tokens import CreateTokenRequest, DeleteTokenRequest
from accountkit.web.contracts.user import (
    AffiliationResponse,
    ChangePasswordRequest,
    UpdateSettingsRequest,
    UsernameRequest,
)
from accountkit.web.contracts.wallet import CancelWithdrawalRequest

__all__ = [
    # Auth contracts
    "LoginRequest",
    "MessageResponse",
    "ResetPasswordRequest",
    "ServiceCallbackResponse",
    "SignupRequest",
    "TokenResponse",
    "VerificationResponse",
    "VerifyUserRequest",
    # Token contracts
    "CreateTokenRequest",
    "DeleteTokenRequest",
    # User contracts
    "AffiliationResponse",
    "ChangePasswordRequest",
    "UpdateSettingsRequest",
    "UsernameRequest",
    # Wallet contracts
    "CancelWithdrawalRequest",
]
