"""Collaborator interfaces consumed by the web layer.

Every method either returns a plain record (dict, list, str) or raises
:class:`accountkit.errors.ServiceError`. The web layer never reaches past
these interfaces into storage.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union


class MailType(str, Enum):
    """Email templates known to the notifier."""

    SIGNUP = "signup"
    WELCOME = "welcome"
    LOGIN = "login"
    RESET_PASSWORD = "reset_password"


@dataclass(frozen=True)
class SessionClaim:
    """Authenticated identity attached to a request."""

    id: int
    email: str
    network_id: Optional[int] = None
    is_admin: bool = False
    is_support: bool = False
    is_supervisor: bool = False
    is_kyc: bool = False
    is_communicator: bool = False

    @property
    def scopes(self) -> list[str]:
        """Role names carried by the claim."""
        scopes = ["user"]
        for role in ("admin", "support", "supervisor", "kyc", "communicator"):
            if getattr(self, f"is_{role}"):
                scopes.append(role)
        return scopes


class IdentityService(ABC):
    """User accounts: registration, verification, login and profile."""

    @abstractmethod
    async def sign_up_user(self, email: str, password: str, referral: Optional[str] = None) -> dict:
        raise NotImplementedError()

    @abstractmethod
    async def get_verification_code_by_email(self, email: str) -> dict:
        """Return ``{"code": ..., "verified": ...}`` for the user's pending code."""
        raise NotImplementedError()

    @abstractmethod
    async def get_email_by_verification_code(self, code: str) -> str:
        raise NotImplementedError()

    @abstractmethod
    async def verify_user(self, email: str, code: str, domain: Optional[str] = None) -> dict:
        raise NotImplementedError()

    @abstractmethod
    async def login_user(
        self,
        email: str,
        password: str,
        otp_code: Optional[str] = None,
        captcha: Optional[str] = None,
        ip: Optional[str] = None,
        device: Optional[str] = None,
        domain: Optional[str] = None,
        origin: Optional[str] = None,
        referer: Optional[str] = None,
    ) -> dict:
        """Authenticate and return the user record."""
        raise NotImplementedError()

    @abstractmethod
    async def get_user_by_email(self, email: str) -> dict:
        raise NotImplementedError()

    @abstractmethod
    async def update_user_settings(self, email: str, data: dict[str, Any]) -> dict:
        raise NotImplementedError()

    @abstractmethod
    async def set_username(self, user_id: int, username: str) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def get_user_logins(
        self,
        user_id: int,
        limit: Optional[int] = None,
        page: Optional[int] = None,
        order_by: Optional[str] = None,
        order: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        format: Optional[str] = None,
    ) -> Union[dict, str]:
        """Return ``{"count", "data"}``, or CSV text when ``format`` is set."""
        raise NotImplementedError()

    @abstractmethod
    async def get_affiliation_count(self, user_id: int) -> int:
        raise NotImplementedError()

    @abstractmethod
    async def freeze_user(self, user_id: int) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def get_user_stats(self, user_id: int) -> dict:
        raise NotImplementedError()


class SecurityService(ABC):
    """Captcha, session tokens, password resets and HMAC API tokens."""

    @abstractmethod
    async def check_captcha(self, captcha: Optional[str], ip: Optional[str] = None) -> None:
        raise NotImplementedError()

    @abstractmethod
    def issue_token(self, user: dict, ip: Optional[str] = None) -> str:
        raise NotImplementedError()

    @abstractmethod
    async def verify_token(self, token: str) -> SessionClaim:
        raise NotImplementedError()

    @abstractmethod
    async def send_reset_password_code(
        self,
        email: str,
        captcha: Optional[str] = None,
        ip: Optional[str] = None,
        domain: Optional[str] = None,
    ) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def reset_user_password(self, code: str, new_password: str) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def change_user_password(self, email: str, old_password: str, new_password: str) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def get_hmac_tokens(self, user_id: int) -> list[dict]:
        raise NotImplementedError()

    @abstractmethod
    async def create_hmac_token(
        self,
        user_id: int,
        otp_code: Optional[str],
        ip: Optional[str],
        name: str,
    ) -> dict:
        raise NotImplementedError()

    @abstractmethod
    async def delete_hmac_token(self, user_id: int, otp_code: Optional[str], token_id: int) -> None:
        raise NotImplementedError()


class WalletService(ABC):
    """Balances, deposit addresses and withdrawals."""

    @abstractmethod
    def is_supported_coin(self, crypto: Optional[str]) -> bool:
        raise NotImplementedError()

    @abstractmethod
    async def get_user_balance(self, user_id: int) -> dict:
        raise NotImplementedError()

    @abstractmethod
    async def create_crypto_address(self, user_id: int, crypto: str) -> dict:
        raise NotImplementedError()

    @abstractmethod
    async def cancel_withdrawal(self, user_id: int, transaction_id: str) -> dict:
        raise NotImplementedError()


class Notifier(ABC):
    """Templated email delivery. Implementations never raise."""

    @abstractmethod
    async def send_email(
        self,
        mail_type: MailType,
        to: str,
        data: Any = None,
        user_settings: Optional[dict] = None,
        domain: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError()


class SSOSigner(ABC):
    """Signed callback URLs for third-party helpdesks."""

    @abstractmethod
    def sign_freshdesk(self, user: dict) -> str:
        raise NotImplementedError()

    @abstractmethod
    def sign_zendesk(self, user: dict) -> str:
        raise NotImplementedError()


@dataclass
class Services:
    """Collaborators handed to the web layer."""

    identity: IdentityService
    security: SecurityService
    wallet: WalletService
    notifier: Notifier
    sso: SSOSigner
