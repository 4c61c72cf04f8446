"""Local security collaborator.

Captcha verification against reCAPTCHA, JWT session tokens, password reset
codes, password changes and HMAC API tokens.

OTP enrolment is handled elsewhere; ``otp_code`` arguments are accepted for
interface compatibility and not checked here.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
import jwt

from accountkit import messages
from accountkit.config import Settings, get_settings
from accountkit.errors import ServiceError
from accountkit.services.base import MailType, Notifier, SecurityService, SessionClaim
from accountkit.services.credentials import NewPassword, hash_password, validate, verify_password
from accountkit.services.notifications import send_later
from accountkit.storage.database import get_db
from accountkit.storage.models import as_utc, utcnow
from accountkit.storage.repository import AccountRepository

logger = logging.getLogger(__name__)

ROLE_FLAGS = ("is_admin", "is_support", "is_supervisor", "is_kyc", "is_communicator")


class LocalSecurityService(SecurityService):
    """Security operations backed by the local account database."""

    def __init__(
        self,
        notifier: Notifier,
        settings: Optional[Settings] = None,
        session_scope: Callable = get_db,
    ):
        self.notifier = notifier
        self.settings = settings or get_settings()
        self._session_scope = session_scope

    # Captcha
    async def check_captcha(self, captcha: Optional[str], ip: Optional[str] = None) -> None:
        """Verify a reCAPTCHA response. No-op when no secret is configured."""
        if not self.settings.captcha_secret:
            return
        if not captcha:
            raise ServiceError.rejected(messages.INVALID_CAPTCHA)

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.settings.captcha_verify_url,
                    data={
                        "secret": self.settings.captcha_secret,
                        "response": captcha,
                        "remoteip": ip or "",
                    },
                    timeout=10.0,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error("Captcha verification request failed: %s", e)
            raise ServiceError.internal("Captcha verification unavailable", status=503) from e

        if not data.get("success"):
            logger.info("Captcha rejected for ip %s: %s", ip, data.get("error-codes"))
            raise ServiceError.rejected(messages.INVALID_CAPTCHA)

    # Session tokens
    def issue_token(self, user: dict, ip: Optional[str] = None) -> str:
        now = datetime.now(timezone.utc)
        scopes = ["user"] + [flag[3:] for flag in ROLE_FLAGS if user.get(flag)]
        payload = {
            "sub": str(user["id"]),
            "email": user["email"],
            "networkId": user.get("network_id"),
            "scopes": scopes,
            "ip": ip,
            "iss": self.settings.api_name,
            "iat": now,
            "exp": now + timedelta(hours=self.settings.token_expiry_hours),
        }
        return jwt.encode(payload, self.settings.secret_key, algorithm="HS256")

    async def verify_token(self, token: str) -> SessionClaim:
        try:
            payload = jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=["HS256"],
                issuer=self.settings.api_name,
            )
        except jwt.ExpiredSignatureError:
            raise ServiceError.unauthorized(messages.TOKEN_EXPIRED)
        except jwt.PyJWTError:
            raise ServiceError.unauthorized(messages.INVALID_TOKEN)

        try:
            user_id = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise ServiceError.unauthorized(messages.INVALID_TOKEN)

        async with self._session_scope() as session:
            user = await AccountRepository(session).get_user_by_id(user_id)
            if user is None:
                raise ServiceError.unauthorized(messages.INVALID_TOKEN)
            if not user.activated:
                raise ServiceError.unauthorized(messages.USER_NOT_ACTIVATED, status=403)
            scopes = set(payload.get("scopes") or [])
            return SessionClaim(
                id=user.id,
                email=user.email,
                network_id=payload.get("networkId"),
                is_admin="admin" in scopes,
                is_support="support" in scopes,
                is_supervisor="supervisor" in scopes,
                is_kyc="kyc" in scopes,
                is_communicator="communicator" in scopes,
            )

    # Password reset
    async def send_reset_password_code(
        self,
        email: str,
        captcha: Optional[str] = None,
        ip: Optional[str] = None,
        domain: Optional[str] = None,
    ) -> None:
        await self.check_captcha(captcha, ip)

        async with self._session_scope() as session:
            repo = AccountRepository(session)
            user = await repo.get_user_by_email(email)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            ttl = timedelta(minutes=self.settings.reset_code_ttl_minutes)
            reset = await repo.create_reset_code(user.id, ttl, ip=ip)
            code, to, user_settings = reset.code, user.email, dict(user.settings or {})

        send_later(
            self.notifier,
            MailType.RESET_PASSWORD,
            to,
            {"code": code, "ip": ip},
            user_settings,
            domain,
        )

    async def reset_user_password(self, code: str, new_password: str) -> None:
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            reset = await repo.get_reset_code(code)
            if reset is None or reset.used or as_utc(reset.expires_at) < utcnow():
                raise ServiceError.rejected(messages.INVALID_CODE)

            validate(NewPassword, password=new_password)
            user = await repo.get_user_by_id(reset.user_id)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            user.password = hash_password(new_password)
            reset.used = True

    async def change_user_password(self, email: str, old_password: str, new_password: str) -> None:
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            user = await repo.get_user_by_email(email)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            if not verify_password(old_password, user.password):
                raise ServiceError.unauthorized(messages.INVALID_CREDENTIALS, status=None)
            if old_password == new_password:
                raise ServiceError.rejected(messages.SAME_PASSWORD)

            validate(NewPassword, password=new_password)
            user.password = hash_password(new_password)

    # HMAC tokens
    async def get_hmac_tokens(self, user_id: int) -> list[dict]:
        async with self._session_scope() as session:
            tokens = await AccountRepository(session).get_active_hmac_tokens(user_id)
            return [token.to_dict() for token in tokens]

    async def create_hmac_token(
        self,
        user_id: int,
        otp_code: Optional[str],
        ip: Optional[str],
        name: str,
    ) -> dict:
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            if await repo.get_user_by_id(user_id) is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)

            active = await repo.get_active_hmac_tokens(user_id)
            if len(active) >= self.settings.hmac_token_limit:
                raise ServiceError.rejected(messages.TOKEN_LIMIT_REACHED)

            token = await repo.create_hmac_token(user_id, name, ip=ip)
            logger.info("Created HMAC token %s for user %s", token.id, user_id)
            return token.to_dict(include_secret=True)

    async def delete_hmac_token(self, user_id: int, otp_code: Optional[str], token_id: int) -> None:
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            token = await repo.get_hmac_token(user_id, token_id)
            if token is None or token.revoked:
                raise ServiceError.not_found(messages.TOKEN_NOT_FOUND)
            await repo.revoke_hmac_token(token)
            logger.info("Revoked HMAC token %s for user %s", token_id, user_id)
