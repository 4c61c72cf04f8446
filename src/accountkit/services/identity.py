"""Local identity collaborator.

Owns user registration, email verification, login, profile settings,
usernames, login history, referrals and account freezing, on top of the
local account database.
"""

import copy
import csv
import io
import logging
from datetime import datetime
from typing import Any, Callable, Optional, Union

from accountkit import messages
from accountkit.config import Settings, get_settings
from accountkit.errors import ServiceError
from accountkit.services.base import IdentityService, MailType, Notifier, SecurityService
from accountkit.services.credentials import (
    NewUser,
    NewUsername,
    hash_password,
    validate,
    verify_password,
)
from accountkit.services.notifications import send_later
from accountkit.storage.database import get_db
from accountkit.storage.repository import AccountRepository

logger = logging.getLogger(__name__)

DEFAULT_USER_SETTINGS = {
    "notification": {"login_email": True},
    "interface": {"theme": "white"},
    "language": "en",
}

SETTINGS_SECTIONS = ("notification", "interface", "audio", "risk", "chat")

LOGIN_PAGE_LIMIT = 50
LOGIN_CSV_FIELDS = ["id", "ip", "device", "domain", "origin", "referer", "status", "timestamp"]


def _public(user_dict: dict) -> dict:
    return {k: v for k, v in user_dict.items() if k != "password"}


class LocalIdentityService(IdentityService):
    """Identity operations backed by the local account database."""

    def __init__(
        self,
        security: SecurityService,
        notifier: Notifier,
        settings: Optional[Settings] = None,
        session_scope: Callable = get_db,
    ):
        self.security = security
        self.notifier = notifier
        self.settings = settings or get_settings()
        self._session_scope = session_scope

    # Registration and verification
    async def sign_up_user(self, email: str, password: str, referral: Optional[str] = None) -> dict:
        creds = validate(NewUser, email=email, password=password)

        async with self._session_scope() as session:
            repo = AccountRepository(session)
            if await repo.get_user_by_email(creds.email) is not None:
                raise ServiceError.rejected(messages.USER_EXISTS)

            referred_by = None
            if referral:
                referrer = await repo.get_user_by_affiliation_code(referral)
                if referrer is not None:
                    referred_by = referrer.id
                else:
                    logger.info("Ignoring unknown referral code %s", referral)

            user = await repo.create_user(
                creds.email,
                hash_password(creds.password),
                referred_by=referred_by,
                settings=copy.deepcopy(DEFAULT_USER_SETTINGS),
            )
            code = await repo.create_verification_code(user.id)
            created = _public(user.to_dict())
            verification_code = code.code

        logger.info("Registered user %s", created["id"])
        send_later(self.notifier, MailType.SIGNUP, created["email"], verification_code)
        return created

    async def get_verification_code_by_email(self, email: str) -> dict:
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            user = await repo.get_user_by_email(email)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            if user.verified:
                raise ServiceError.rejected(messages.USER_IS_VERIFIED)
            code = await repo.get_verification_code_by_user(user.id)
            if code is None:
                code = await repo.create_verification_code(user.id)
            return {"code": code.code, "verified": code.verified}

    async def get_email_by_verification_code(self, code: str) -> str:
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            record = await repo.get_verification_code(code)
            if record is None:
                raise ServiceError.rejected(messages.INVALID_VERIFICATION_CODE)
            if record.verified:
                raise ServiceError.rejected(messages.USER_IS_VERIFIED)
            user = await repo.get_user_by_id(record.user_id)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            return user.email

    async def verify_user(self, email: str, code: str, domain: Optional[str] = None) -> dict:
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            user = await repo.get_user_by_email(email)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            if user.verified:
                raise ServiceError.rejected(messages.USER_IS_VERIFIED)
            record = await repo.get_verification_code_by_user(user.id)
            if record is None or record.code != code:
                raise ServiceError.rejected(messages.INVALID_VERIFICATION_CODE)

            user.verified = True
            record.verified = True
            verified = _public(user.to_dict())

        send_later(
            self.notifier, MailType.WELCOME, verified["email"], None, verified["settings"], domain
        )
        return verified

    # Login
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
        await self.security.check_captcha(captcha, ip)

        error: Optional[ServiceError] = None
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            user = await repo.get_user_by_email(email)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)

            if not verify_password(password, user.password):
                error = ServiceError.unauthorized(messages.INVALID_CREDENTIALS, status=None)
            elif not user.verified:
                error = ServiceError.rejected(messages.USER_NOT_VERIFIED)
            elif not user.activated:
                error = ServiceError.rejected(messages.USER_NOT_ACTIVATED)

            # Failed attempts are kept, so record before raising outside the session
            await repo.add_login(
                user.id,
                status=error is None,
                ip=ip,
                device=device,
                domain=domain,
                origin=origin,
                referer=referer,
            )
            logged_in = _public(user.to_dict())

        if error is not None:
            logger.info("Login failed for user %s: %s", logged_in["id"], error.message)
            raise error
        return logged_in

    # Profile
    async def get_user_by_email(self, email: str) -> dict:
        async with self._session_scope() as session:
            user = await AccountRepository(session).get_user_by_email(email)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            return user.to_dict()

    async def update_user_settings(self, email: str, data: dict[str, Any]) -> dict:
        async with self._session_scope() as session:
            user = await AccountRepository(session).get_user_by_email(email)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)

            current = dict(user.settings or {})
            for section in SETTINGS_SECTIONS:
                if data.get(section) is not None:
                    current[section] = {**(current.get(section) or {}), **data[section]}
            if data.get("language"):
                current["language"] = data["language"]
            # Reassign so the JSON column is marked dirty
            user.settings = current
            return _public(user.to_dict())

    async def set_username(self, user_id: int, username: str) -> None:
        validate(NewUsername, username=username)

        async with self._session_scope() as session:
            repo = AccountRepository(session)
            user = await repo.get_user_by_id(user_id)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            existing = await repo.get_user_by_username(username)
            if existing is not None and existing.id != user_id:
                raise ServiceError.rejected(messages.USERNAME_TAKEN)
            user.username = username

    # Login history
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
        limit = min(limit or LOGIN_PAGE_LIMIT, LOGIN_PAGE_LIMIT)
        page = max(page or 1, 1)

        async with self._session_scope() as session:
            count, records = await AccountRepository(session).get_logins(
                user_id,
                limit=limit,
                offset=(page - 1) * limit,
                order_by=order_by or "timestamp",
                order=order or "desc",
                start_date=start_date,
                end_date=end_date,
            )
            rows = [record.to_dict() for record in records]

        if format:
            return self._to_csv(rows)
        return {"count": count, "data": rows}

    @staticmethod
    def _to_csv(rows: list[dict]) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=LOGIN_CSV_FIELDS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()

    # Referrals, freezing, stats
    async def get_affiliation_count(self, user_id: int) -> int:
        async with self._session_scope() as session:
            return await AccountRepository(session).count_referrals(user_id)

    async def freeze_user(self, user_id: int) -> None:
        async with self._session_scope() as session:
            user = await AccountRepository(session).get_user_by_id(user_id)
            if user is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            if not user.activated:
                raise ServiceError.rejected(messages.USER_NOT_ACTIVATED)
            user.activated = False
        logger.info("Deactivated user %s", user_id)

    async def get_user_stats(self, user_id: int) -> dict:
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            if await repo.get_user_by_id(user_id) is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            total_logins = await repo.count_logins(user_id)
            failed_logins = await repo.count_logins(user_id, status=False)
            withdrawals = await repo.get_withdrawal_totals(user_id)

        return {
            "logins": {"total": total_logins, "failed": failed_logins},
            "withdrawals": {
                asset: {"count": count, "amount": str(amount)}
                for asset, count, amount in withdrawals
            },
        }
