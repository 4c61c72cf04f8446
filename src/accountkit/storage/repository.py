"""Repository for account storage operations."""

import hashlib
import secrets
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from accountkit.storage.models import (
    Balance,
    CryptoAddress,
    HmacToken,
    LoginRecord,
    ResetPasswordCode,
    User,
    VerificationCode,
    Withdrawal,
    WithdrawalStatus,
    naive_utc,
    utcnow,
)

LOGIN_ORDER_COLUMNS = {
    "timestamp": LoginRecord.timestamp,
    "ip": LoginRecord.ip,
    "device": LoginRecord.device,
    "id": LoginRecord.id,
}


class AccountRepository:
    """Repository for all account-related database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # User operations
    async def create_user(
        self,
        email: str,
        password_hash: str,
        network_id: Optional[int] = None,
        referred_by: Optional[int] = None,
        settings: Optional[dict] = None,
    ) -> User:
        user = User(
            email=email,
            password=password_hash,
            network_id=network_id,
            referred_by=referred_by,
            affiliation_code=secrets.token_hex(4).upper(),
            settings=settings or {},
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_user_by_affiliation_code(self, code: str) -> Optional[User]:
        stmt = select(User).where(User.affiliation_code == code.upper())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_referrals(self, user_id: int) -> int:
        stmt = select(func.count(User.id)).where(User.referred_by == user_id)
        return await self.session.scalar(stmt) or 0

    # Verification codes
    async def create_verification_code(self, user_id: int) -> VerificationCode:
        code = VerificationCode(user_id=user_id, code=str(uuid.uuid4()))
        self.session.add(code)
        await self.session.flush()
        return code

    async def get_verification_code_by_user(self, user_id: int) -> Optional[VerificationCode]:
        stmt = select(VerificationCode).where(VerificationCode.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_verification_code(self, code: str) -> Optional[VerificationCode]:
        stmt = select(VerificationCode).where(VerificationCode.code == code)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # Reset password codes
    async def create_reset_code(
        self, user_id: int, ttl: timedelta, ip: Optional[str] = None
    ) -> ResetPasswordCode:
        code = ResetPasswordCode(
            user_id=user_id,
            code=str(uuid.uuid4()),
            ip=ip,
            expires_at=utcnow() + ttl,
        )
        self.session.add(code)
        await self.session.flush()
        return code

    async def get_reset_code(self, code: str) -> Optional[ResetPasswordCode]:
        stmt = select(ResetPasswordCode).where(ResetPasswordCode.code == code)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # Login history
    async def add_login(
        self,
        user_id: int,
        status: bool,
        ip: Optional[str] = None,
        device: Optional[str] = None,
        domain: Optional[str] = None,
        origin: Optional[str] = None,
        referer: Optional[str] = None,
    ) -> LoginRecord:
        record = LoginRecord(
            user_id=user_id,
            status=status,
            ip=ip,
            device=device,
            domain=domain,
            origin=origin,
            referer=referer,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_logins(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        order_by: str = "timestamp",
        order: str = "desc",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> tuple[int, list[LoginRecord]]:
        """Get a page of login records and the total matching count."""
        conditions = [LoginRecord.user_id == user_id]
        if start_date is not None:
            conditions.append(LoginRecord.timestamp >= naive_utc(start_date))
        if end_date is not None:
            conditions.append(LoginRecord.timestamp <= naive_utc(end_date))

        count = await self.session.scalar(
            select(func.count(LoginRecord.id)).where(*conditions)
        ) or 0

        column = LOGIN_ORDER_COLUMNS.get(order_by, LoginRecord.timestamp)
        direction = asc if order == "asc" else desc
        stmt = (
            select(LoginRecord)
            .where(*conditions)
            .order_by(direction(column), direction(LoginRecord.id))
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return count, list(result.scalars().all())

    async def count_logins(self, user_id: int, status: Optional[bool] = None) -> int:
        stmt = select(func.count(LoginRecord.id)).where(LoginRecord.user_id == user_id)
        if status is not None:
            stmt = stmt.where(LoginRecord.status == status)
        return await self.session.scalar(stmt) or 0

    # HMAC tokens
    async def create_hmac_token(
        self, user_id: int, name: str, ip: Optional[str] = None
    ) -> HmacToken:
        token = HmacToken(
            user_id=user_id,
            name=name,
            api_key=secrets.token_hex(20),
            secret=secrets.token_hex(32),
            ip=ip,
        )
        self.session.add(token)
        await self.session.flush()
        return token

    async def get_active_hmac_tokens(self, user_id: int) -> list[HmacToken]:
        stmt = (
            select(HmacToken)
            .where(HmacToken.user_id == user_id, HmacToken.revoked.is_(False))
            .order_by(HmacToken.created_at.desc(), HmacToken.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_hmac_token(self, user_id: int, token_id: int) -> Optional[HmacToken]:
        stmt = select(HmacToken).where(HmacToken.id == token_id, HmacToken.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def revoke_hmac_token(self, token: HmacToken) -> HmacToken:
        token.active = False
        token.revoked = True
        token.revoked_at = utcnow()
        await self.session.flush()
        return token

    # Balance operations
    async def get_all_balances(self, user_id: int) -> list[Balance]:
        result = await self.session.execute(select(Balance).where(Balance.user_id == user_id))
        return list(result.scalars().all())

    async def get_or_create_balance(self, user_id: int, asset: str) -> Balance:
        stmt = select(Balance).where(Balance.user_id == user_id, Balance.asset == asset.lower())
        result = await self.session.execute(stmt)
        balance = result.scalar_one_or_none()
        if balance is None:
            balance = Balance(
                user_id=user_id,
                asset=asset.lower(),
                amount=Decimal("0"),
                locked_amount=Decimal("0"),
            )
            self.session.add(balance)
            await self.session.flush()
        return balance

    async def credit_balance(self, user_id: int, asset: str, amount: Decimal) -> Balance:
        balance = await self.get_or_create_balance(user_id, asset)
        balance.amount += amount
        balance.updated_at = utcnow()
        await self.session.flush()
        return balance

    # Withdrawal operations
    async def create_withdrawal(
        self,
        user_id: int,
        asset: str,
        amount: Decimal,
        address: str,
        fee: Decimal = Decimal("0"),
    ) -> Withdrawal:
        """Create a pending withdrawal and hold its amount plus fee."""
        withdrawal = Withdrawal(
            user_id=user_id,
            transaction_id=str(uuid.uuid4()),
            asset=asset.lower(),
            amount=amount,
            fee=fee,
            address=address,
            status=WithdrawalStatus.PENDING,
        )
        self.session.add(withdrawal)
        balance = await self.get_or_create_balance(user_id, asset)
        balance.locked_amount += amount + fee
        balance.updated_at = utcnow()
        await self.session.flush()
        return withdrawal

    async def get_withdrawal_by_transaction_id(
        self, user_id: int, transaction_id: str
    ) -> Optional[Withdrawal]:
        stmt = select(Withdrawal).where(
            Withdrawal.transaction_id == transaction_id,
            Withdrawal.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def cancel_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal:
        """Mark a withdrawal cancelled and release its hold."""
        withdrawal.status = WithdrawalStatus.CANCELLED
        withdrawal.updated_at = utcnow()
        balance = await self.get_or_create_balance(withdrawal.user_id, withdrawal.asset)
        held = withdrawal.amount + withdrawal.fee
        balance.locked_amount = max(Decimal("0"), balance.locked_amount - held)
        balance.updated_at = utcnow()
        await self.session.flush()
        return withdrawal

    async def get_withdrawal_totals(self, user_id: int) -> list[tuple[str, int, Decimal]]:
        """Count and sum of completed withdrawals per asset."""
        stmt = (
            select(Withdrawal.asset, func.count(Withdrawal.id), func.sum(Withdrawal.amount))
            .where(
                Withdrawal.user_id == user_id,
                Withdrawal.status == WithdrawalStatus.COMPLETED,
            )
            .group_by(Withdrawal.asset)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1], Decimal(str(row[2] or 0))) for row in result.all()]

    # Crypto addresses
    async def get_crypto_address(self, user_id: int, asset: str) -> Optional[CryptoAddress]:
        stmt = select(CryptoAddress).where(
            CryptoAddress.user_id == user_id, CryptoAddress.asset == asset.lower()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_crypto_address(self, user_id: int, asset: str) -> CryptoAddress:
        addr = CryptoAddress(
            user_id=user_id,
            asset=asset.lower(),
            address=self._generate_address(user_id, asset),
        )
        self.session.add(addr)
        await self.session.flush()
        return addr

    def _generate_address(self, user_id: int, asset: str) -> str:
        """Generate a simulated deposit address."""
        seed = f"{user_id}:{asset}:{secrets.token_hex(8)}"
        hash_hex = hashlib.sha256(seed.encode()).hexdigest()

        if asset.lower() == "btc":
            return f"bc1q{hash_hex[:38]}"
        return f"0x{hash_hex[:40]}"
