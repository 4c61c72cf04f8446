"""SQLAlchemy models for accounts, credentials and wallet records."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to the naive UTC form SQLite stores, so comparisons line up."""
    value = as_utc(value)
    return value.astimezone(timezone.utc).replace(tzinfo=None) if value else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class WithdrawalStatus(str, Enum):
    """Status of a withdrawal."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class User(Base):
    """Exchange user account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)  # Argon2 hash
    username: Mapped[Optional[str]] = mapped_column(String(32), unique=True, nullable=True)
    network_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    activated: Mapped[bool] = mapped_column(Boolean, default=True)
    affiliation_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    referred_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    # Role flags
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    is_support: Mapped[bool] = mapped_column(Boolean, default=False)
    is_supervisor: Mapped[bool] = mapped_column(Boolean, default=False)
    is_kyc: Mapped[bool] = mapped_column(Boolean, default=False)
    is_communicator: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    balances: Mapped[list["Balance"]] = relationship(back_populates="user", lazy="selectin")

    def to_dict(self) -> dict[str, Any]:
        """Full record, hash included. Callers decide what to expose."""
        return {
            "id": self.id,
            "email": self.email,
            "password": self.password,
            "username": self.username,
            "network_id": self.network_id,
            "verification_level": 1 if self.verified else 0,
            "email_verified": self.verified,
            "activated": self.activated,
            "affiliation_code": self.affiliation_code,
            "settings": dict(self.settings or {}),
            "is_admin": self.is_admin,
            "is_support": self.is_support,
            "is_supervisor": self.is_supervisor,
            "is_kyc": self.is_kyc,
            "is_communicator": self.is_communicator,
            "created_at": _iso(self.created_at),
        }


class VerificationCode(Base):
    """Email verification code issued at signup."""

    __tablename__ = "verification_codes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    code: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


class ResetPasswordCode(Base):
    """Single-use password reset code."""

    __tablename__ = "reset_password_codes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    code: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)
    ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False)


class LoginRecord(Base):
    """Login attempt, successful or not."""

    __tablename__ = "logins"
    __table_args__ = (Index("ix_logins_user_timestamp", "user_id", "timestamp"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    device: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    domain: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    origin: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    referer: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    status: Mapped[bool] = mapped_column(Boolean, default=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ip": self.ip,
            "device": self.device,
            "domain": self.domain,
            "origin": self.origin,
            "referer": self.referer,
            "status": self.status,
            "timestamp": _iso(self.timestamp),
        }


class HmacToken(Base):
    """API key/secret pair for HMAC-signed requests."""

    __tablename__ = "hmac_tokens"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    api_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    secret: Mapped[str] = mapped_column(String(64), nullable=False)
    ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    revoked: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_dict(self, include_secret: bool = False) -> dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "apiKey": self.api_key,
            "secret": self.secret if include_secret else self.secret[:5] + "*" * 27,
            "active": self.active,
            "revoked": self.revoked,
            "created": _iso(self.created_at),
        }
        return data


class Balance(Base):
    """User balance for a specific asset."""

    __tablename__ = "balances"
    __table_args__ = (Index("ix_balances_user_asset", "user_id", "asset", unique=True),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    asset: Mapped[str] = mapped_column(String(20), nullable=False)  # lowercase symbol
    amount: Mapped[Decimal] = mapped_column(Numeric(36, 18), default=Decimal("0"))
    locked_amount: Mapped[Decimal] = mapped_column(
        Numeric(36, 18), default=Decimal("0")
    )  # Held by pending withdrawals
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user: Mapped["User"] = relationship(back_populates="balances")

    @property
    def available(self) -> Decimal:
        """Get available (unlocked) balance."""
        return self.amount - self.locked_amount


class Withdrawal(Base):
    """Withdrawal request."""

    __tablename__ = "withdrawals"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    transaction_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    asset: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(36, 18), nullable=False)
    fee: Mapped[Decimal] = mapped_column(Numeric(36, 18), default=Decimal("0"))
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[WithdrawalStatus] = mapped_column(
        String(20), default=WithdrawalStatus.PENDING, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "currency": self.asset,
            "amount": str(self.amount),
            "fee": str(self.fee),
            "address": self.address,
            "status": WithdrawalStatus(self.status).value,
            "dismissed": self.status == WithdrawalStatus.CANCELLED,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class CryptoAddress(Base):
    """Deposit address per user per coin."""

    __tablename__ = "crypto_addresses"
    __table_args__ = (Index("ix_crypto_addresses_user_asset", "user_id", "asset", unique=True),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    asset: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "crypto": self.asset,
            "address": self.address,
            "created_at": _iso(self.created_at),
        }
