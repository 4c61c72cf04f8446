"""Local wallet collaborator: balances, deposit addresses, withdrawals."""

import logging
from decimal import Decimal
from typing import Callable, Optional

from accountkit import messages
from accountkit.config import Settings, get_settings
from accountkit.errors import ServiceError
from accountkit.services.base import WalletService
from accountkit.storage.database import get_db
from accountkit.storage.models import WithdrawalStatus, as_utc
from accountkit.storage.repository import AccountRepository

logger = logging.getLogger(__name__)


class LocalWalletService(WalletService):
    """Wallet operations backed by the local account database."""

    def __init__(self, settings: Optional[Settings] = None, session_scope: Callable = get_db):
        self.settings = settings or get_settings()
        self._session_scope = session_scope

    def is_supported_coin(self, crypto: Optional[str]) -> bool:
        return bool(crypto) and crypto.lower() in self.settings.coins

    async def get_user_balance(self, user_id: int) -> dict:
        """Balance map with ``<coin>_balance`` and ``<coin>_available`` per coin."""
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            if await repo.get_user_by_id(user_id) is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            balances = {b.asset: b for b in await repo.get_all_balances(user_id)}

        result: dict = {"user_id": user_id}
        updated = None
        for coin in self.settings.coins:
            balance = balances.get(coin)
            amount = balance.amount if balance else Decimal("0")
            available = balance.available if balance else Decimal("0")
            result[f"{coin}_balance"] = str(amount)
            result[f"{coin}_available"] = str(available)
            if balance is not None:
                stamp = as_utc(balance.updated_at)
                if updated is None or stamp > updated:
                    updated = stamp
        result["updated_at"] = updated.isoformat() if updated else None
        return result

    async def create_crypto_address(self, user_id: int, crypto: str) -> dict:
        if not self.is_supported_coin(crypto):
            raise ServiceError.not_found(messages.invalid_crypto(crypto), status=404)

        async with self._session_scope() as session:
            repo = AccountRepository(session)
            if await repo.get_user_by_id(user_id) is None:
                raise ServiceError.not_found(messages.USER_NOT_FOUND)
            if await repo.get_crypto_address(user_id, crypto) is not None:
                raise ServiceError.rejected(messages.ADDRESS_EXISTS)
            address = await repo.create_crypto_address(user_id, crypto)
            logger.info("Created %s address for user %s", crypto.lower(), user_id)
            return address.to_dict()

    async def cancel_withdrawal(self, user_id: int, transaction_id: str) -> dict:
        async with self._session_scope() as session:
            repo = AccountRepository(session)
            withdrawal = await repo.get_withdrawal_by_transaction_id(user_id, transaction_id)
            if withdrawal is None:
                raise ServiceError.not_found(messages.WITHDRAWAL_NOT_FOUND, status=404)
            if withdrawal.status != WithdrawalStatus.PENDING:
                raise ServiceError.rejected(messages.WITHDRAWAL_NOT_CANCELLABLE)

            await repo.cancel_withdrawal(withdrawal)
            logger.info("Cancelled withdrawal %s for user %s", transaction_id, user_id)
            return withdrawal.to_dict()
