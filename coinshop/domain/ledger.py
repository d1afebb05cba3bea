"""Account ledger: balances and account identity."""

from __future__ import annotations

import logging
from typing import Sequence

from .exceptions import AccountNotFound, InvalidRequest
from ..storage.base import MAX_COINS, AccountRecord, AccountRepository, ShopStorage

logger = logging.getLogger(__name__)


class AccountService:
    """Read accounts and apply privileged balance adjustments."""

    def __init__(self, storage: ShopStorage) -> None:
        self._storage = storage

    async def get_account(self, account_id: str) -> AccountRecord:
        async with self._storage.unit_of_work(read_only=True) as uow:
            record = await uow.accounts.get(account_id)
        if record is None:
            raise AccountNotFound(f"Account {account_id} not found")
        return record

    async def find_by_username(self, username: str) -> AccountRecord | None:
        async with self._storage.unit_of_work(read_only=True) as uow:
            return await uow.accounts.get_by_username(username)

    async def get_by_username(self, username: str) -> AccountRecord:
        record = await self.find_by_username(username)
        if record is None:
            raise AccountNotFound(f"Account {username!r} not found")
        return record

    async def list_accounts(self) -> Sequence[AccountRecord]:
        async with self._storage.unit_of_work(read_only=True) as uow:
            return await uow.accounts.list()

    async def get_or_create_by_username(self, username: str) -> AccountRecord:
        username = _clean_username(username)
        async with self._storage.unit_of_work() as uow:
            return await resolve_account_by_username(uow.accounts, username)

    async def set_admin(self, account_id: str, is_admin: bool) -> AccountRecord:
        async with self._storage.unit_of_work() as uow:
            record = await uow.accounts.get(account_id, for_update=True)
            if record is None:
                raise AccountNotFound(f"Account {account_id} not found")
            record.is_admin = is_admin
            return await uow.accounts.update(record)

    async def adjust_balance(self, account_id: str, delta: int) -> AccountRecord:
        """Add ``delta`` coins (negative to deduct), flooring the balance at zero."""
        delta = _require_int(delta)
        async with self._storage.unit_of_work() as uow:
            record = await uow.accounts.get(account_id, for_update=True)
            if record is None:
                raise AccountNotFound(f"Account {account_id} not found")
            return await _apply_delta(uow.accounts, record, delta)

    async def adjust_balance_by_external_id(self, discord_id: str, delta: int) -> AccountRecord:
        delta = _require_int(delta)
        async with self._storage.unit_of_work() as uow:
            record = await uow.accounts.get_by_discord_id(discord_id, for_update=True)
            if record is None:
                raise AccountNotFound(f"No account linked to {discord_id}")
            return await _apply_delta(uow.accounts, record, delta)

    async def link_external_identity(
        self,
        provider_id: str,
        username: str,
        *,
        avatar: str | None = None,
        handle: str | None = None,
    ) -> AccountRecord:
        """Return the account linked to ``provider_id``, creating one on first login."""
        if not isinstance(provider_id, str) or not provider_id.strip():
            raise InvalidRequest("Identity provider id is required")
        username = _clean_username(username)
        async with self._storage.unit_of_work() as uow:
            record = await uow.accounts.get_by_discord_id(provider_id, for_update=True)
            if record is not None:
                return record
            if await uow.accounts.get_by_username(username, for_update=True) is not None:
                username = f"{username}_{provider_id[-4:]}"
            record = await uow.accounts.add(
                AccountRecord(
                    username=username,
                    discord_id=provider_id,
                    discord_username=handle,
                    discord_avatar=avatar,
                )
            )
        logger.info("Linked external identity %s to new account %s", provider_id, record.id)
        return record


async def resolve_account_by_username(accounts: AccountRepository, username: str) -> AccountRecord:
    """Fetch or create an account inside an already open unit of work."""
    record = await accounts.get_by_username(username, for_update=True)
    if record is None:
        record = await accounts.add(AccountRecord(username=username))
        logger.info("Created account %s for %s", record.id, username)
    return record


async def _apply_delta(
    accounts: AccountRepository, record: AccountRecord, delta: int
) -> AccountRecord:
    previous = record.coins
    if previous + delta > MAX_COINS:
        raise InvalidRequest(f"Balance cannot exceed {MAX_COINS} coins")
    record.coins = max(0, previous + delta)
    updated = await accounts.update(record)
    logger.info(
        "Adjusted balance of %s by %s (%s -> %s)", record.id, delta, previous, updated.coins
    )
    return updated


def _require_int(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRequest("Amount must be an integer")
    if abs(value) > MAX_COINS:
        raise InvalidRequest(f"Amount must be within {MAX_COINS} coins")
    return value


def _clean_username(username: object) -> str:
    if not isinstance(username, str) or not username.strip():
        raise InvalidRequest("Username is required")
    return username.strip()
