"""One-time login codes minted by the game server."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

from .events import EventBus
from .exceptions import InvalidRequest, LoginCodeExpired, LoginCodeInvalid, LoginCodeUsed
from .ledger import resolve_account_by_username
from ..config import LoginCodeConfig
from ..storage.base import AccountRecord, LoginCodeRecord, ShopStorage

logger = logging.getLogger(__name__)

_MAX_ISSUE_ATTEMPTS = 5


class LoginCodeService:
    def __init__(
        self,
        storage: ShopStorage,
        config: LoginCodeConfig,
        event_bus: EventBus,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._storage = storage
        self._config = config
        self._events = event_bus
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def issue(self, username: str) -> LoginCodeRecord:
        """Mint a fresh code for ``username`` valid for the configured TTL."""
        if not isinstance(username, str) or not username.strip():
            raise InvalidRequest("Username is required")
        username = username.strip()
        now = self._clock()
        expires_at = now + timedelta(seconds=self._config.ttl_seconds)
        async with self._storage.unit_of_work() as uow:
            for _ in range(_MAX_ISSUE_ATTEMPTS):
                code = secrets.token_hex(4).upper()
                if await uow.login_codes.get_by_code(code, for_update=True) is None:
                    break
            else:
                raise RuntimeError("Could not generate a unique login code")
            record = await uow.login_codes.add(
                LoginCodeRecord(code=code, username=username, created_at=now, expires_at=expires_at)
            )
        logger.info("Issued login code for %s (expires %s)", username, expires_at.isoformat())
        return record

    async def redeem(self, code: str) -> AccountRecord:
        """Consume ``code`` and return the account it logs into.

        The code row stays locked until the account is resolved and the code is
        marked used, so concurrent redemptions of one code admit exactly one.
        """
        if not isinstance(code, str) or not code.strip():
            raise InvalidRequest("Login code is required")
        now = self._clock()
        async with self._storage.unit_of_work() as uow:
            record = await uow.login_codes.get_by_code(code.strip(), for_update=True)
            if record is None:
                raise LoginCodeInvalid()
            if record.used:
                raise LoginCodeUsed()
            if _as_utc(record.expires_at) < now:
                raise LoginCodeExpired()
            account = await resolve_account_by_username(uow.accounts, record.username)
            record.used = True
            record.account_id = account.id
            await uow.login_codes.update(record)
        logger.info("Login code redeemed by account %s", account.id)
        await self._events.publish(
            "auth.code.redeemed", {"account_id": account.id, "username": account.username}
        )
        return account


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
