"""Administrative operations for coinshop."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence

from ..domain.events import EventBus
from ..domain.exceptions import AccountNotFound, PermissionDenied
from ..domain.ledger import AccountService
from ..storage.base import AccountRecord, AuditStore

logger = logging.getLogger(__name__)


class AdminService:
    """Privileged overrides. Every change is audited and published as an event."""

    def __init__(
        self,
        accounts: AccountService,
        audit_store: AuditStore,
        event_bus: EventBus,
        *,
        enable_audit_logs: bool = True,
    ) -> None:
        self._accounts = accounts
        self._audit_store = audit_store
        self._events = event_bus
        self._enable_audit_logs = enable_audit_logs

    async def require_admin(self, actor_id: str | None) -> AccountRecord:
        if not actor_id:
            raise PermissionDenied("No actor")
        try:
            actor = await self._accounts.get_account(actor_id)
        except AccountNotFound as exc:
            raise PermissionDenied(f"Unknown actor {actor_id}") from exc
        if not actor.is_admin:
            raise PermissionDenied(f"Account {actor_id} is not an administrator")
        return actor

    async def list_accounts(self, actor_id: str) -> Sequence[AccountRecord]:
        await self.require_admin(actor_id)
        return await self._accounts.list_accounts()

    async def adjust_coins(self, actor_id: str, target_id: str, amount: int) -> AccountRecord:
        """Grant (positive) or deduct (negative) coins; the balance never drops below zero."""
        await self.require_admin(actor_id)
        account = await self._accounts.adjust_balance(target_id, amount)
        await self._record(
            "adjust_coins",
            {"actor_id": actor_id, "account_id": target_id, "amount": amount, "balance": account.coins},
        )
        return account

    async def adjust_coins_by_discord_id(self, discord_id: str, amount: int) -> AccountRecord:
        """Balance change requested by the trusted game bot."""
        account = await self._accounts.adjust_balance_by_external_id(discord_id, amount)
        await self._record(
            "bot_adjust_coins",
            {"discord_id": discord_id, "account_id": account.id, "amount": amount, "balance": account.coins},
        )
        return account

    async def set_admin(self, target_id: str, is_admin: bool = True) -> AccountRecord:
        account = await self._accounts.set_admin(target_id, is_admin)
        await self._record("set_admin", {"account_id": target_id, "is_admin": is_admin})
        return account

    async def _record(self, action: str, payload: dict) -> None:
        logger.info("Admin action %s: %s", action, payload)
        if self._enable_audit_logs:
            try:
                await self._audit_store.add_entry(
                    action,
                    {
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                        **payload,
                    },
                )
            except Exception:
                # The balance change has already committed.
                logger.exception("Could not write audit entry for %s", action)
        await self._events.publish(f"admin.{action}", payload)
