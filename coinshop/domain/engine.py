"""Purchase transaction engine.

A purchase debits the buyer, consumes one unit of finite stock and records a
pending purchase. The three writes share one unit of work: the account row and
then the product row are locked before any check runs, so two attempts against
the same account or the same product are applied one after the other and the
second one sees the first one's effects. Any rejection or storage error leaves
no trace.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from .events import EventBus
from .exceptions import (
    AccountNotFound,
    InsufficientFunds,
    InvalidRequest,
    ProductNotFound,
    ProductUnavailable,
    ShopError,
    StorageContention,
    StorageFailure,
)
from .models import PurchaseStatus
from ..config import PurchaseConfig
from ..storage.base import AccountRecord, PurchaseRecord, ShopStorage, UnitOfWork

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PurchaseResult:
    account: AccountRecord
    purchase: PurchaseRecord


class PurchaseEngine:
    """Admit or reject purchase attempts and apply admitted ones atomically."""

    def __init__(
        self,
        storage: ShopStorage,
        config: PurchaseConfig,
        event_bus: EventBus,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._storage = storage
        self._config = config
        self._events = event_bus
        self._sleep = sleep

    async def execute_purchase(self, account_id: str, product_id: str) -> PurchaseResult:
        _require_identifier(account_id, "account")
        _require_identifier(product_id, "product")

        attempt = 0
        while True:
            attempt += 1
            try:
                result = await self._attempt(account_id, product_id)
                break
            except StorageContention as exc:
                if attempt >= self._config.max_attempts:
                    logger.warning(
                        "Purchase of %s by %s gave up after %s contended attempts.",
                        product_id,
                        account_id,
                        attempt,
                    )
                    raise StorageFailure("Retry budget exhausted") from exc
                delay = self._config.backoff(attempt)
                logger.warning(
                    "Purchase of %s by %s hit contention; retrying in %.2f s (attempt %s/%s).",
                    product_id,
                    account_id,
                    delay,
                    attempt,
                    self._config.max_attempts,
                )
                await self._sleep(delay)
            except StorageFailure:
                logger.error("Purchase of %s by %s failed in storage.", product_id, account_id)
                raise
            except ShopError as exc:
                logger.info(
                    "Purchase of %s by %s rejected: %s", product_id, account_id, exc.code
                )
                raise

        logger.info(
            "Purchase %s: %s bought %s for %s coins (balance now %s).",
            result.purchase.id,
            account_id,
            product_id,
            result.purchase.price,
            result.account.coins,
        )
        await self._events.publish(
            "purchase.completed",
            {
                "purchase_id": result.purchase.id,
                "account_id": account_id,
                "product_id": product_id,
                "price": result.purchase.price,
            },
        )
        return result

    async def _attempt(self, account_id: str, product_id: str) -> PurchaseResult:
        async with self._storage.unit_of_work() as uow:
            account = await uow.accounts.get(account_id, for_update=True)
            if account is None:
                raise AccountNotFound(f"Account {account_id} not found")
            product = await uow.products.get(product_id, for_update=True)
            if product is None:
                raise ProductNotFound(f"Product {product_id} not found")
            if not product.in_stock:
                raise ProductUnavailable(f"Product {product_id} is flagged unavailable")
            if account.coins < product.price:
                raise InsufficientFunds(account.coins, product.price)
            if product.stock is not None and product.stock <= 0:
                raise ProductUnavailable(f"Product {product_id} is out of stock")
            return await self._apply(uow, account, product)

    async def _apply(self, uow: UnitOfWork, account, product) -> PurchaseResult:
        price = product.price
        account.coins -= price
        account = await uow.accounts.update(account)
        if product.stock is not None:
            product.stock -= 1
            await uow.products.update(product)
        purchase = await uow.purchases.add(
            PurchaseRecord(
                account_id=account.id,
                product_id=product.id,
                price=price,
                status=PurchaseStatus.PENDING.value,
            )
        )
        return PurchaseResult(account=account, purchase=purchase)


def _require_identifier(value: object, kind: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest(f"A valid {kind} id is required")
