"""Purchase history and fulfillment lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .events import EventBus
from .exceptions import InvalidRequest, InvalidStatusTransition, PurchaseNotFound
from .models import PurchaseStatus
from ..storage.base import PurchaseRecord, ShopStorage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PurchaseView:
    """A purchase joined with the product summary shown in history screens."""

    purchase: PurchaseRecord
    product_name: str | None
    product_image: str | None
    product_category: str | None


class PurchaseService:
    """List purchases and move them through ``pending -> delivered | cancelled``."""

    def __init__(self, storage: ShopStorage, event_bus: EventBus) -> None:
        self._storage = storage
        self._events = event_bus

    async def get_purchase(self, purchase_id: str) -> PurchaseRecord:
        async with self._storage.unit_of_work(read_only=True) as uow:
            record = await uow.purchases.get(purchase_id)
        if record is None:
            raise PurchaseNotFound(f"Purchase {purchase_id} not found")
        return record

    async def list_for_account(self, account_id: str) -> Sequence[PurchaseView]:
        async with self._storage.unit_of_work(read_only=True) as uow:
            purchases = await uow.purchases.list_for_account(account_id)
            views = []
            products = {}
            for purchase in purchases:
                if purchase.product_id not in products:
                    products[purchase.product_id] = await uow.products.get(purchase.product_id)
                product = products[purchase.product_id]
                views.append(
                    PurchaseView(
                        purchase=purchase,
                        product_name=product.name if product else None,
                        product_image=product.image if product else None,
                        product_category=product.category if product else None,
                    )
                )
        return views

    async def pending_for_username(self, username: str) -> Sequence[PurchaseView]:
        """Pending purchases the game server still has to hand out."""
        async with self._storage.unit_of_work(read_only=True) as uow:
            account = await uow.accounts.get_by_username(username)
        if account is None:
            return []
        views = await self.list_for_account(account.id)
        return [view for view in views if view.purchase.status == PurchaseStatus.PENDING.value]

    async def update_status(self, purchase_id: str, status: str | PurchaseStatus) -> PurchaseRecord:
        """Apply a status change; re-applying the current status is a no-op."""
        target = _parse_status(status)
        async with self._storage.unit_of_work() as uow:
            record = await uow.purchases.get(purchase_id, for_update=True)
            if record is None:
                raise PurchaseNotFound(f"Purchase {purchase_id} not found")
            current = PurchaseStatus(record.status)
            if current is target:
                return record
            if not current.can_become(target):
                raise InvalidStatusTransition(current.value, target.value)
            record.status = target.value
            record = await uow.purchases.update(record)
        logger.info("Purchase %s moved from %s to %s", purchase_id, current.value, target.value)
        await self._events.publish(
            "purchase.status.changed",
            {"purchase_id": purchase_id, "from": current.value, "to": target.value},
        )
        return record

    async def mark_delivered(self, purchase_id: str) -> PurchaseRecord:
        return await self.update_status(purchase_id, PurchaseStatus.DELIVERED)

    async def cancel(self, purchase_id: str) -> PurchaseRecord:
        return await self.update_status(purchase_id, PurchaseStatus.CANCELLED)


def _parse_status(status: str | PurchaseStatus) -> PurchaseStatus:
    try:
        return PurchaseStatus(status)
    except ValueError as exc:
        raise InvalidRequest(f"Unknown purchase status '{status}'") from exc
