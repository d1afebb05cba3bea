"""In-memory storage backend for coinshop."""

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Deque, Sequence, TypeVar

from ..domain.exceptions import StorageFailure
from .base import (
    MAX_COINS,
    AccountRecord,
    AccountRepository,
    AuditStore,
    LoginCodeRecord,
    LoginCodeRepository,
    ProductRecord,
    ProductRepository,
    PurchaseRecord,
    PurchaseRepository,
    ShopStorage,
)

R = TypeVar("R", AccountRecord, ProductRecord, PurchaseRecord, LoginCodeRecord)


class InMemoryStorage(ShopStorage):
    """Dict-backed tables guarded by a single writer lock.

    A unit of work takes the lock on its first locking read or first write and
    keeps it until it finishes, so read-modify-write sequences are serialized.
    Writes are staged and copied into the tables in one synchronous step on
    commit; readers outside the lock never observe half of a transaction.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, AccountRecord] = {}
        self.products: dict[str, ProductRecord] = {}
        self.purchases: dict[str, PurchaseRecord] = {}
        self.login_codes: dict[str, LoginCodeRecord] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def unit_of_work(self, *, read_only: bool = False) -> AsyncIterator["InMemoryUnitOfWork"]:
        uow = InMemoryUnitOfWork(self, read_only=read_only)
        try:
            yield uow
            uow.commit()
        finally:
            uow.release()

    async def init_models(self) -> None:
        return None

    async def _acquire(self) -> None:
        await self._lock.acquire()

    def _release(self) -> None:
        self._lock.release()


class InMemoryUnitOfWork:
    def __init__(self, storage: InMemoryStorage, *, read_only: bool = False) -> None:
        self._storage = storage
        self._read_only = read_only
        self._holds_lock = False
        self._staged: dict[tuple[int, str], tuple[dict, object]] = {}
        self.accounts = InMemoryAccountRepository(self, storage.accounts)
        self.products = InMemoryProductRepository(self, storage.products)
        self.purchases = InMemoryPurchaseRepository(self, storage.purchases)
        self.login_codes = InMemoryLoginCodeRepository(self, storage.login_codes)

    async def lock(self) -> None:
        if self._read_only:
            raise StorageFailure("Read-only unit of work cannot lock or write rows")
        if not self._holds_lock:
            await self._storage._acquire()
            self._holds_lock = True

    def stage(self, table: dict, record: R) -> R:
        self._staged[(id(table), record.id)] = (table, replace(record))
        return replace(record)

    def read(self, table: dict, key: str) -> object | None:
        staged = self._staged.get((id(table), key))
        if staged is not None:
            return replace(staged[1])
        record = table.get(key)
        return replace(record) if record is not None else None

    def rows(self, table: dict) -> list:
        merged = dict(table)
        for (table_id, key), (_, record) in self._staged.items():
            if table_id == id(table):
                merged[key] = record
        return [replace(record) for record in merged.values()]

    def commit(self) -> None:
        for table, record in self._staged.values():
            table[record.id] = record
        self._staged.clear()

    def release(self) -> None:
        self._staged.clear()
        if self._holds_lock:
            self._holds_lock = False
            self._storage._release()


class _InMemoryRepository:
    def __init__(self, uow: InMemoryUnitOfWork, table: dict) -> None:
        self._uow = uow
        self._table = table

    async def _get(self, key: str, for_update: bool):
        # Yield like a network round trip would, so concurrent units of work interleave.
        await asyncio.sleep(0)
        if for_update:
            await self._uow.lock()
        return self._uow.read(self._table, key)

    async def _find(self, predicate: Callable[[object], bool], for_update: bool):
        await asyncio.sleep(0)
        if for_update:
            await self._uow.lock()
        for record in self._uow.rows(self._table):
            if predicate(record):
                return record
        return None

    async def _write(self, record):
        await self._uow.lock()
        return self._uow.stage(self._table, record)

    def _ensure_unique(self, record, attr: str) -> None:
        value = getattr(record, attr)
        if value is None:
            return
        for other in self._uow.rows(self._table):
            if other.id != record.id and getattr(other, attr) == value:
                raise StorageFailure(f"Duplicate {attr} {value!r}")


class InMemoryAccountRepository(_InMemoryRepository, AccountRepository):
    async def get(self, account_id: str, *, for_update: bool = False) -> AccountRecord | None:
        return await self._get(account_id, for_update)

    async def get_by_username(
        self, username: str, *, for_update: bool = False
    ) -> AccountRecord | None:
        return await self._find(lambda rec: rec.username == username, for_update)

    async def get_by_discord_id(
        self, discord_id: str, *, for_update: bool = False
    ) -> AccountRecord | None:
        return await self._find(lambda rec: rec.discord_id == discord_id, for_update)

    async def add(self, record: AccountRecord) -> AccountRecord:
        await self._uow.lock()
        if not 0 <= record.coins <= MAX_COINS:
            raise StorageFailure("Account balance out of range")
        self._ensure_unique(record, "username")
        self._ensure_unique(record, "discord_id")
        return await self._write(record)

    async def update(self, record: AccountRecord) -> AccountRecord:
        if not 0 <= record.coins <= MAX_COINS:
            raise StorageFailure("Account balance out of range")
        return await self._write(record)

    async def list(self) -> Sequence[AccountRecord]:
        return sorted(self._uow.rows(self._table), key=lambda rec: rec.created_at)


class InMemoryProductRepository(_InMemoryRepository, ProductRepository):
    async def get(self, product_id: str, *, for_update: bool = False) -> ProductRecord | None:
        return await self._get(product_id, for_update)

    async def add(self, record: ProductRecord) -> ProductRecord:
        return await self.update(record)

    async def update(self, record: ProductRecord) -> ProductRecord:
        if record.stock is not None and record.stock < 0:
            raise StorageFailure("Product stock cannot be negative")
        if not 0 < record.price <= MAX_COINS:
            raise StorageFailure("Product price out of range")
        record.derive_availability()
        return await self._write(record)

    async def list(self, category: str | None = None) -> Sequence[ProductRecord]:
        rows = [
            rec for rec in self._uow.rows(self._table) if category is None or rec.category == category
        ]
        return sorted(rows, key=lambda rec: rec.created_at)

    async def count(self) -> int:
        return len(self._uow.rows(self._table))


class InMemoryPurchaseRepository(_InMemoryRepository, PurchaseRepository):
    async def get(self, purchase_id: str, *, for_update: bool = False) -> PurchaseRecord | None:
        return await self._get(purchase_id, for_update)

    async def add(self, record: PurchaseRecord) -> PurchaseRecord:
        return await self._write(record)

    async def update(self, record: PurchaseRecord) -> PurchaseRecord:
        return await self._write(record)

    async def list_for_account(self, account_id: str) -> Sequence[PurchaseRecord]:
        rows = [rec for rec in self._uow.rows(self._table) if rec.account_id == account_id]
        # Newest first; equal timestamps fall back to reverse insertion order.
        return sorted(rows, key=lambda rec: rec.created_at)[::-1]


class InMemoryLoginCodeRepository(_InMemoryRepository, LoginCodeRepository):
    async def get_by_code(self, code: str, *, for_update: bool = False) -> LoginCodeRecord | None:
        return await self._find(lambda rec: rec.code == code, for_update)

    async def add(self, record: LoginCodeRecord) -> LoginCodeRecord:
        await self._uow.lock()
        self._ensure_unique(record, "code")
        return await self._write(record)

    async def update(self, record: LoginCodeRecord) -> LoginCodeRecord:
        return await self._write(record)


class InMemoryAuditStore(AuditStore):
    def __init__(self, *, maxlen: int = 1000) -> None:
        self._entries: Deque[tuple[datetime, str, dict]] = deque(maxlen=maxlen)

    async def add_entry(self, action: str, payload: dict) -> None:
        self._entries.append((datetime.now(timezone.utc), action, payload))

    async def recent(self, limit: int = 50) -> Sequence[tuple[datetime, str, dict]]:
        return list(reversed(self._entries))[:limit]

    def dump(self) -> list[tuple[datetime, str, dict]]:
        return list(self._entries)
