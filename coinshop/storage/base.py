"""Storage abstractions used by the coinshop services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncContextManager, Protocol, Sequence
from uuid import uuid4

# Largest balance or price the relational backends can store (signed 64-bit).
MAX_COINS = 2**63 - 1


def new_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class AccountRecord:
    username: str
    id: str = field(default_factory=new_id)
    coins: int = 0
    is_admin: bool = False
    discord_id: str | None = None
    discord_username: str | None = None
    discord_avatar: str | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class ProductRecord:
    name: str
    name_en: str
    category: str
    price: int
    description: str = ""
    image: str = ""
    id: str = field(default_factory=new_id)
    in_stock: bool = True
    stock: int | None = None
    is_new: bool = False
    is_featured: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def derive_availability(self) -> None:
        """Finite stock owns the availability flag."""
        if self.stock is not None:
            self.in_stock = self.stock > 0


@dataclass(slots=True)
class PurchaseRecord:
    account_id: str
    product_id: str
    price: int
    status: str = "pending"
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class LoginCodeRecord:
    code: str
    username: str
    expires_at: datetime
    used: bool = False
    account_id: str | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


class AccountRepository(Protocol):
    async def get(self, account_id: str, *, for_update: bool = False) -> AccountRecord | None:
        ...

    async def get_by_username(
        self, username: str, *, for_update: bool = False
    ) -> AccountRecord | None:
        ...

    async def get_by_discord_id(
        self, discord_id: str, *, for_update: bool = False
    ) -> AccountRecord | None:
        ...

    async def add(self, record: AccountRecord) -> AccountRecord:
        ...

    async def update(self, record: AccountRecord) -> AccountRecord:
        ...

    async def list(self) -> Sequence[AccountRecord]:
        ...


class ProductRepository(Protocol):
    async def get(self, product_id: str, *, for_update: bool = False) -> ProductRecord | None:
        ...

    async def add(self, record: ProductRecord) -> ProductRecord:
        ...

    async def update(self, record: ProductRecord) -> ProductRecord:
        ...

    async def list(self, category: str | None = None) -> Sequence[ProductRecord]:
        ...

    async def count(self) -> int:
        ...


class PurchaseRepository(Protocol):
    async def get(self, purchase_id: str, *, for_update: bool = False) -> PurchaseRecord | None:
        ...

    async def add(self, record: PurchaseRecord) -> PurchaseRecord:
        ...

    async def update(self, record: PurchaseRecord) -> PurchaseRecord:
        ...

    async def list_for_account(self, account_id: str) -> Sequence[PurchaseRecord]:
        ...


class LoginCodeRepository(Protocol):
    async def get_by_code(self, code: str, *, for_update: bool = False) -> LoginCodeRecord | None:
        ...

    async def add(self, record: LoginCodeRecord) -> LoginCodeRecord:
        ...

    async def update(self, record: LoginCodeRecord) -> LoginCodeRecord:
        ...


class UnitOfWork(Protocol):
    """Repositories bound to one atomic transaction.

    Rows read with ``for_update=True`` stay locked against other units of work
    until this one commits or rolls back. Leaving the context normally commits;
    leaving it with an exception rolls every write back.
    """

    accounts: AccountRepository
    products: ProductRepository
    purchases: PurchaseRepository
    login_codes: LoginCodeRepository


class ShopStorage(Protocol):
    def unit_of_work(self, *, read_only: bool = False) -> AsyncContextManager[UnitOfWork]:
        """Open a transaction; ``read_only`` units may not lock or write rows."""
        ...

    async def init_models(self) -> None:
        ...


class AuditStore(Protocol):
    async def add_entry(self, action: str, payload: dict) -> None:
        ...

    async def recent(self, limit: int = 50) -> Sequence[tuple[datetime, str, dict]]:
        ...
