"""Storage backends for coinshop."""

from .base import (
    AccountRecord,
    AuditStore,
    LoginCodeRecord,
    ProductRecord,
    PurchaseRecord,
    ShopStorage,
    UnitOfWork,
)
from .memory import InMemoryAuditStore, InMemoryStorage
from .sqlalchemy import AsyncSQLAlchemyStorage

__all__ = [
    "AccountRecord",
    "AuditStore",
    "LoginCodeRecord",
    "ProductRecord",
    "PurchaseRecord",
    "ShopStorage",
    "UnitOfWork",
    "InMemoryAuditStore",
    "InMemoryStorage",
    "AsyncSQLAlchemyStorage",
]
