"""Top level application object for coinshop."""

from __future__ import annotations

from typing import Any

from .admin.service import AdminService
from .config import ShopConfig
from .domain.catalog import CatalogService
from .domain.engine import PurchaseEngine
from .domain.events import EventBus
from .domain.ledger import AccountService
from .domain.login_codes import LoginCodeService
from .domain.purchases import PurchaseService
from .storage.base import AuditStore, ShopStorage
from .storage.memory import InMemoryAuditStore, InMemoryStorage
from .storage.sqlalchemy import AsyncSQLAlchemyStorage


class ShopApp:
    """Central dependency container used by the gateway, the CLI and tests."""

    def __init__(
        self,
        config: ShopConfig,
        *,
        storage: ShopStorage | None = None,
        audit_store: AuditStore | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.config = config
        self.event_bus = event_bus or EventBus()

        self._sqlalchemy_storage: AsyncSQLAlchemyStorage | None = None
        self.storage, self.audit_store = self._wire_storage(storage, audit_store)

        self.accounts = AccountService(self.storage)
        self.catalog = CatalogService(self.storage, categories=self.config.categories)
        self.purchases = PurchaseService(self.storage, self.event_bus)
        self.engine = PurchaseEngine(self.storage, self.config.purchase, self.event_bus)
        self.login_codes = LoginCodeService(
            self.storage, self.config.login_codes, self.event_bus
        )
        self.admin = AdminService(
            self.accounts,
            self.audit_store,
            self.event_bus,
            enable_audit_logs=self.config.admin.enable_audit_logs,
        )

    def _wire_storage(
        self,
        storage: ShopStorage | None,
        audit_store: AuditStore | None,
    ) -> tuple[ShopStorage, AuditStore]:
        if storage and audit_store:
            return storage, audit_store

        backend = self.config.storage.backend
        if backend == "memory":
            return storage or InMemoryStorage(), audit_store or InMemoryAuditStore()
        if backend == "sqlalchemy":
            dsn = self.config.storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            sql_storage = AsyncSQLAlchemyStorage(dsn, echo=self.config.storage.echo_sql)
            self._sqlalchemy_storage = sql_storage
            return storage or sql_storage, audit_store or sql_storage.audit_store()
        raise ValueError(f"Unsupported storage backend {backend}")

    def snapshot(self) -> dict[str, Any]:
        """Export current configuration for debugging."""
        return {
            "storage": self.config.storage.backend,
            "categories": list(self.config.categories),
            "purchase_max_attempts": self.config.purchase.max_attempts,
            "login_code_ttl": self.config.login_codes.ttl_seconds,
            "audit_logs": self.config.admin.enable_audit_logs,
        }

    async def init_backend(self) -> None:
        """Initialize storage backend resources (e.g., database tables)."""
        await self.storage.init_models()

    async def close(self) -> None:
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.dispose()
