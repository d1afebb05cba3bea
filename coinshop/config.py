"""Configuration models for coinshop."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal, Sequence

StorageBackend = Literal["memory", "sqlalchemy"]

DEFAULT_CATEGORIES: tuple[str, ...] = ("vehicles", "features", "ownership")

_TRUTHY = {"1", "true", "yes"}


@dataclass(slots=True)
class StorageConfig:
    """Configure where accounts, products and purchases are persisted."""

    backend: StorageBackend = "memory"
    dsn: str | None = None
    echo_sql: bool = False

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./coinshop.db"
        return None


@dataclass(slots=True)
class PurchaseConfig:
    """Retry policy applied when the store reports lock contention."""

    max_attempts: int = 3
    backoff_base: float = 0.05
    backoff_max: float = 1.0

    def backoff(self, attempt: int) -> float:
        return min(self.backoff_max, self.backoff_base * (2 ** (attempt - 1)))


@dataclass(slots=True)
class LoginCodeConfig:
    ttl_seconds: int = 600


@dataclass(slots=True)
class AdminConfig:
    """Shared secret for the game server and bot endpoints, plus audit switch."""

    api_secret: str | None = None
    enable_audit_logs: bool = True


@dataclass(slots=True)
class ShopConfig:
    """Top-level configuration container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    purchase: PurchaseConfig = field(default_factory=PurchaseConfig)
    login_codes: LoginCodeConfig = field(default_factory=LoginCodeConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    categories: Sequence[str] = field(default_factory=lambda: DEFAULT_CATEGORIES)

    @classmethod
    def from_env(cls) -> "ShopConfig":
        """Create config from environment variables prefixed with COINSHOP_."""
        prefix = "COINSHOP_"
        storage = StorageConfig(
            backend=os.getenv(f"{prefix}STORAGE_BACKEND", "memory"),
            dsn=os.getenv(f"{prefix}STORAGE_DSN") or None,
            echo_sql=os.getenv(f"{prefix}STORAGE_ECHO_SQL", "false").lower() in _TRUTHY,
        )
        purchase = PurchaseConfig(
            max_attempts=int(os.getenv(f"{prefix}PURCHASE_MAX_ATTEMPTS", "3")),
            backoff_base=float(os.getenv(f"{prefix}PURCHASE_BACKOFF_BASE", "0.05")),
            backoff_max=float(os.getenv(f"{prefix}PURCHASE_BACKOFF_MAX", "1.0")),
        )
        login_codes = LoginCodeConfig(
            ttl_seconds=int(os.getenv(f"{prefix}LOGIN_CODE_TTL", "600")),
        )
        admin = AdminConfig(
            api_secret=os.getenv(f"{prefix}ADMIN_SECRET") or None,
            enable_audit_logs=os.getenv(f"{prefix}ADMIN_ENABLE_AUDIT_LOGS", "true").lower()
            in _TRUTHY,
        )
        categories = tuple(
            category.strip()
            for category in os.getenv(f"{prefix}CATEGORIES", ",".join(DEFAULT_CATEGORIES)).split(",")
            if category.strip()
        )
        if storage.backend not in ("memory", "sqlalchemy"):
            raise ValueError(f"Unsupported storage backend {storage.backend}")
        if purchase.max_attempts < 1:
            raise ValueError(f"{prefix}PURCHASE_MAX_ATTEMPTS must be at least 1")
        return cls(
            storage=storage,
            purchase=purchase,
            login_codes=login_codes,
            admin=admin,
            categories=categories,
        )
