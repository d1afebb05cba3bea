import pytest

from coinshop import ShopApp
from coinshop.config import DEFAULT_CATEGORIES, PurchaseConfig, ShopConfig


def test_from_env_defaults(monkeypatch):
    for key in (
        "COINSHOP_STORAGE_BACKEND",
        "COINSHOP_STORAGE_DSN",
        "COINSHOP_ADMIN_SECRET",
        "COINSHOP_CATEGORIES",
        "COINSHOP_PURCHASE_MAX_ATTEMPTS",
    ):
        monkeypatch.delenv(key, raising=False)
    config = ShopConfig.from_env()
    assert config.storage.backend == "memory"
    assert config.admin.api_secret is None
    assert tuple(config.categories) == DEFAULT_CATEGORIES
    assert config.purchase.max_attempts == 3
    assert config.login_codes.ttl_seconds == 600


def test_from_env_overrides(monkeypatch):
    monkeypatch.setenv("COINSHOP_STORAGE_BACKEND", "sqlalchemy")
    monkeypatch.setenv("COINSHOP_STORAGE_DSN", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("COINSHOP_ADMIN_SECRET", "hunter2")
    monkeypatch.setenv("COINSHOP_PURCHASE_MAX_ATTEMPTS", "7")
    monkeypatch.setenv("COINSHOP_CATEGORIES", "vehicles, skins ,")
    monkeypatch.setenv("COINSHOP_ADMIN_ENABLE_AUDIT_LOGS", "no")
    config = ShopConfig.from_env()
    assert config.storage.resolve_dsn() == "sqlite+aiosqlite:///:memory:"
    assert config.admin.api_secret == "hunter2"
    assert config.purchase.max_attempts == 7
    assert config.categories == ("vehicles", "skins")
    assert config.admin.enable_audit_logs is False


def test_from_env_rejects_unknown_backend(monkeypatch):
    monkeypatch.setenv("COINSHOP_STORAGE_BACKEND", "redis")
    with pytest.raises(ValueError):
        ShopConfig.from_env()


def test_from_env_rejects_zero_attempts(monkeypatch):
    monkeypatch.delenv("COINSHOP_STORAGE_BACKEND", raising=False)
    monkeypatch.setenv("COINSHOP_PURCHASE_MAX_ATTEMPTS", "0")
    with pytest.raises(ValueError):
        ShopConfig.from_env()


def test_backoff_is_capped():
    config = PurchaseConfig(backoff_base=0.1, backoff_max=0.3)
    assert [config.backoff(attempt) for attempt in (1, 2, 3, 4)] == [0.1, 0.2, 0.3, 0.3]


def test_sqlalchemy_backend_gets_default_dsn():
    config = ShopConfig()
    config.storage.backend = "sqlalchemy"
    assert config.storage.resolve_dsn() == "sqlite+aiosqlite:///./coinshop.db"


def test_snapshot():
    snapshot = ShopApp(ShopConfig()).snapshot()
    assert snapshot["storage"] == "memory"
    assert snapshot["purchase_max_attempts"] == 3
