"""Pytest fixtures for coinshop."""

from __future__ import annotations

import pytest

from ..app import ShopApp
from ..config import AdminConfig, PurchaseConfig, ShopConfig


@pytest.fixture()
def memory_app() -> ShopApp:
    return app_fixture()


def app_fixture(**kwargs) -> ShopApp:
    """Helper for ad-hoc tests where pytest is not available.

    Retries back off for zero seconds so contention tests stay fast.
    """
    kwargs.setdefault("purchase", PurchaseConfig(backoff_base=0.0, backoff_max=0.0))
    kwargs.setdefault("admin", AdminConfig(api_secret="test-secret"))
    return ShopApp(ShopConfig(**kwargs))
