"""Testing utilities for coinshop."""

from .factory import AccountFactory, ProductFactory
from .fixtures import app_fixture, memory_app

__all__ = [
    "AccountFactory",
    "ProductFactory",
    "app_fixture",
    "memory_app",
]
