"""coinshop public API."""

from .app import ShopApp
from .config import ShopConfig

__all__ = [
    "ShopApp",
    "ShopConfig",
]
