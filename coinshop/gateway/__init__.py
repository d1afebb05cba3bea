"""Request handlers consumed by the web transport and the game server."""

from .api_utils import Response, Session, safe_call
from .handlers import ShopHandlers

__all__ = ["Response", "Session", "ShopHandlers", "safe_call"]
