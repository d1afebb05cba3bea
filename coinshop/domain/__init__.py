"""Domain models and services."""

from .exceptions import (
    AccountNotFound,
    InsufficientFunds,
    InvalidRequest,
    InvalidStatusTransition,
    LoginCodeExpired,
    LoginCodeInvalid,
    LoginCodeUsed,
    NotAuthenticated,
    PermissionDenied,
    ProductNotFound,
    ProductUnavailable,
    PurchaseNotFound,
    ShopError,
    StorageContention,
    StorageFailure,
)
from .models import ProductCategory, PurchaseStatus
from .events import EventBus
from .ledger import AccountService
from .catalog import CatalogService, ProductDefinition
from .purchases import PurchaseService, PurchaseView
from .engine import PurchaseEngine, PurchaseResult
from .login_codes import LoginCodeService

__all__ = [
    "AccountNotFound",
    "InsufficientFunds",
    "InvalidRequest",
    "InvalidStatusTransition",
    "LoginCodeExpired",
    "LoginCodeInvalid",
    "LoginCodeUsed",
    "NotAuthenticated",
    "PermissionDenied",
    "ProductNotFound",
    "ProductUnavailable",
    "PurchaseNotFound",
    "ShopError",
    "StorageContention",
    "StorageFailure",
    "ProductCategory",
    "PurchaseStatus",
    "EventBus",
    "AccountService",
    "CatalogService",
    "ProductDefinition",
    "PurchaseService",
    "PurchaseView",
    "PurchaseEngine",
    "PurchaseResult",
    "LoginCodeService",
]
