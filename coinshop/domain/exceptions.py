"""Exceptions raised by coinshop domain services.

Every error carries a stable ``code`` and a ``default_message`` that is safe to
show to a shopper. Storage errors never expose driver detail through
``message``; the original exception stays chained as ``__cause__``.
"""


class ShopError(RuntimeError):
    """Base class for domain exceptions."""

    code = "shop_error"
    status_code = 400
    default_message = "The request could not be completed."
    retriable = False

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_message)
        self.detail = detail

    @property
    def message(self) -> str:
        return self.default_message


class InvalidRequest(ShopError):
    code = "invalid_request"
    default_message = "Invalid request data."

    @property
    def message(self) -> str:
        return self.detail or self.default_message


class NotAuthenticated(ShopError):
    code = "not_authenticated"
    status_code = 401
    default_message = "You must be logged in."


class PermissionDenied(ShopError):
    code = "permission_denied"
    status_code = 403
    default_message = "You are not allowed to do that."


class AccountNotFound(ShopError):
    code = "account_not_found"
    status_code = 404
    default_message = "Account not found."


class ProductNotFound(ShopError):
    code = "product_not_found"
    status_code = 404
    default_message = "Product not found."


class ProductUnavailable(ShopError):
    """Raised for a product flagged unavailable or with exhausted stock."""

    code = "product_unavailable"
    status_code = 409
    default_message = "This product is not available."


class InsufficientFunds(ShopError):
    code = "insufficient_funds"
    status_code = 402
    default_message = "You do not have enough coins."

    def __init__(self, balance: int, price: int) -> None:
        super().__init__(f"Balance {balance} is below price {price}")
        self.balance = balance
        self.price = price


class PurchaseNotFound(ShopError):
    code = "purchase_not_found"
    status_code = 404
    default_message = "Purchase not found."


class InvalidStatusTransition(ShopError):
    code = "invalid_status_transition"
    status_code = 409
    default_message = "The purchase status cannot be changed."

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move purchase from {current} to {requested}")
        self.current = current
        self.requested = requested


class LoginCodeInvalid(ShopError):
    code = "login_code_invalid"
    status_code = 401
    default_message = "The login code is incorrect."


class LoginCodeUsed(ShopError):
    code = "login_code_used"
    status_code = 401
    default_message = "The login code has already been used."


class LoginCodeExpired(ShopError):
    code = "login_code_expired"
    status_code = 401
    default_message = "The login code has expired."


class StorageContention(ShopError):
    """Raised when the store could not obtain its locks in time. Safe to retry."""

    code = "storage_contention"
    status_code = 503
    default_message = "The store is busy, please try again."
    retriable = True


class StorageFailure(ShopError):
    """Raised for non-retriable storage errors."""

    code = "storage_failure"
    status_code = 500
    default_message = "Something went wrong, please try again later."
