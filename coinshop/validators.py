"""Validation utilities for coinshop deployments."""

from __future__ import annotations

from .app import ShopApp
from .loaders import DEFAULT_CATALOG, validate_catalog_dict


def validate_config(app: ShopApp) -> list[str]:
    """Return configuration problems that would break purchases or logins."""
    errors: list[str] = []
    config = app.config

    if not config.categories:
        errors.append("No product categories configured.")
    if len(set(config.categories)) != len(tuple(config.categories)):
        errors.append("Product categories contain duplicates.")

    purchase = config.purchase
    if purchase.max_attempts < 1:
        errors.append("Purchase configuration 'max_attempts' must be at least 1.")
    if purchase.backoff_base < 0 or purchase.backoff_max < 0:
        errors.append("Purchase backoff values cannot be negative.")
    if purchase.backoff_max < purchase.backoff_base:
        errors.append("Purchase configuration 'backoff_max' is below 'backoff_base'.")

    if config.login_codes.ttl_seconds <= 0:
        errors.append("Login code TTL must be positive.")

    for problem in validate_catalog_dict(DEFAULT_CATALOG, categories=config.categories):
        errors.append(f"Built-in seed catalog: {problem}")

    if not config.admin.api_secret:
        errors.append("No admin API secret configured; game server endpoints will reject every call.")

    return errors


async def validate_store(app: ShopApp) -> list[str]:
    """Return invariant violations found in the persisted catalog and ledger."""
    errors = validate_config(app)
    categories = set(app.config.categories)

    products = await app.catalog.list_products()
    product_ids = set()
    for product in products:
        product_ids.add(product.id)
        label = product.name_en or product.id
        if product.category not in categories:
            errors.append(f"Product '{label}' uses unknown category '{product.category}'.")
        if product.price <= 0:
            errors.append(f"Product '{label}' has non-positive price {product.price}.")
        if product.stock is not None:
            if product.stock < 0:
                errors.append(f"Product '{label}' has negative stock {product.stock}.")
            elif product.in_stock != (product.stock > 0):
                errors.append(f"Product '{label}' availability flag disagrees with stock {product.stock}.")

    for account in await app.accounts.list_accounts():
        if account.coins < 0:
            errors.append(f"Account '{account.username}' has negative balance {account.coins}.")
        for view in await app.purchases.list_for_account(account.id):
            if view.purchase.product_id not in product_ids:
                errors.append(
                    f"Purchase {view.purchase.id} references missing product {view.purchase.product_id}."
                )

    return errors


__all__ = ["validate_config", "validate_store"]
