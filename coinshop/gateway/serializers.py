"""JSON shapes returned to the storefront client."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..domain.purchases import PurchaseView
from ..storage.base import AccountRecord, LoginCodeRecord, ProductRecord, PurchaseRecord


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def account_to_dict(account: AccountRecord) -> dict[str, Any]:
    return {
        "id": account.id,
        "username": account.username,
        "coins": account.coins,
        "isAdmin": account.is_admin,
        "discordId": account.discord_id,
        "discordUsername": account.discord_username,
        "discordAvatar": account.discord_avatar,
        "createdAt": _ts(account.created_at),
    }


def product_to_dict(product: ProductRecord) -> dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "nameEn": product.name_en,
        "description": product.description,
        "category": product.category,
        "price": product.price,
        "image": product.image,
        "inStock": product.in_stock,
        "stock": product.stock,
        "isNew": product.is_new,
        "isFeatured": product.is_featured,
        "createdAt": _ts(product.created_at),
    }


def purchase_to_dict(purchase: PurchaseRecord) -> dict[str, Any]:
    return {
        "id": purchase.id,
        "userId": purchase.account_id,
        "productId": purchase.product_id,
        "price": purchase.price,
        "status": purchase.status,
        "createdAt": _ts(purchase.created_at),
    }


def purchase_view_to_dict(view: PurchaseView) -> dict[str, Any]:
    data = purchase_to_dict(view.purchase)
    data["product"] = {
        "name": view.product_name,
        "image": view.product_image,
        "category": view.product_category,
    }
    return data


def login_code_to_dict(code: LoginCodeRecord) -> dict[str, Any]:
    return {"code": code.code, "expiresAt": _ts(code.expires_at)}
