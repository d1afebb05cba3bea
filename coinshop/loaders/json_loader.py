"""Load product catalogs from JSON definitions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Sequence, TYPE_CHECKING

from ..domain.catalog import ProductDefinition
from ..storage.base import MAX_COINS

if TYPE_CHECKING:
    from ..app import ShopApp


async def seed_catalog_from_json(app: "ShopApp", path: str | Path) -> int:
    """Validate a JSON catalog file and seed it into an empty store."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    definitions = parse_catalog_dict(data, categories=app.catalog.categories)
    return await app.catalog.seed(definitions)


def parse_catalog_dict(
    data: dict[str, Any], *, categories: Iterable[str]
) -> Sequence[ProductDefinition]:
    """Parse a JSON dict (already decoded) into product definitions."""
    errors = validate_catalog_dict(data, categories=categories)
    if errors:
        raise ValueError(_format_errors("Catalog validation failed", errors))
    return tuple(parse_product(entry) for entry in data["products"])


def parse_product(entry: dict[str, Any]) -> ProductDefinition:
    stock = entry.get("stock")
    return ProductDefinition(
        name=entry["name"],
        name_en=entry.get("nameEn", entry["name"]),
        category=entry["category"],
        price=int(entry["price"]),
        description=entry.get("description", ""),
        image=entry.get("image", ""),
        in_stock=bool(entry.get("inStock", True)),
        stock=int(stock) if stock is not None else None,
        is_new=bool(entry.get("isNew", False)),
        is_featured=bool(entry.get("isFeatured", False)),
    )


def validate_catalog_file(path: str | Path, *, categories: Iterable[str]) -> list[str]:
    """Validate catalog JSON file and return a list of errors."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        return [f"Catalog is not valid JSON: {exc}"]
    return validate_catalog_dict(data, categories=categories)


def validate_catalog_dict(data: Any, *, categories: Iterable[str]) -> list[str]:
    errors: list[str] = []
    allowed = set(categories)

    if not isinstance(data, dict):
        return ["Catalog must be a JSON object."]

    products_raw = data.get("products")
    if not isinstance(products_raw, list) or not products_raw:
        errors.append("Catalog must contain non-empty 'products' array.")
        return errors

    seen_names: set[str] = set()
    for idx, entry in enumerate(products_raw, start=1):
        if not isinstance(entry, dict):
            errors.append(f"Product #{idx} must be an object.")
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"Product #{idx} must define non-empty 'name'.")
            continue
        label = entry.get("nameEn") or name
        if label in seen_names:
            errors.append(f"Product '{label}' defined multiple times.")
        seen_names.add(label)

        name_en = entry.get("nameEn")
        if name_en is not None and (not isinstance(name_en, str) or not name_en.strip()):
            errors.append(f"Product '{label}' has invalid 'nameEn'.")

        category = entry.get("category")
        if category not in allowed:
            errors.append(f"Product '{label}' has invalid category '{category}'.")

        price = entry.get("price")
        if isinstance(price, bool) or not isinstance(price, int) or not 0 < price <= MAX_COINS:
            errors.append(f"Product '{label}' must define positive integer 'price' up to {MAX_COINS}.")

        stock = entry.get("stock")
        if stock is not None and (isinstance(stock, bool) or not isinstance(stock, int) or stock < 0):
            errors.append(f"Product '{label}' has invalid 'stock' value '{stock}'.")

        in_stock = entry.get("inStock", True)
        if not isinstance(in_stock, bool):
            errors.append(f"Product '{label}' 'inStock' must be a boolean.")
        elif isinstance(stock, int) and not isinstance(stock, bool) and in_stock != (stock > 0):
            errors.append(f"Product '{label}' 'inStock' contradicts its stock of {stock}.")

        for flag in ("isNew", "isFeatured"):
            if flag in entry and not isinstance(entry[flag], bool):
                errors.append(f"Product '{label}' '{flag}' must be a boolean.")

        for text_field in ("description", "image"):
            if text_field in entry and not isinstance(entry[text_field], str):
                errors.append(f"Product '{label}' '{text_field}' must be a string.")

    return errors


def _format_errors(prefix: str, errors: Iterable[str]) -> str:
    formatted = "\n".join(f"- {err}" for err in errors)
    return f"{prefix}:\n{formatted}"
