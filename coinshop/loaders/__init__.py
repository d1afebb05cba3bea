"""Loaders for declarative catalogs."""

from .defaults import DEFAULT_CATALOG
from .json_loader import (
    parse_catalog_dict,
    parse_product,
    seed_catalog_from_json,
    validate_catalog_dict,
    validate_catalog_file,
)

__all__ = [
    "DEFAULT_CATALOG",
    "parse_catalog_dict",
    "parse_product",
    "seed_catalog_from_json",
    "validate_catalog_dict",
    "validate_catalog_file",
]
