import json
from pathlib import Path

import pytest

from coinshop.config import DEFAULT_CATEGORIES
from coinshop.loaders import (
    DEFAULT_CATALOG,
    parse_catalog_dict,
    seed_catalog_from_json,
    validate_catalog_dict,
    validate_catalog_file,
)
from coinshop.testing import app_fixture


def test_parse_catalog_dict_maps_camel_case_fields():
    data = {
        "products": [
            {
                "name": "صلاحيات المشرف",
                "nameEn": "Moderator Permissions",
                "category": "ownership",
                "price": 10000,
                "description": "Moderator tools in game",
                "image": "/images/mod.png",
                "stock": 5,
                "isFeatured": True,
            }
        ]
    }
    (definition,) = parse_catalog_dict(data, categories=DEFAULT_CATEGORIES)
    assert definition.name_en == "Moderator Permissions"
    assert definition.stock == 5
    assert definition.in_stock is True
    assert definition.is_featured is True
    assert definition.is_new is False


def test_name_en_defaults_to_name():
    data = {"products": [{"name": "Crown", "category": "features", "price": 10}]}
    (definition,) = parse_catalog_dict(data, categories=DEFAULT_CATEGORIES)
    assert definition.name_en == "Crown"
    assert definition.stock is None


def test_parse_catalog_dict_invalid_price_raises():
    data = {"products": [{"name": "Free", "category": "features", "price": 0}]}
    with pytest.raises(ValueError):
        parse_catalog_dict(data, categories=DEFAULT_CATEGORIES)


def test_validate_catalog_dict_reports_every_problem():
    data = {
        "products": [
            {"name": "Car", "category": "boats", "price": 10},
            {"name": "Car", "category": "vehicles", "price": 10},
            {"name": "Hat", "category": "features", "price": 5, "stock": 0, "inStock": True},
            {"name": "Sign", "category": "features", "price": 5, "stock": -1},
        ]
    }
    errors = validate_catalog_dict(data, categories=DEFAULT_CATEGORIES)
    assert any("invalid category 'boats'" in err for err in errors)
    assert any("defined multiple times" in err for err in errors)
    assert any("contradicts its stock" in err for err in errors)
    assert any("invalid 'stock'" in err for err in errors)


def test_validate_catalog_dict_requires_products():
    assert validate_catalog_dict({"products": []}, categories=DEFAULT_CATEGORIES)
    assert validate_catalog_dict([], categories=DEFAULT_CATEGORIES) == [
        "Catalog must be a JSON object."
    ]


def test_default_catalog_is_valid():
    assert validate_catalog_dict(DEFAULT_CATALOG, categories=DEFAULT_CATEGORIES) == []


def test_validate_catalog_file_reports_bad_json(tmp_path: Path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    errors = validate_catalog_file(path, categories=DEFAULT_CATEGORIES)
    assert errors and "not valid JSON" in errors[0]


@pytest.mark.asyncio()
async def test_seed_catalog_from_json(tmp_path: Path):
    payload = {
        "products": [
            {"name": "Bike", "category": "vehicles", "price": 1500},
            {"name": "Shield", "category": "features", "price": 1000, "isNew": True},
        ]
    }
    json_path = tmp_path / "catalog.json"
    json_path.write_text(json.dumps(payload), encoding="utf-8")

    app = app_fixture()
    assert await seed_catalog_from_json(app, json_path) == 2
    assert await seed_catalog_from_json(app, json_path) == 0

    names = {product.name_en for product in await app.catalog.list_products()}
    assert names == {"Bike", "Shield"}
