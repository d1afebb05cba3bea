"""Catalog of purchasable products."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from .exceptions import InvalidRequest, ProductNotFound
from ..storage.base import MAX_COINS, ProductRecord, ShopStorage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProductDefinition:
    """Declarative product used for seeding and catalog files."""

    name: str
    name_en: str
    category: str
    price: int
    description: str = ""
    image: str = ""
    in_stock: bool = True
    stock: int | None = None
    is_new: bool = False
    is_featured: bool = False

    def to_record(self) -> ProductRecord:
        return ProductRecord(
            name=self.name,
            name_en=self.name_en,
            category=self.category,
            price=self.price,
            description=self.description,
            image=self.image,
            in_stock=self.in_stock,
            stock=self.stock,
            is_new=self.is_new,
            is_featured=self.is_featured,
        )


class CatalogService:
    """Expose read/write operations for products."""

    def __init__(self, storage: ShopStorage, *, categories: Iterable[str]) -> None:
        self._storage = storage
        self._categories = tuple(categories)

    @property
    def categories(self) -> tuple[str, ...]:
        return self._categories

    async def list_products(self, category: str | None = None) -> Sequence[ProductRecord]:
        if category is not None and category not in self._categories:
            raise InvalidRequest(f"Unknown category '{category}'")
        async with self._storage.unit_of_work(read_only=True) as uow:
            return await uow.products.list(category)

    async def get_product(self, product_id: str) -> ProductRecord:
        async with self._storage.unit_of_work(read_only=True) as uow:
            record = await uow.products.get(product_id)
        if record is None:
            raise ProductNotFound(f"Product {product_id} not found")
        return record

    async def create_product(self, definition: ProductDefinition) -> ProductRecord:
        self._validate(definition)
        async with self._storage.unit_of_work() as uow:
            record = await uow.products.add(definition.to_record())
        logger.info("Created product %s (%s)", record.id, record.name_en)
        return record

    async def seed(self, definitions: Iterable[ProductDefinition]) -> int:
        """Insert ``definitions`` if the catalog is empty; return how many were added."""
        definitions = list(definitions)
        for definition in definitions:
            self._validate(definition)
        async with self._storage.unit_of_work() as uow:
            if await uow.products.count() > 0:
                logger.info("Catalog already seeded, skipping")
                return 0
            for definition in definitions:
                await uow.products.add(definition.to_record())
        logger.info("Seeded catalog with %s products", len(definitions))
        return len(definitions)

    async def set_stock(self, product_id: str, stock: int | None) -> ProductRecord:
        """Replace the stock counter; ``None`` makes the product unlimited again."""
        if stock is not None and (isinstance(stock, bool) or not isinstance(stock, int) or stock < 0):
            raise InvalidRequest("Stock must be a non-negative integer")
        async with self._storage.unit_of_work() as uow:
            record = await self._locked(uow, product_id)
            record.stock = stock
            if stock is None:
                record.in_stock = True
            return await uow.products.update(record)

    async def set_price(self, product_id: str, price: int) -> ProductRecord:
        _require_price(price)
        async with self._storage.unit_of_work() as uow:
            record = await self._locked(uow, product_id)
            record.price = price
            return await uow.products.update(record)

    async def set_availability(self, product_id: str, in_stock: bool) -> ProductRecord:
        async with self._storage.unit_of_work() as uow:
            record = await self._locked(uow, product_id)
            if record.stock is not None:
                raise InvalidRequest("Availability of a stock-tracked product follows its stock")
            record.in_stock = bool(in_stock)
            return await uow.products.update(record)

    async def _locked(self, uow, product_id: str) -> ProductRecord:
        record = await uow.products.get(product_id, for_update=True)
        if record is None:
            raise ProductNotFound(f"Product {product_id} not found")
        return record

    def _validate(self, definition: ProductDefinition) -> None:
        if definition.category not in self._categories:
            raise InvalidRequest(f"Unknown category '{definition.category}'")
        _require_price(definition.price)
        if not definition.name or not definition.name_en:
            raise InvalidRequest("Product names are required")
        stock = definition.stock
        if stock is not None and (isinstance(stock, bool) or not isinstance(stock, int) or stock < 0):
            raise InvalidRequest("Stock must be a non-negative integer")


def _require_price(price: object) -> None:
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise InvalidRequest("Price must be a positive integer")
    if price > MAX_COINS:
        raise InvalidRequest(f"Price cannot exceed {MAX_COINS} coins")
