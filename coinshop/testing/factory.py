"""Factories for tests and prototyping."""

from __future__ import annotations

from dataclasses import dataclass, field
from random import Random

from faker import Faker

from ..domain.models import ProductCategory
from ..storage.base import AccountRecord, ProductRecord, ShopStorage


@dataclass(slots=True)
class AccountFactory:
    faker: Faker = field(default_factory=Faker)

    def build(self, *, coins: int = 0, is_admin: bool = False, username: str | None = None) -> AccountRecord:
        return AccountRecord(
            username=username or f"{self.faker.user_name()}_{self.faker.unique.random_int()}",
            coins=coins,
            is_admin=is_admin,
        )

    async def create(self, storage: ShopStorage, **kwargs) -> AccountRecord:
        async with storage.unit_of_work() as uow:
            return await uow.accounts.add(self.build(**kwargs))


@dataclass(slots=True)
class ProductFactory:
    faker: Faker = field(default_factory=Faker)
    rng: Random = field(default_factory=Random)

    def build(
        self,
        *,
        price: int | None = None,
        stock: int | None = None,
        in_stock: bool = True,
        category: str | None = None,
    ) -> ProductRecord:
        name = self.faker.word().title()
        return ProductRecord(
            name=name,
            name_en=name,
            description=self.faker.sentence(),
            category=category or self.rng.choice(list(ProductCategory)).value,
            price=price if price is not None else self.rng.randint(100, 5000),
            image=f"/images/{name.lower()}.png",
            in_stock=in_stock,
            stock=stock,
        )

    async def create(self, storage: ShopStorage, **kwargs) -> ProductRecord:
        async with storage.unit_of_work() as uow:
            return await uow.products.add(self.build(**kwargs))
