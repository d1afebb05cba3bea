"""Enumerations shared by the catalog and purchase services."""

from __future__ import annotations

from enum import Enum


class ProductCategory(str, Enum):
    VEHICLES = "vehicles"
    FEATURES = "features"
    OWNERSHIP = "ownership"


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not PurchaseStatus.PENDING

    def can_become(self, target: "PurchaseStatus") -> bool:
        if target is self:
            return True
        return self is PurchaseStatus.PENDING
