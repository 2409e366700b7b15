"""
Domain: Product (a unit or batch of stock).

Rules implemented here:
- purchase_price and sale_price are non-negative; quantity is an integer >= 0.
- quantity == 0 implies status != in-stock.
- Legal status transitions: in-stock -> in-stock (quantity decremented while
  stock remains) and in-stock -> sold (quantity reaches 0). Nothing leaves sold.

This module contains only pure domain entities: no I/O, no persistence.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .time import require_aware_timestamp


class Category(str, Enum):
    MOBILE = "mobile"
    ACCESSORY = "accessory"
    OTHER = "other"


class ProductStatus(str, Enum):
    IN_STOCK = "in-stock"
    SOLD = "sold"


@dataclass(frozen=True, slots=True)
class Product:
    """
    Stock item tracked by the shop.

    Immutability:
    - Products are frozen; a sale produces a new instance via `sell_one()` and
      the store replaces the stored record with it.
    """

    id: str
    name: str
    brand: str
    category: Category
    purchase_price: Decimal
    sale_price: Decimal
    quantity: int
    date_added: datetime
    status: ProductStatus = ProductStatus.IN_STOCK
    imei: Optional[str] = None
    color: Optional[str] = None
    storage: Optional[str] = None
    mfg_date: Optional[date] = None
    supplier: Optional[str] = None

    def __post_init__(self) -> None:
        require_aware_timestamp("date_added", self.date_added)
        if self.purchase_price < 0:
            raise ValueError("purchase_price must be >= 0")
        if self.sale_price < 0:
            raise ValueError("sale_price must be >= 0")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError("quantity must be an integer")
        if self.quantity < 0:
            raise ValueError("quantity must be >= 0")
        if self.quantity == 0 and self.status == ProductStatus.IN_STOCK:
            raise ValueError("a product with quantity 0 cannot be in-stock")

    @property
    def is_available(self) -> bool:
        """Sellable iff in-stock with at least one unit left."""

        return self.status == ProductStatus.IN_STOCK and self.quantity > 0

    @property
    def stock_value(self) -> Decimal:
        """Potential revenue of the remaining units (0 unless in-stock)."""

        if self.status != ProductStatus.IN_STOCK:
            return Decimal("0")
        return self.sale_price * self.quantity

    def sell_one(self) -> "Product":
        """
        Return a new Product with one unit removed.

        The last unit moves the product to sold with quantity 0.
        """

        if not self.is_available:
            raise ValueError(f"Product {self.id} is not available for sale")
        remaining = self.quantity - 1
        if remaining > 0:
            return replace(self, quantity=remaining)
        return replace(self, quantity=0, status=ProductStatus.SOLD)

    def matches(self, term: str) -> bool:
        """Inventory search: name/brand case-insensitively, IMEI as typed."""

        needle = term.lower()
        return (
            needle in self.name.lower()
            or needle in self.brand.lower()
            or (self.imei is not None and term in self.imei)
        )
