"""
Domain: Purchase ledger entries.

Purchases are append-only and immutable. They are not linked to Products by id;
display code correlates them by name and brand.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .product import Category, Product
from .time import require_aware_timestamp

# Supplier recorded on a purchase when the product has none.
UNKNOWN_SUPPLIER = "N/A"


@dataclass(frozen=True, slots=True)
class Purchase:
    id: str
    product_name: str
    brand: str
    category: Category
    quantity: int
    purchase_price: Decimal
    expected_sale_price: Decimal
    supplier: str
    date: datetime
    bill_number: str
    imei: Optional[str] = None
    color: Optional[str] = None
    storage: Optional[str] = None

    def __post_init__(self) -> None:
        require_aware_timestamp("date", self.date)
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError("quantity must be an integer")
        if self.quantity < 0:
            raise ValueError("quantity must be >= 0")
        if self.purchase_price < 0 or self.expected_sale_price < 0:
            raise ValueError("prices must be >= 0")

    @property
    def total_cost(self) -> Decimal:
        return self.purchase_price * self.quantity

    @staticmethod
    def for_product(product: Product, *, purchase_id: str, bill_number: str, purchased_at: datetime) -> "Purchase":
        """Build the purchase entry that accompanies a newly stocked product."""

        return Purchase(
            id=purchase_id,
            product_name=product.name,
            brand=product.brand,
            category=product.category,
            imei=product.imei,
            color=product.color,
            storage=product.storage,
            quantity=product.quantity,
            purchase_price=product.purchase_price,
            expected_sale_price=product.sale_price,
            supplier=product.supplier or UNKNOWN_SUPPLIER,
            date=purchased_at,
            bill_number=bill_number,
        )
