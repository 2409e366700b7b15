"""
Domain: Sale events.

A Sale is an immutable record of a completed transaction:
- profit = sale_price - product.purchase_price, computed once when the sale is
  created and stored; it is never recomputed from the (later mutated) product.
- product_id weakly references the Product sold (lookup only).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .product import Product
from .time import require_aware_timestamp


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank-transfer"
    INSTALLMENT = "installment"


@dataclass(frozen=True, slots=True)
class Sale:
    """Immutable record of a sale of one unit of a product."""

    id: str
    product_id: str
    product_name: str
    sale_price: Decimal
    payment_method: PaymentMethod
    profit: Decimal
    date: datetime
    invoice_number: str
    imei: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None

    def __post_init__(self) -> None:
        require_aware_timestamp("date", self.date)
        if self.sale_price < 0:
            raise ValueError("sale_price must be >= 0")

    @staticmethod
    def for_product(
        product: Product,
        *,
        sale_id: str,
        invoice_number: str,
        sale_price: Decimal,
        payment_method: PaymentMethod,
        sold_at: datetime,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
    ) -> "Sale":
        """Build a Sale for `product`, copying its name and IMEI and fixing the profit."""

        return Sale(
            id=sale_id,
            product_id=product.id,
            product_name=product.name,
            imei=product.imei,
            sale_price=sale_price,
            customer_name=customer_name,
            customer_phone=customer_phone,
            payment_method=payment_method,
            profit=sale_price - product.purchase_price,
            date=sold_at,
            invoice_number=invoice_number,
        )
