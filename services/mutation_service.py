"""
Mutation service: user actions that touch more than one collection.

Handles:
- Add product: stores the product and its correlated purchase entry.
- Record sale: takes one unit out of stock and appends the sale.

The storage substrate has no transactions, so each operation is two writes with
a fixed order and a compensating rollback:

- Add product writes the product first, then the purchase. If the purchase
  write fails, the products collection is restored to its previous contents.
- Record sale writes the product update first, then the sale. If the sale write
  fails, the product is restored. A failure therefore never leaves an orphaned
  sale behind.

The original PersistenceError propagates after a successful rollback. If the
rollback itself fails, ConsistencyFault is raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from domain.errors import ConsistencyFault, PersistenceError, ProductUnavailable
from domain.product import Product, ProductStatus
from domain.purchase import Purchase
from domain.sale import Sale
from domain.time import Clock, require_aware_timestamp, system_clock
from repositories.record_store import RecordStore
from services.ids import IdGenerator, UuidIdGenerator
from services.inputs import AddProductInput, RecordSaleInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AddProductResult:
    product: Product
    purchase: Purchase


@dataclass(frozen=True, slots=True)
class RecordSaleResult:
    """
    sale: the appended Sale record
    product: the product after the unit was taken out of stock
    """
    sale: Sale
    product: Product


class MutationCoordinator:
    """
    Applies add-product and record-sale against an injected RecordStore.

    ids and clock are injectable; by default UUID ids and the host's local clock.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        ids: Optional[IdGenerator] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.ids: IdGenerator = ids or UuidIdGenerator()
        self.clock: Clock = clock or system_clock()

    def _now(self) -> datetime:
        now = self.clock()
        require_aware_timestamp("clock()", now)
        return now

    def _restore_products(self, operation: str, previous: List[Product], cause: PersistenceError) -> None:
        try:
            self.store.replace_products(previous)
        except PersistenceError as rollback_exc:
            logger.error("%s: rollback of products failed: %s (original error: %s)", operation, rollback_exc, cause)
            raise ConsistencyFault(
                operation,
                f"second write failed ({cause}) and the product rollback also failed ({rollback_exc})",
            ) from rollback_exc
        logger.warning("%s: rolled back product write after failure: %s", operation, cause)

    def add_product(self, data: AddProductInput) -> AddProductResult:
        """
        Stock a new product and log the matching purchase.

        Raises:
            PersistenceError: a write failed; nothing is left stored.
            ConsistencyFault: the purchase write failed and the product could not be removed.
        """

        now = self._now()
        product = Product(
            id=self.ids.new_id(),
            name=data.name,
            brand=data.brand,
            category=data.category,
            imei=data.imei,
            color=data.color,
            storage=data.storage,
            mfg_date=data.mfg_date,
            purchase_price=data.purchase_price,
            sale_price=data.sale_price,
            quantity=data.quantity,
            supplier=data.supplier,
            date_added=now,
            status=ProductStatus.IN_STOCK,
        )
        purchase = Purchase.for_product(
            product,
            purchase_id=self.ids.new_id(),
            bill_number=self.ids.new_bill_number(),
            purchased_at=now,
        )

        previous = self.store.get_products()
        self.store.add_product(product)
        try:
            self.store.add_purchase(purchase)
        except PersistenceError as exc:
            self._restore_products("add_product", previous, exc)
            raise

        logger.info(
            "Added product %s (%s %s, qty %d) with purchase %s",
            product.id,
            product.brand,
            product.name,
            product.quantity,
            purchase.bill_number,
        )
        return AddProductResult(product=product, purchase=purchase)

    def record_sale(self, data: RecordSaleInput) -> RecordSaleResult:
        """
        Sell one unit of a product.

        Raises:
            ProductUnavailable: unknown product, or not in stock (no writes happen).
            PersistenceError: a write failed; the product is left as it was.
            ConsistencyFault: the sale write failed and the product could not be restored.
        """

        product = self.store.get_product(data.product_id)
        if product is None:
            logger.warning("Sale rejected: product %s not found", data.product_id)
            raise ProductUnavailable(data.product_id, "not found")
        if not product.is_available:
            logger.warning(
                "Sale rejected: product %s is %s with quantity %d",
                product.id,
                product.status.value,
                product.quantity,
            )
            raise ProductUnavailable(product.id, f"status {product.status.value}, quantity {product.quantity}")

        sale = Sale.for_product(
            product,
            sale_id=self.ids.new_id(),
            invoice_number=self.ids.new_invoice_number(),
            sale_price=data.sale_price,
            payment_method=data.payment_method,
            sold_at=self._now(),
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
        )
        remaining = product.sell_one()

        previous = self.store.get_products()
        updated = self.store.update_product(
            product.id, {"quantity": remaining.quantity, "status": remaining.status}
        )
        if updated is None:
            raise ProductUnavailable(product.id, "not found")
        try:
            self.store.add_sale(sale)
        except PersistenceError as exc:
            self._restore_products("record_sale", previous, exc)
            raise

        logger.info(
            "Recorded sale %s for product %s at %s (profit %s); %d left",
            sale.invoice_number,
            product.id,
            sale.sale_price,
            sale.profit,
            updated.quantity,
        )
        return RecordSaleResult(sale=sale, product=updated)


__all__ = ["MutationCoordinator", "AddProductResult", "RecordSaleResult"]
