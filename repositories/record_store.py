"""
Record store (persistence).

Single source of truth for the three collections: products, sales, purchases.
This module does not enforce cross-collection business rules (that is the
mutation service's job); it only loads, appends, updates and persists records.

Write semantics:
- Every write serializes the *new* collection and hands it to the storage
  backend before the in-memory collection is swapped. If the backend fails, a
  PersistenceError is raised and both memory and storage keep their prior state.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

from domain.errors import PersistenceError, ValidationError
from domain.product import Category, Product, ProductStatus
from domain.purchase import Purchase
from domain.sale import Sale
from repositories.codec import (
    dump_collection,
    load_collection,
    product_to_row,
    purchase_to_row,
    row_to_product,
    row_to_purchase,
    row_to_sale,
    sale_to_row,
)
from repositories.storage import PRODUCTS_KEY, PURCHASES_KEY, SALES_KEY, StorageBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PRODUCT_FIELDS = frozenset(f.name for f in fields(Product))

_REQUIRED_TEXT_FIELDS = frozenset({"id", "name", "brand"})
_OPTIONAL_TEXT_FIELDS = frozenset({"imei", "color", "storage", "supplier"})
_MONEY_FIELDS = frozenset({"purchase_price", "sale_price"})


def _coerce_product_value(name: str, value: Any) -> Any:
    """
    Convert a raw patch value to the Product field's type.

    Accepts the plain values a form or stored row carries ("sold", "mobile",
    numbers for prices, ISO strings for dates). Raises ValueError otherwise.
    """

    if name == "category":
        return Category(value)
    if name == "status":
        return ProductStatus(value)
    if name in _MONEY_FIELDS:
        if isinstance(value, bool) or not isinstance(value, (Decimal, int, float, str)):
            raise ValueError(f"{name} must be a number")
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"{name} must be a number") from exc
        if not amount.is_finite():
            raise ValueError(f"{name} must be a finite number")
        return amount
    if name == "quantity":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("quantity must be an integer")
        return value
    if name == "mfg_date":
        if value is None or (isinstance(value, date) and not isinstance(value, datetime)):
            return value
        if isinstance(value, str):
            return date.fromisoformat(value)
        raise ValueError("mfg_date must be a date")
    if name == "date_added":
        if isinstance(value, str):
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if not isinstance(value, datetime):
            raise ValueError("date_added must be a datetime")
        return value
    if name in _REQUIRED_TEXT_FIELDS:
        if not isinstance(value, str) or not value:
            raise ValueError(f"{name} must be a non-empty string")
        return value
    if name in _OPTIONAL_TEXT_FIELDS:
        if value is not None and not isinstance(value, str):
            raise ValueError(f"{name} must be a string")
        return value
    return value


def _coerce_product_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    coerced: Dict[str, Any] = {}
    field_errors: Dict[str, str] = {}
    for name, value in patch.items():
        try:
            coerced[name] = _coerce_product_value(name, value)
        except ValueError as exc:
            field_errors[name] = str(exc)
    if field_errors:
        raise ValidationError(f"Invalid product fields: {', '.join(sorted(field_errors))}", field_errors)
    return coerced


class RecordStore:
    """
    Owns the products, sales and purchases collections for one session.

    Construct once at session start; the collections are read from storage
    immediately and kept in memory in insertion order.
    """

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage
        self._products: List[Product] = self._load(PRODUCTS_KEY, row_to_product)
        self._sales: List[Sale] = self._load(SALES_KEY, row_to_sale)
        self._purchases: List[Purchase] = self._load(PURCHASES_KEY, row_to_purchase)
        logger.debug(
            "Loaded %d products, %d sales, %d purchases",
            len(self._products),
            len(self._sales),
            len(self._purchases),
        )

    def _load(self, key: str, from_row: Callable[[Mapping[str, Any]], T]) -> List[T]:
        try:
            text = self._storage.read(key)
        except PersistenceError:
            raise
        except OSError as exc:
            raise PersistenceError(f"Failed to read {key!r}: {exc}") from exc
        return load_collection(text, from_row)

    def _persist(self, key: str, records: Sequence[T], to_row: Callable[[T], Dict[str, Any]]) -> None:
        text = dump_collection(records, to_row)
        try:
            self._storage.write(key, text)
        except PersistenceError:
            logger.error("Failed to persist %r (%d records)", key, len(records))
            raise
        except OSError as exc:
            logger.error("Failed to persist %r (%d records): %s", key, len(records), exc)
            raise PersistenceError(f"Failed to write {key!r}: {exc}") from exc

    # Reads

    def get_products(self) -> List[Product]:
        return list(self._products)

    def get_sales(self) -> List[Sale]:
        return list(self._sales)

    def get_purchases(self) -> List[Purchase]:
        return list(self._purchases)

    def get_product(self, product_id: str) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    # Writes

    def add_product(self, product: Product) -> None:
        updated = self._products + [product]
        self._persist(PRODUCTS_KEY, updated, product_to_row)
        self._products = updated

    def add_sale(self, sale: Sale) -> None:
        updated = self._sales + [sale]
        self._persist(SALES_KEY, updated, sale_to_row)
        self._sales = updated

    def add_purchase(self, purchase: Purchase) -> None:
        updated = self._purchases + [purchase]
        self._persist(PURCHASES_KEY, updated, purchase_to_row)
        self._purchases = updated

    def update_product(self, product_id: str, patch: Mapping[str, Any]) -> Optional[Product]:
        """
        Merge `patch` into the product with `product_id` and persist.

        Returns the updated product, or None when no product has that id (nothing
        is written and no record is created).

        Raises:
            ValidationError: unknown fields, values that cannot be converted to the
                field type, an attempt to change `id`, or a patch
                that would break the product invariants.
            PersistenceError: the write failed; the stored product is unchanged.
        """

        unknown = set(patch) - _PRODUCT_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown product fields: {', '.join(sorted(unknown))}",
                {name: "unknown field" for name in unknown},
            )
        if "id" in patch and patch["id"] != product_id:
            raise ValidationError("Product id cannot be changed", {"id": "cannot be changed"})
        patch = _coerce_product_patch(patch)

        for index, current in enumerate(self._products):
            if current.id != product_id:
                continue
            try:
                merged = replace(current, **patch)
            except (TypeError, ValueError) as exc:
                raise ValidationError(str(exc)) from exc
            updated = list(self._products)
            updated[index] = merged
            self._persist(PRODUCTS_KEY, updated, product_to_row)
            self._products = updated
            return merged

        logger.warning("update_product: no product with id %s", product_id)
        return None

    def replace_products(self, products: Sequence[Product]) -> None:
        """Persist a whole products collection (used to roll back a failed mutation)."""

        updated = list(products)
        self._persist(PRODUCTS_KEY, updated, product_to_row)
        self._products = updated


__all__ = ["RecordStore"]
