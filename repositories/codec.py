"""
Record codec (domain <-> stored rows).

Collections are stored as JSON arrays of objects using the persisted field
names (camelCase: purchasePrice, dateAdded, invoiceNumber, ...).

- Money is written as a decimal string and read from strings or JSON numbers.
- Timestamps are ISO-8601 with an offset; a trailing 'Z' is accepted and naive
  values are read as UTC.
- Optional fields that are None are omitted; missing or null optional fields
  read back as None; empty strings are kept as stored. Unknown fields are ignored.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

from domain.errors import PersistenceError
from domain.product import Category, Product, ProductStatus
from domain.purchase import UNKNOWN_SUPPLIER, Purchase
from domain.sale import PaymentMethod, Sale
from domain.time import require_aware_timestamp

T = TypeVar("T")


def _to_iso(dt: datetime, *, name: str) -> str:
    """Serialize an aware datetime to ISO-8601 with its offset."""

    require_aware_timestamp(name, dt)
    return dt.isoformat()


def _parse_datetime(value: Any) -> datetime:
    """
    Parse a stored timestamp into a timezone-aware datetime.

    Browser-produced values commonly end in 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise TypeError(f"Unsupported money value: {value!r}")
    return Decimal(str(value))


def _optional_str(row: Mapping[str, Any], key: str) -> Optional[str]:
    value = row.get(key)
    if value is None:
        return None
    return str(value)


def _put_optional(payload: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        payload[key] = value


def product_to_row(product: Product) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": product.id,
        "name": product.name,
        "brand": product.brand,
        "category": product.category.value,
        "purchasePrice": str(product.purchase_price),
        "salePrice": str(product.sale_price),
        "quantity": product.quantity,
        "dateAdded": _to_iso(product.date_added, name="dateAdded"),
        "status": product.status.value,
    }
    _put_optional(payload, "imei", product.imei)
    _put_optional(payload, "color", product.color)
    _put_optional(payload, "storage", product.storage)
    _put_optional(payload, "mfgDate", product.mfg_date.isoformat() if product.mfg_date else None)
    _put_optional(payload, "supplier", product.supplier)
    return payload


def row_to_product(row: Mapping[str, Any]) -> Product:
    mfg_date = _optional_str(row, "mfgDate")
    return Product(
        id=str(row["id"]),
        name=str(row["name"]),
        brand=str(row["brand"]),
        category=Category(str(row["category"])),
        imei=_optional_str(row, "imei"),
        color=_optional_str(row, "color"),
        storage=_optional_str(row, "storage"),
        mfg_date=date.fromisoformat(mfg_date) if mfg_date else None,
        purchase_price=_parse_decimal(row["purchasePrice"]),
        sale_price=_parse_decimal(row["salePrice"]),
        quantity=int(row["quantity"]),
        supplier=_optional_str(row, "supplier"),
        date_added=_parse_datetime(row["dateAdded"]),
        status=ProductStatus(str(row["status"])),
    )


def sale_to_row(sale: Sale) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": sale.id,
        "productId": sale.product_id,
        "productName": sale.product_name,
        "salePrice": str(sale.sale_price),
        "paymentMethod": sale.payment_method.value,
        "profit": str(sale.profit),
        "date": _to_iso(sale.date, name="date"),
        "invoiceNumber": sale.invoice_number,
    }
    _put_optional(payload, "imei", sale.imei)
    _put_optional(payload, "customerName", sale.customer_name)
    _put_optional(payload, "customerPhone", sale.customer_phone)
    return payload


def row_to_sale(row: Mapping[str, Any]) -> Sale:
    return Sale(
        id=str(row["id"]),
        product_id=str(row["productId"]),
        product_name=str(row["productName"]),
        imei=_optional_str(row, "imei"),
        sale_price=_parse_decimal(row["salePrice"]),
        customer_name=_optional_str(row, "customerName"),
        customer_phone=_optional_str(row, "customerPhone"),
        payment_method=PaymentMethod(str(row["paymentMethod"])),
        profit=_parse_decimal(row["profit"]),
        date=_parse_datetime(row["date"]),
        invoice_number=str(row["invoiceNumber"]),
    )


def purchase_to_row(purchase: Purchase) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": purchase.id,
        "productName": purchase.product_name,
        "brand": purchase.brand,
        "category": purchase.category.value,
        "quantity": purchase.quantity,
        "purchasePrice": str(purchase.purchase_price),
        "expectedSalePrice": str(purchase.expected_sale_price),
        "supplier": purchase.supplier,
        "date": _to_iso(purchase.date, name="date"),
        "billNumber": purchase.bill_number,
    }
    _put_optional(payload, "imei", purchase.imei)
    _put_optional(payload, "color", purchase.color)
    _put_optional(payload, "storage", purchase.storage)
    return payload


def row_to_purchase(row: Mapping[str, Any]) -> Purchase:
    return Purchase(
        id=str(row["id"]),
        product_name=str(row["productName"]),
        brand=str(row["brand"]),
        category=Category(str(row["category"])),
        imei=_optional_str(row, "imei"),
        color=_optional_str(row, "color"),
        storage=_optional_str(row, "storage"),
        quantity=int(row["quantity"]),
        purchase_price=_parse_decimal(row["purchasePrice"]),
        expected_sale_price=_parse_decimal(row["expectedSalePrice"]),
        supplier=UNKNOWN_SUPPLIER if row.get("supplier") is None else str(row["supplier"]),
        date=_parse_datetime(row["date"]),
        bill_number=str(row["billNumber"]),
    )


def dump_collection(records: Sequence[T], to_row: Callable[[T], Dict[str, Any]]) -> str:
    """Serialize a collection; any encoding failure becomes PersistenceError."""

    try:
        return json.dumps([to_row(record) for record in records], ensure_ascii=False)
    except (AttributeError, TypeError, ValueError) as exc:
        raise PersistenceError(f"Failed to serialize collection: {exc}") from exc


def load_collection(text: Optional[str], from_row: Callable[[Mapping[str, Any]], T]) -> List[T]:
    """Deserialize a stored collection; an absent value is an empty collection."""

    if text is None or not text.strip():
        return []
    try:
        rows = json.loads(text)
        if not isinstance(rows, list):
            raise TypeError(f"expected a JSON array, got {type(rows).__name__}")
        return [from_row(row) for row in rows]
    except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
        raise PersistenceError(f"Failed to deserialize collection: {exc}") from exc


__all__ = [
    "product_to_row",
    "row_to_product",
    "sale_to_row",
    "row_to_sale",
    "purchase_to_row",
    "row_to_purchase",
    "dump_collection",
    "load_collection",
]
