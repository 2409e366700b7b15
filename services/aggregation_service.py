"""
Aggregation service for dashboard and report statistics.

Pure read-only functions over a record store snapshot. Nothing is cached; every
figure is recomputed from the current collections.

Date-filtered figures take an explicit, timezone-aware `as_of` timestamp. The
calendar day and month are those of `as_of` in its own timezone; record
timestamps are converted into that zone before comparing (see domain/time.py).
Empty collections yield zero for every figure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Protocol

from domain.product import Category, Product, ProductStatus
from domain.purchase import Purchase
from domain.sale import PaymentMethod, Sale
from domain.time import same_day, same_month

# In-stock products with fewer units than this are flagged as low stock.
LOW_STOCK_THRESHOLD: int = 5

_ZERO = Decimal("0")


class RecordSnapshot(Protocol):
    def get_products(self) -> List[Product]:
        ...

    def get_sales(self) -> List[Sale]:
        ...

    def get_purchases(self) -> List[Purchase]:
        ...


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total_inventory_value: Decimal
    today_sales: Decimal
    today_profit: Decimal
    total_products: int  # in-stock products
    low_stock_items: int
    monthly_sales: Decimal
    monthly_profit: Decimal


@dataclass(frozen=True, slots=True)
class SalesSummary:
    total_sales: Decimal
    total_profit: Decimal
    transactions: int
    average_sale: Decimal


@dataclass(frozen=True, slots=True)
class InventorySummary:
    total_products: int
    in_stock: int
    sold: int
    inventory_value: Decimal


@dataclass(frozen=True, slots=True)
class PaymentMethodTotal:
    count: int
    total: Decimal


@dataclass(frozen=True, slots=True)
class CategoryCount:
    in_stock: int
    total: int


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, _ZERO)


def _sales_today(store: RecordSnapshot, as_of: datetime) -> List[Sale]:
    return [sale for sale in store.get_sales() if same_day(sale.date, as_of)]


def _sales_this_month(store: RecordSnapshot, as_of: datetime) -> List[Sale]:
    return [sale for sale in store.get_sales() if same_month(sale.date, as_of)]


def get_inventory_value(store: RecordSnapshot) -> Decimal:
    """Potential revenue of stock on hand: sum of sale_price * quantity over in-stock products."""

    return _sum(product.stock_value for product in store.get_products())


def get_today_sales(store: RecordSnapshot, as_of: datetime) -> Decimal:
    return _sum(sale.sale_price for sale in _sales_today(store, as_of))


def get_today_profit(store: RecordSnapshot, as_of: datetime) -> Decimal:
    return _sum(sale.profit for sale in _sales_today(store, as_of))


def get_monthly_sales(store: RecordSnapshot, as_of: datetime) -> Decimal:
    return _sum(sale.sale_price for sale in _sales_this_month(store, as_of))


def get_monthly_profit(store: RecordSnapshot, as_of: datetime) -> Decimal:
    return _sum(sale.profit for sale in _sales_this_month(store, as_of))


def get_low_stock_count(store: RecordSnapshot) -> int:
    return sum(
        1
        for product in store.get_products()
        if product.status == ProductStatus.IN_STOCK and product.quantity < LOW_STOCK_THRESHOLD
    )


def get_today_purchases(store: RecordSnapshot, as_of: datetime) -> Decimal:
    """Spend on stock bought today: sum of purchase_price * quantity."""

    return _sum(p.total_cost for p in store.get_purchases() if same_day(p.date, as_of))


def get_monthly_purchases(store: RecordSnapshot, as_of: datetime) -> Decimal:
    return _sum(p.total_cost for p in store.get_purchases() if same_month(p.date, as_of))


def get_dashboard_stats(store: RecordSnapshot, as_of: datetime) -> DashboardStats:
    """All dashboard tiles in one pass over the current snapshot."""

    return DashboardStats(
        total_inventory_value=get_inventory_value(store),
        today_sales=get_today_sales(store, as_of),
        today_profit=get_today_profit(store, as_of),
        total_products=sum(1 for p in store.get_products() if p.status == ProductStatus.IN_STOCK),
        low_stock_items=get_low_stock_count(store),
        monthly_sales=get_monthly_sales(store, as_of),
        monthly_profit=get_monthly_profit(store, as_of),
    )


def get_sales_summary(store: RecordSnapshot) -> SalesSummary:
    sales = store.get_sales()
    total = _sum(sale.sale_price for sale in sales)
    return SalesSummary(
        total_sales=total,
        total_profit=_sum(sale.profit for sale in sales),
        transactions=len(sales),
        average_sale=total / len(sales) if sales else _ZERO,
    )


def get_inventory_summary(store: RecordSnapshot) -> InventorySummary:
    products = store.get_products()
    return InventorySummary(
        total_products=len(products),
        in_stock=sum(1 for p in products if p.status == ProductStatus.IN_STOCK),
        sold=sum(1 for p in products if p.status == ProductStatus.SOLD),
        inventory_value=get_inventory_value(store),
    )


def get_payment_method_breakdown(store: RecordSnapshot) -> Dict[PaymentMethod, PaymentMethodTotal]:
    """Sale count and total per payment method; every method is present."""

    sales = store.get_sales()
    breakdown: Dict[PaymentMethod, PaymentMethodTotal] = {}
    for method in PaymentMethod:
        matching = [sale for sale in sales if sale.payment_method == method]
        breakdown[method] = PaymentMethodTotal(
            count=len(matching),
            total=_sum(sale.sale_price for sale in matching),
        )
    return breakdown


def get_category_breakdown(store: RecordSnapshot) -> Dict[Category, CategoryCount]:
    products = store.get_products()
    return {
        category: CategoryCount(
            in_stock=sum(1 for p in products if p.category == category and p.status == ProductStatus.IN_STOCK),
            total=sum(1 for p in products if p.category == category),
        )
        for category in Category
    }


def search_products(store: RecordSnapshot, term: str) -> List[Product]:
    """Inventory search box; an empty term returns every product."""

    if not term:
        return store.get_products()
    return [product for product in store.get_products() if product.matches(term)]


def get_sellable_products(store: RecordSnapshot) -> List[Product]:
    """Products that can be picked on the sale form."""

    return [product for product in store.get_products() if product.is_available]


__all__ = [
    "LOW_STOCK_THRESHOLD",
    "DashboardStats",
    "SalesSummary",
    "InventorySummary",
    "PaymentMethodTotal",
    "CategoryCount",
    "get_inventory_value",
    "get_today_sales",
    "get_today_profit",
    "get_monthly_sales",
    "get_monthly_profit",
    "get_low_stock_count",
    "get_today_purchases",
    "get_monthly_purchases",
    "get_dashboard_stats",
    "get_sales_summary",
    "get_inventory_summary",
    "get_payment_method_breakdown",
    "get_category_breakdown",
    "search_products",
    "get_sellable_products",
]
