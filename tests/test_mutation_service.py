"""
Tests for `services/mutation_service.py`.

Covers:
- Every added product gets exactly one correlated purchase.
- Selling decrements quantity, and the last unit moves the product to sold.
- Profit is fixed at sale time and never recomputed.
- Unknown or sold-out products are rejected with no writes.
- Write ordering and rollback when the second write fails, and
  ConsistencyFault when the rollback fails too.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from conftest import FIXED_NOW, FailingStorage
from domain.errors import ConsistencyFault, PersistenceError, ProductUnavailable
from domain.product import Category, ProductStatus
from domain.sale import PaymentMethod
from repositories.record_store import RecordStore
from repositories.storage import PRODUCTS_KEY, PURCHASES_KEY, SALES_KEY
from services import aggregation_service as agg
from services.ids import SequentialIdGenerator
from services.inputs import AddProductInput, RecordSaleInput, parse_add_product_form, parse_record_sale_form
from services.mutation_service import MutationCoordinator


def _product_input(**overrides) -> AddProductInput:
    fields = {
        "name": "Galaxy A14",
        "brand": "Samsung",
        "category": Category.MOBILE,
        "purchase_price": Decimal("30000"),
        "sale_price": Decimal("35000"),
        "quantity": 2,
    }
    fields.update(overrides)
    return AddProductInput(**fields)


def _sale_input(product_id: str, sale_price: str = "34000", **overrides) -> RecordSaleInput:
    fields = {
        "product_id": product_id,
        "sale_price": Decimal(sale_price),
        "payment_method": PaymentMethod.CASH,
    }
    fields.update(overrides)
    return RecordSaleInput(**fields)


def test_galaxy_a14_scenario(coordinator: MutationCoordinator, store: RecordStore) -> None:
    """Add a 2-unit product, sell it twice, and watch stock, profit and inventory value."""

    form = {
        "name": "Galaxy A14",
        "brand": "Samsung",
        "category": "mobile",
        "purchasePrice": "30000",
        "salePrice": "35000",
        "quantity": "2",
    }
    added = coordinator.add_product(parse_add_product_form(form))

    assert len(store.get_products()) == 1
    assert added.product.status == ProductStatus.IN_STOCK
    assert added.product.quantity == 2
    assert store.get_purchases() == [added.purchase]
    assert added.purchase.bill_number.startswith("PUR-")

    first = coordinator.record_sale(
        parse_record_sale_form({"productId": added.product.id, "salePrice": "34000", "paymentMethod": "cash"})
    )

    assert first.sale.profit == Decimal("4000")
    assert first.sale.invoice_number.startswith("INV-")
    assert first.product.quantity == 1
    assert first.product.status == ProductStatus.IN_STOCK

    second = coordinator.record_sale(_sale_input(added.product.id))

    product = store.get_product(added.product.id)
    assert product is not None
    assert product.quantity == 0
    assert product.status == ProductStatus.SOLD
    assert second.product == product
    assert agg.get_inventory_value(store) == 0
    assert len(store.get_sales()) == 2


def test_every_added_product_has_one_matching_purchase(coordinator: MutationCoordinator, store: RecordStore) -> None:
    for index in range(1, 5):
        coordinator.add_product(
            _product_input(name=f"Item {index}", quantity=index, purchase_price=Decimal(index * 100))
        )

    products = store.get_products()
    purchases = store.get_purchases()
    assert len(products) == len(purchases) == 4
    for product in products:
        matching = [
            p for p in purchases
            if (p.product_name, p.brand, p.quantity, p.purchase_price)
            == (product.name, product.brand, product.quantity, product.purchase_price)
        ]
        assert len(matching) == 1
        assert matching[0].expected_sale_price == product.sale_price
        assert matching[0].date == product.date_added == FIXED_NOW


def test_added_product_and_purchase_get_distinct_ids(coordinator: MutationCoordinator) -> None:
    result = coordinator.add_product(_product_input(supplier="Hall Road Traders"))

    assert result.product.id != result.purchase.id
    assert result.purchase.supplier == "Hall Road Traders"
    assert result.product.date_added == FIXED_NOW


def test_sale_of_multi_unit_product_decrements_and_keeps_status(coordinator: MutationCoordinator, store: RecordStore) -> None:
    product = coordinator.add_product(_product_input(quantity=7)).product

    coordinator.record_sale(_sale_input(product.id))

    after = store.get_product(product.id)
    assert after.quantity == 6
    assert after.status == ProductStatus.IN_STOCK


def test_sale_of_last_unit_marks_product_sold(coordinator: MutationCoordinator, store: RecordStore) -> None:
    product = coordinator.add_product(_product_input(quantity=1)).product

    coordinator.record_sale(_sale_input(product.id))

    after = store.get_product(product.id)
    assert after.quantity == 0
    assert after.status == ProductStatus.SOLD


def test_sale_copies_product_details_and_customer(coordinator: MutationCoordinator) -> None:
    product = coordinator.add_product(_product_input(imei="356789012345678")).product

    sale = coordinator.record_sale(
        _sale_input(product.id, customer_name="Ali", customer_phone="0300-1234567", payment_method=PaymentMethod.INSTALLMENT)
    ).sale

    assert sale.product_id == product.id
    assert sale.product_name == "Galaxy A14"
    assert sale.imei == "356789012345678"
    assert sale.customer_name == "Ali"
    assert sale.payment_method == PaymentMethod.INSTALLMENT
    assert sale.date == FIXED_NOW


def test_profit_is_fixed_at_sale_time(coordinator: MutationCoordinator, store: RecordStore) -> None:
    product = coordinator.add_product(_product_input(quantity=3)).product
    sale = coordinator.record_sale(_sale_input(product.id, "34000")).sale

    store.update_product(product.id, {"purchase_price": Decimal("10000")})

    (stored,) = store.get_sales()
    assert stored.profit == sale.profit == Decimal("4000")


def test_sale_of_unknown_product_is_rejected_without_writes(
    coordinator: MutationCoordinator, storage: FailingStorage
) -> None:
    with pytest.raises(ProductUnavailable) as excinfo:
        coordinator.record_sale(_sale_input("does-not-exist"))

    assert excinfo.value.product_id == "does-not-exist"
    assert storage.writes == {}


def test_sale_of_sold_product_is_rejected_without_writes(
    coordinator: MutationCoordinator, store: RecordStore, storage: FailingStorage
) -> None:
    product = coordinator.add_product(_product_input(quantity=1)).product
    coordinator.record_sale(_sale_input(product.id))
    writes_before = dict(storage.writes)

    with pytest.raises(ProductUnavailable):
        coordinator.record_sale(_sale_input(product.id))

    assert storage.writes == writes_before
    assert len(store.get_sales()) == 1


def test_failed_purchase_write_rolls_back_product(
    coordinator: MutationCoordinator, store: RecordStore, storage: FailingStorage
) -> None:
    storage.fail_keys.add(PURCHASES_KEY)

    with pytest.raises(PersistenceError):
        coordinator.add_product(_product_input())

    assert store.get_products() == []
    assert store.get_purchases() == []
    assert RecordStore(FailingStorage({PRODUCTS_KEY: storage.read(PRODUCTS_KEY)})).get_products() == []


def test_failed_product_write_stores_nothing(
    coordinator: MutationCoordinator, store: RecordStore, storage: FailingStorage
) -> None:
    storage.fail_keys.add(PRODUCTS_KEY)

    with pytest.raises(PersistenceError):
        coordinator.add_product(_product_input())

    assert store.get_products() == []
    assert store.get_purchases() == []
    assert PURCHASES_KEY not in storage.writes


def test_failed_sale_write_restores_product_and_leaves_no_orphan_sale(
    coordinator: MutationCoordinator, store: RecordStore, storage: FailingStorage
) -> None:
    product = coordinator.add_product(_product_input(quantity=1)).product
    storage.fail_keys.add(SALES_KEY)

    with pytest.raises(PersistenceError):
        coordinator.record_sale(_sale_input(product.id))

    assert store.get_sales() == []
    restored = RecordStore(storage).get_product(product.id)
    assert restored == product
    assert restored.status == ProductStatus.IN_STOCK


def test_failed_product_update_writes_no_sale(
    coordinator: MutationCoordinator, store: RecordStore, storage: FailingStorage
) -> None:
    product = coordinator.add_product(_product_input(quantity=2)).product
    storage.fail_keys.add(PRODUCTS_KEY)

    with pytest.raises(PersistenceError):
        coordinator.record_sale(_sale_input(product.id))

    assert SALES_KEY not in storage.writes
    assert store.get_product(product.id).quantity == 2


def test_failed_rollback_raises_consistency_fault(
    coordinator: MutationCoordinator, store: RecordStore, storage: FailingStorage
) -> None:
    product = coordinator.add_product(_product_input(quantity=2)).product
    storage.fail_keys.add(SALES_KEY)
    # The product update succeeds, the rollback write is refused.
    storage.fail_after[PRODUCTS_KEY] = storage.writes[PRODUCTS_KEY] + 1

    with pytest.raises(ConsistencyFault) as excinfo:
        coordinator.record_sale(_sale_input(product.id))

    assert excinfo.value.operation == "record_sale"
    assert store.get_sales() == []
    assert store.get_product(product.id).quantity == 1


def test_failed_product_removal_raises_consistency_fault(
    coordinator: MutationCoordinator, store: RecordStore, storage: FailingStorage
) -> None:
    storage.fail_keys.add(PURCHASES_KEY)
    # The product write succeeds, removing it again is refused.
    storage.fail_after[PRODUCTS_KEY] = storage.writes.get(PRODUCTS_KEY, 0) + 1

    with pytest.raises(ConsistencyFault) as excinfo:
        coordinator.add_product(_product_input())

    assert excinfo.value.operation == "add_product"
    assert store.get_purchases() == []
    # The orphaned product stays in memory and in storage.
    assert [p.name for p in store.get_products()] == ["Galaxy A14"]
    assert RecordStore(FailingStorage({PRODUCTS_KEY: storage.read(PRODUCTS_KEY)})).get_products() == store.get_products()


def test_coordinator_rejects_naive_clock(store: RecordStore) -> None:
    coordinator = MutationCoordinator(store, ids=SequentialIdGenerator(), clock=lambda: datetime(2025, 3, 15, 12, 0))

    with pytest.raises(ValueError):
        coordinator.add_product(_product_input())

    assert store.get_products() == []


def test_default_coordinator_uses_uuid_ids_and_local_clock(store: RecordStore) -> None:
    result = MutationCoordinator(store).add_product(_product_input())

    assert len(result.product.id) == 36
    assert result.product.date_added.tzinfo is not None
    assert result.purchase.bill_number.startswith("PUR-")
