# Overview: Pytest coverage for owner-scoped fetches and inventory workspace mutations.

"""
Inventory Workspace Tests

Runs the workspace against an in-memory store so every store call can be
inspected, and so store failures can be injected at any step.
"""

import random

import pytest

from conftest import MemoryDocumentStore
from stockroom.services.document_store import (
    DocumentNotFound,
    DocumentStoreError,
    NOTIFICATIONS,
    OWNER_FIELD,
    PRODUCTS,
    SALES,
)
from stockroom.services.inventory_service import (
    InventoryWorkspace,
    NotSignedIn,
    SaleRejected,
    generate_order_id,
)
from stockroom.services.repository_service import SaleRow, fetch_owned, sort_sales_latest_first
from stockroom.time_utils import Timestamp
from stockroom.validation import ValidationError


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def workspace(store, principal_a):
    ws = InventoryWorkspace(store, rng=random.Random(7))
    ws.activate(principal_a)
    return ws


def seed_product(store, owner, name="Mug", quantity=10, price=4):
    return store.seed(PRODUCTS, {
        "name": name, "category": "Kitchen", "price": price,
        "quantity": quantity, OWNER_FIELD: owner,
    })


class TestFetchOwned:
    def test_filters_on_owner(self, store):
        seed_product(store, "uid-a", "Mine")
        seed_product(store, "uid-b", "Theirs")

        records = fetch_owned(store, PRODUCTS, "uid-a")

        assert [r["name"] for r in records] == ["Mine"]
        assert records[0]["id"]
        assert store.calls == [("query", PRODUCTS, {OWNER_FIELD: "uid-a"})]

    def test_no_owner_issues_no_query(self, store):
        assert fetch_owned(store, PRODUCTS, None) == []
        assert store.calls == []

    def test_store_failure_reads_as_empty(self, store):
        seed_product(store, "uid-a")
        store.fail_on = "query"

        assert fetch_owned(store, PRODUCTS, "uid-a") == []

    def test_sales_sort_latest_first_undated_last(self):
        sales = [
            {"id": "old", "date": Timestamp(seconds=100)},
            {"id": "none"},
            {"id": "new", "created_at": {"seconds": 300}},
        ]
        assert [s["id"] for s in sort_sales_latest_first(sales)] == ["new", "old", "none"]

    def test_sale_row_normalizes_legacy_shape(self):
        row = SaleRow.from_record({
            "id": "s1",
            "order_id": "ORD-123456",
            "product_name": "Mug",
            "quantity": 2,
            "total_amount": 9,
            "created_at": {"seconds": 1704067200},
        })
        assert row.amount == 9
        assert row.to_dict()["date"] == "2024-01-01T00:00:00Z"
        assert row.status is None


class TestRefresh:
    def test_activate_loads_every_collection(self, store, principal_a):
        seed_product(store, "uid-a")
        store.seed(SALES, {"amount": 5, OWNER_FIELD: "uid-a"})
        store.seed(NOTIFICATIONS, {"message": "hi", OWNER_FIELD: "uid-a"})
        seed_product(store, "uid-b")

        ws = InventoryWorkspace(store)
        ws.activate(principal_a)

        assert len(ws.products) == 1
        assert len(ws.sales) == 1
        assert len(ws.notifications) == 1
        assert ws.loading is False
        # Every read carries the owner filter
        assert all(c[2] == {OWNER_FIELD: "uid-a"} for c in store.calls_of("query"))

    def test_failing_collection_does_not_block_the_others(self, store, principal_a):
        seed_product(store, "uid-a")
        store.seed(SALES, {"amount": 5, OWNER_FIELD: "uid-a"})
        store.fail_on = "query"
        store.fail_collection = SALES

        ws = InventoryWorkspace(store)
        ws.activate(principal_a)

        assert len(ws.products) == 1
        assert ws.sales == []

    def test_results_for_a_signed_out_principal_are_discarded(self, store, principal_a):
        seed_product(store, "uid-a")
        ws = InventoryWorkspace(store)

        # Sign-out lands while the first fetch is still in flight
        store.on_query = lambda collection: ws.reset()
        ws.activate(principal_a)

        assert ws.products == []
        assert ws.principal is None
        assert ws.loading is False

    def test_refresh_without_principal_is_a_no_op(self, store):
        ws = InventoryWorkspace(store)
        assert ws.refresh() is False
        assert store.calls == []

    def test_reset_clears_cache(self, workspace, store):
        seed_product(store, "uid-a")
        workspace.refresh()
        workspace.reset()
        assert (workspace.products, workspace.sales, workspace.notifications) == ([], [], [])


class TestProducts:
    FORM = {"name": "Mug", "category": "Kitchen", "price": "4.50", "quantity": "12"}

    def test_create_writes_owned_document_and_notifies(self, workspace, store, principal_a):
        created = workspace.create_product(principal_a, self.FORM)

        add_product, add_notification = store.calls_of("add")
        assert add_product[1] == PRODUCTS
        assert add_product[2][OWNER_FIELD] == "uid-a"
        assert add_product[2]["price"] == 4.5
        assert add_product[2]["quantity"] == 12
        assert add_product[2]["created_at"].tzinfo is not None

        assert add_notification[1] == NOTIFICATIONS
        assert add_notification[2]["message"] == 'Product "Mug" added successfully'
        assert add_notification[2]["type"] == "success"
        assert isinstance(add_notification[2]["created_at"], Timestamp)

        assert workspace.products == [created]
        assert len(workspace.notifications) == 1

    def test_cached_notification_matches_what_a_refetch_returns(self, workspace, store, principal_a):
        workspace.create_product(principal_a, self.FORM)
        cached = list(workspace.notifications)

        workspace.refresh()

        assert isinstance(cached[0]["created_at"], Timestamp)
        assert cached == workspace.notifications

    @pytest.mark.parametrize("form, message", [
        ({"name": "", "category": "x", "price": 1, "quantity": 1}, "All fields are required"),
        ({"name": "a", "category": "x", "price": 0, "quantity": 1}, "Price must be greater than 0"),
        ({"name": "a", "category": "x", "price": 1, "quantity": -1}, "Quantity cannot be negative"),
    ])
    def test_invalid_form_writes_nothing(self, workspace, store, principal_a, form, message):
        with pytest.raises(ValidationError, match=message):
            workspace.create_product(principal_a, form)
        assert store.calls_of("add") == []

    def test_create_requires_principal(self, workspace, store):
        with pytest.raises(NotSignedIn):
            workspace.create_product(None, self.FORM)
        assert store.calls_of("add") == []

    def test_failed_create_leaves_cache_untouched(self, workspace, store, principal_a):
        store.fail_on = "add"
        with pytest.raises(DocumentStoreError):
            workspace.create_product(principal_a, self.FORM)
        assert workspace.products == []
        assert workspace.notifications == []

    def test_update_low_quantity_emits_warning(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-a", quantity=10)
        workspace.refresh()

        workspace.update_product(principal_a, product_id, {**self.FORM, "quantity": 4})

        assert store.collections[PRODUCTS][product_id]["quantity"] == 4
        assert workspace.find_product(product_id)["quantity"] == 4
        notification = store.calls_of("add")[-1][2]
        assert notification["type"] == "warning"
        assert notification["message"] == 'Low stock alert for "Mug"'

    def test_update_at_threshold_does_not_warn(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-a")
        workspace.refresh()

        workspace.update_product(principal_a, product_id, {**self.FORM, "quantity": 5})

        assert store.calls_of("add") == []

    def test_update_foreign_product_is_not_found(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-b")
        with pytest.raises(DocumentNotFound):
            workspace.update_product(principal_a, product_id, self.FORM)

    def test_delete_removes_and_notifies(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-a")
        workspace.refresh()

        workspace.delete_product(principal_a, product_id)

        assert product_id not in store.collections[PRODUCTS]
        assert workspace.products == []
        notification = store.calls_of("add")[-1][2]
        assert notification == {
            "message": "Product deleted successfully",
            "type": "info",
            OWNER_FIELD: "uid-a",
            "created_at": notification["created_at"],
        }


class TestRecordSale:
    def test_sale_decrements_stock_and_notifies(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-a", quantity=10, price=4)
        workspace.refresh()

        sale = workspace.record_sale(principal_a, product_id, "3")

        assert sale["order_id"].startswith("ORD-")
        assert len(sale["order_id"]) == 10
        assert sale["amount"] == 12
        assert sale["price"] == 4
        assert sale["quantity"] == 3
        assert sale["status"] == "Completed"
        assert sale[OWNER_FIELD] == "uid-a"
        assert isinstance(sale["date"], Timestamp)

        assert store.collections[PRODUCTS][product_id]["quantity"] == 7
        assert workspace.find_product(product_id)["quantity"] == 7
        assert [s["id"] for s in workspace.sales] == [sale["id"]]
        assert workspace.notifications[-1]["message"] == 'New sale recorded for "Mug"'

    def test_write_order(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-a", quantity=2)
        workspace.refresh()
        store.calls.clear()

        workspace.record_sale(principal_a, product_id, 2)

        writes = [(c[0], c[1]) for c in store.calls if c[0] != "query"]
        assert writes == [("add", SALES), ("update", PRODUCTS), ("add", NOTIFICATIONS)]
        # Products and sales are refetched afterwards
        assert {c[1] for c in store.calls_of("query")} == {PRODUCTS, SALES}

    def test_selling_entire_stock_is_allowed(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-a", quantity=2)
        workspace.refresh()
        workspace.record_sale(principal_a, product_id, 2)
        assert workspace.find_product(product_id)["quantity"] == 0

    def test_not_enough_stock_writes_nothing(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-a", quantity=2)
        workspace.refresh()
        store.calls.clear()

        with pytest.raises(SaleRejected, match="Not enough stock"):
            workspace.record_sale(principal_a, product_id, 3)
        assert store.calls == []

    def test_unselected_product_is_rejected(self, workspace, store, principal_a):
        with pytest.raises(SaleRejected, match="Select a product"):
            workspace.record_sale(principal_a, None, 1)
        with pytest.raises(SaleRejected, match="Select a product"):
            workspace.record_sale(principal_a, "missing", 1)
        assert store.calls_of("add") == []

    def test_non_positive_quantity_is_rejected(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-a")
        workspace.refresh()
        with pytest.raises(ValidationError, match="Quantity must be at least 1"):
            workspace.record_sale(principal_a, product_id, 0)

    def test_failed_decrement_keeps_the_sale(self, workspace, store, principal_a):
        product_id = seed_product(store, "uid-a", quantity=5)
        workspace.refresh()
        store.fail_on = "update"

        with pytest.raises(DocumentStoreError):
            workspace.record_sale(principal_a, product_id, 1)

        # Sale written, stock untouched, no notification
        assert len(store.collections[SALES]) == 1
        assert store.collections[PRODUCTS][product_id]["quantity"] == 5
        assert workspace.find_product(product_id)["quantity"] == 5
        assert NOTIFICATIONS not in store.collections


def test_order_id_format():
    order_id = generate_order_id(random.Random(1))
    assert order_id.startswith("ORD-")
    assert 100000 <= int(order_id[4:]) <= 999999
