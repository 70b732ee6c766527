# Overview: Per-session inventory workspace; cached collections and the mutations that patch them.

"""
Inventory Workspace

Holds what one signed-in client sees: its products, sales and
notifications, fetched from the document store, and the operations that
change them.

Mutations write through the store first and patch the cached lists only
after the write returned, so a failed write leaves the cache as it was.
Store failures are not caught here; they propagate to the caller. Multi-step
operations are not transactional: a sale can be written and its stock
decrement then fail, and that partial state is what the store (and, until
the next fetch, the cache) will show.

Every operation takes the acting principal explicitly. The cache is patched
only while that principal is still the one the workspace was loaded for.
"""
from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Any, Mapping

from .document_store import (
    COLLECTIONS,
    DocumentStore,
    OWNER_FIELD,
    PRODUCTS,
    SALES,
    NOTIFICATIONS,
)
from .identity_service import Principal
from .metrics_service import LOW_STOCK_THRESHOLD
from .notification_service import notify, SUCCESS, WARNING, INFO
from .repository_service import fetch_owned, sort_sales_latest_first
from ..validation import ConflictError, validate_product_form, validate_sale_quantity
from stockroom.time_utils import Timestamp


logger = logging.getLogger(__name__)

SALE_STATUS_COMPLETED = "Completed"
ORDER_ID_PREFIX = "ORD-"


class SaleRejected(ConflictError):
    """The sale cannot be recorded; nothing was written."""


class NotSignedIn(Exception):
    """A mutation was attempted without a principal."""


def generate_order_id(rng: random.Random | None = None) -> str:
    """
    ``ORD-`` plus six random digits.

    Human-readable, not unique: two sales can draw the same number.
    """
    rng = rng or random
    return f"{ORDER_ID_PREFIX}{rng.randint(100000, 999999)}"


class InventoryWorkspace:
    def __init__(self, store: DocumentStore, *, rng: random.Random | None = None):
        self.store = store
        self.products: list[dict] = []
        self.sales: list[dict] = []
        self.notifications: list[dict] = []
        self.loading = False
        self._principal: Principal | None = None
        self._rng = rng

    @property
    def principal(self) -> Principal | None:
        return self._principal

    def is_current(self, uid: str | None) -> bool:
        return uid is not None and self._principal is not None and self._principal.uid == uid

    # ------------------------------------------------------------------
    # Session hooks
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Forget the principal and drop every cached record."""
        self._principal = None
        self.products.clear()
        self.sales.clear()
        self.notifications.clear()
        self.loading = False

    def activate(self, principal: Principal) -> None:
        self._principal = principal
        self.refresh()

    def refresh(self, collections: tuple[str, ...] = COLLECTIONS) -> bool:
        """
        Refetch ``collections`` for the current principal.

        Returns False when the results were discarded because the principal
        changed while the fetch was in flight.
        """
        principal = self._principal
        if principal is None:
            return False
        uid = principal.uid

        self.loading = True
        try:
            fetched = {c: fetch_owned(self.store, c, uid) for c in collections}
        finally:
            if self.is_current(uid):
                self.loading = False

        if not self.is_current(uid):
            logger.info("Discarding %s fetched for a principal that is no longer signed in",
                        ", ".join(collections))
            return False

        if PRODUCTS in fetched:
            self.products[:] = fetched[PRODUCTS]
        if SALES in fetched:
            self.sales[:] = sort_sales_latest_first(fetched[SALES])
        if NOTIFICATIONS in fetched:
            self.notifications[:] = fetched[NOTIFICATIONS]
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def find_product(self, product_id: str | None) -> dict | None:
        if not product_id:
            return None
        return next((p for p in self.products if p["id"] == product_id), None)

    @staticmethod
    def _require(principal: Principal | None) -> Principal:
        if principal is None:
            raise NotSignedIn("Sign in to change inventory")
        return principal

    def _notify(self, principal: Principal, message: str, type: str) -> None:
        stamped = Timestamp.now()
        notification_id = notify(self.store, principal, message, type, created_at=stamped)
        if notification_id and self.is_current(principal.uid):
            self.notifications.append({
                "id": notification_id,
                "message": message,
                "type": type,
                OWNER_FIELD: principal.uid,
                "created_at": stamped,
            })

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(self, principal: Principal | None, form: Mapping[str, Any]) -> dict:
        principal = self._require(principal)
        fields = validate_product_form(form)

        document = {
            **fields,
            OWNER_FIELD: principal.uid,
            "created_at": datetime.now(timezone.utc),
        }
        product_id = self.store.add_document(PRODUCTS, document)

        record = {"id": product_id, **document}
        if self.is_current(principal.uid):
            self.products.append(record)

        self._notify(principal, f'Product "{fields["name"]}" added successfully', SUCCESS)
        return record

    def update_product(self, principal: Principal | None, product_id: str, form: Mapping[str, Any]) -> dict:
        principal = self._require(principal)
        fields = validate_product_form(form)

        self.store.update_document(PRODUCTS, product_id, fields, owner_id=principal.uid)

        record = None
        if self.is_current(principal.uid):
            record = self.find_product(product_id)
            if record is not None:
                record.update(fields)
        if record is None:
            record = {"id": product_id, **fields}

        if fields["quantity"] < LOW_STOCK_THRESHOLD:
            self._notify(principal, f'Low stock alert for "{fields["name"]}"', WARNING)
        return record

    def delete_product(self, principal: Principal | None, product_id: str) -> None:
        principal = self._require(principal)

        self.store.delete_document(PRODUCTS, product_id, owner_id=principal.uid)

        if self.is_current(principal.uid):
            self.products[:] = [p for p in self.products if p["id"] != product_id]

        self._notify(principal, "Product deleted successfully", INFO)

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def record_sale(self, principal: Principal | None, product_id: str | None, quantity: Any) -> dict:
        """
        Sell ``quantity`` of a cached product.

        Writes the sale, then the stock decrement, then a notification, and
        finally refetches products and sales to reconcile the cache.
        """
        principal = self._require(principal)

        product = self.find_product(product_id) if self.is_current(principal.uid) else None
        if product is None:
            raise SaleRejected("Select a product")

        qty = validate_sale_quantity(quantity)
        stock = product.get("quantity") or 0
        if qty > stock:
            raise SaleRejected("Not enough stock")

        price = product["price"]
        sale = {
            "order_id": generate_order_id(self._rng),
            "product_name": product["name"],
            "quantity": qty,
            "price": price,
            "amount": price * qty,
            "date": Timestamp.now(),
            "status": SALE_STATUS_COMPLETED,
            OWNER_FIELD: principal.uid,
        }
        sale_id = self.store.add_document(SALES, sale)
        record = {"id": sale_id, **sale}
        if self.is_current(principal.uid):
            self.sales.insert(0, record)

        remaining = stock - qty
        self.store.update_document(PRODUCTS, product["id"], {"quantity": remaining}, owner_id=principal.uid)
        if self.is_current(principal.uid):
            product["quantity"] = remaining

        self._notify(principal, f'New sale recorded for "{product["name"]}"', INFO)

        self.refresh((PRODUCTS, SALES))
        return record
