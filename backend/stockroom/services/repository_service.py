# Overview: Owner-scoped reads from the document store, plus sale-row normalization.

"""
Scoped Repository Access

Every read goes through ``fetch_owned``, which always filters on the owner
field. A missing owner id means nobody is signed in: the query is not issued
at all rather than being sent without a filter.

Read failures never reach the caller. They are logged and the caller gets an
empty list, so a flaky store degrades a page instead of breaking it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from .document_store import DocumentStore, DocumentStoreError, OWNER_FIELD
from .metrics_service import sale_date, sale_revenue
from stockroom.time_utils import to_utc_z


logger = logging.getLogger(__name__)


def fetch_owned(store: DocumentStore, collection: str, owner_id: str | None) -> list[dict]:
    """
    Records of ``collection`` owned by ``owner_id``, in no particular order.

    Each record is the document's fields with its ``id`` merged in.
    """
    if not owner_id:
        logger.debug("Skipping %s fetch: no signed-in principal", collection)
        return []

    try:
        documents = store.query(collection, {OWNER_FIELD: owner_id})
    except DocumentStoreError:
        logger.exception("Error fetching %s for owner %s", collection, owner_id)
        return []

    return [doc.to_record() for doc in documents]


def _sale_sort_key(sale: Mapping[str, Any]) -> float:
    d = sale_date(sale)
    return d.timestamp() if d is not None else 0


def sort_sales_latest_first(sales: list[dict]) -> list[dict]:
    """Most recent first; undated sales sort as the epoch, i.e. last."""
    return sorted(sales, key=_sale_sort_key, reverse=True)


@dataclass(frozen=True)
class SaleRow:
    """
    A sale in one canonical shape, whatever fields its document used.
    """
    id: str
    order_id: str | None
    product_name: str | None
    quantity: Any
    amount: float
    date: datetime | None
    status: str | None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "SaleRow":
        return cls(
            id=record.get("id"),
            order_id=record.get("order_id"),
            product_name=record.get("product_name"),
            quantity=record.get("quantity"),
            amount=sale_revenue(record),
            date=sale_date(record),
            status=record.get("status"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "amount": self.amount,
            "date": to_utc_z(self.date),
            "status": self.status,
        }
