# Overview: Derived metrics over fetched records; pure functions, no I/O.

"""
Dashboard metrics

Sales documents were written by more than one code path over time, so the
readers here accept every shape seen in the store:

- the sale date is in ``date`` or, on older records, ``created_at``; it may be
  a store Timestamp, a bare ``{"seconds": ...}`` mapping, or a datetime
- revenue is ``amount``, else the older ``total_amount``, else
  ``price * quantity``

Nothing here raises on a malformed record; it is counted as undated or as
zero revenue instead.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from numbers import Number
from typing import Any

from stockroom.time_utils import as_aware_utc


OUT_OF_STOCK = "Out of Stock"
LOW_STOCK = "Low Stock"
IN_STOCK = "In Stock"

# Status labels switch at this quantity; the update alert uses the same bound
LOW_STOCK_THRESHOLD = 5


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """Parse a field as a number; NaN when it is not one."""
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    return math.nan


def _seconds_of(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value.get("seconds")
    return getattr(value, "seconds", None)


def sale_date(sale: Mapping[str, Any]) -> datetime | None:
    """The sale's moment as an aware UTC datetime, or None."""
    raw = sale.get("date")
    if raw is None:
        raw = sale.get("created_at")
    if not raw:
        return None

    seconds = _seconds_of(raw)
    if seconds and _is_number(seconds):
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    to_datetime = getattr(raw, "to_datetime", None)
    if callable(to_datetime):
        return as_aware_utc(to_datetime())
    if isinstance(raw, datetime):
        return as_aware_utc(raw)
    return None


def sale_revenue(sale: Mapping[str, Any]) -> float:
    amount = sale.get("amount")
    if _is_number(amount):
        return amount
    total_amount = sale.get("total_amount")
    if _is_number(total_amount):
        return total_amount
    price = to_number(sale.get("price"))
    quantity = to_number(sale.get("quantity"))
    if not math.isnan(price) and not math.isnan(quantity):
        return price * quantity
    return 0


def total_revenue(sales: Iterable[Mapping[str, Any]]) -> float:
    return sum((sale_revenue(s) for s in sales), 0)


def _local_day(dt: datetime) -> date:
    return dt.astimezone().date()


def today_orders(sales: Iterable[Mapping[str, Any]], now: datetime | None = None) -> int:
    """Sales dated on the current calendar day in the server's local time zone."""
    today = _local_day(as_aware_utc(now) if now else datetime.now(timezone.utc))
    count = 0
    for sale in sales:
        d = sale_date(sale)
        if d is not None and _local_day(d) == today:
            count += 1
    return count


def low_stock_count(products: Iterable[Mapping[str, Any]]) -> int:
    """Products at or below the threshold; a missing quantity reads as 0."""
    count = 0
    for product in products:
        raw = product.get("quantity")
        quantity = 0 if raw is None else to_number(raw)
        if not math.isnan(quantity) and quantity <= LOW_STOCK_THRESHOLD:
            count += 1
    return count


def stock_status(quantity: Any) -> str:
    quantity = to_number(quantity)
    if quantity == 0:
        return OUT_OF_STOCK
    if quantity < LOW_STOCK_THRESHOLD:
        return LOW_STOCK
    return IN_STOCK


def chart_series(sales: Iterable[Mapping[str, Any]]) -> list[dict]:
    """
    Revenue per UTC calendar day, as ``[{"name": "YYYY-MM-DD", "revenue": n}]``.

    Days appear in the order they are first seen in ``sales``; undated sales
    are left out.
    """
    per_day: dict[str, float] = {}
    for sale in sales:
        d = sale_date(sale)
        if d is None:
            continue
        key = d.date().isoformat()
        per_day[key] = per_day.get(key, 0) + sale_revenue(sale)
    return [{"name": k, "revenue": v} for k, v in per_day.items()]


def filter_products(products: Iterable[Mapping[str, Any]], term: str | None) -> list[Mapping[str, Any]]:
    """Products whose name or category contains ``term``, ignoring case."""
    products = list(products)
    needle = (term or "").strip().lower()
    if not needle:
        return products
    return [
        p for p in products
        if needle in str(p.get("name") or "").lower()
        or needle in str(p.get("category") or "").lower()
    ]


def dashboard_summary(
    products: Iterable[Mapping[str, Any]],
    sales: Iterable[Mapping[str, Any]],
    now: datetime | None = None,
) -> dict:
    products = list(products)
    sales = list(sales)
    return {
        "total_revenue": total_revenue(sales),
        "today_orders": today_orders(sales, now=now),
        "low_stock_count": low_stock_count(products),
        "chart": chart_series(sales),
        "debug": {
            "sales_documents": len(sales),
            "product_documents": len(products),
            "sales_have_dates": any(sale_date(s) is not None for s in sales),
            "sales_have_revenue": any(sale_revenue(s) > 0 for s in sales),
        },
    }
