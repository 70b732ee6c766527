# Overview: Pytest coverage for dashboard metrics over heterogeneous sale records.

"""
Metrics Tests

Sales in the store come in several shapes (date vs created_at, Timestamp vs
seconds mapping vs datetime, amount vs total_amount vs price*quantity). These
tests pin the readers down for each shape and check the derived figures.
"""

import math
import random
from datetime import datetime, timedelta, timezone

from stockroom.services.metrics_service import (
    IN_STOCK,
    LOW_STOCK,
    OUT_OF_STOCK,
    chart_series,
    dashboard_summary,
    filter_products,
    low_stock_count,
    sale_date,
    sale_revenue,
    stock_status,
    to_number,
    today_orders,
    total_revenue,
)
from stockroom.time_utils import Timestamp


JAN_1 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
JAN_2 = datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc)


class TestSaleDate:
    def test_timestamp_in_date_field(self):
        assert sale_date({"date": Timestamp.from_datetime(JAN_1)}) == JAN_1

    def test_seconds_mapping(self):
        assert sale_date({"date": {"seconds": 1704067200}}) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_plain_datetime_falls_back_to_created_at(self):
        assert sale_date({"created_at": JAN_2}) == JAN_2

    def test_naive_datetime_is_read_as_utc(self):
        assert sale_date({"date": datetime(2024, 1, 1, 12, 0)}) == JAN_1

    def test_date_wins_over_created_at(self):
        sale = {"date": Timestamp.from_datetime(JAN_1), "created_at": JAN_2}
        assert sale_date(sale) == JAN_1

    def test_undated_and_garbage(self):
        assert sale_date({}) is None
        assert sale_date({"date": "yesterday"}) is None
        assert sale_date({"date": {"seconds": "nope"}}) is None
        assert sale_date({"date": {"seconds": 0}}) is None


class TestSaleRevenue:
    def test_amount_first(self):
        assert sale_revenue({"amount": 30, "total_amount": 99, "price": 1, "quantity": 1}) == 30

    def test_total_amount_second(self):
        assert sale_revenue({"total_amount": 15.5}) == 15.5

    def test_price_times_quantity(self):
        assert sale_revenue({"price": 10, "quantity": 3}) == 30

    def test_price_and_quantity_as_strings(self):
        assert sale_revenue({"price": "2.5", "quantity": "4"}) == 10

    def test_nothing_usable_is_zero(self):
        assert sale_revenue({"price": "abc", "quantity": 2}) == 0
        assert sale_revenue({}) == 0

    def test_zero_amount_is_kept(self):
        assert sale_revenue({"amount": 0, "total_amount": 50}) == 0


class TestDerivedMetrics:
    def test_total_revenue_over_mixed_shapes(self):
        sales = [
            {"amount": 30},
            {"total_amount": 20},
            {"price": 5, "quantity": 2},
            {"note": "legacy row without money"},
        ]
        assert total_revenue(sales) == 60

    def test_total_revenue_empty(self):
        assert total_revenue([]) == 0

    def test_total_revenue_is_sum_of_per_sale_revenue_in_any_order(self):
        sales = [
            {"amount": 12.5},
            {"total_amount": 7},
            {"price": "3", "quantity": 4},
            {"amount": 0, "total_amount": 99},
            {},
            {"price": 2.25, "quantity": 2},
        ]
        expected = sum(sale_revenue(s) for s in sales)
        shuffled = list(sales)
        random.Random(3).shuffle(shuffled)

        assert total_revenue(sales) == expected
        assert total_revenue(reversed(sales)) == expected
        assert total_revenue(shuffled) == expected

    def test_today_orders_uses_local_calendar_day(self):
        now = datetime.now(timezone.utc)
        sales = [
            {"date": Timestamp.from_datetime(now)},
            {"created_at": now},
            {"date": Timestamp.from_datetime(now - timedelta(days=3))},
            {"amount": 5},
        ]
        assert today_orders(sales, now=now) == 2

    def test_low_stock_count_is_inclusive(self):
        products = [
            {"quantity": 0},
            {"quantity": 5},
            {"quantity": "3"},
            {"quantity": 6},
            {"quantity": None},
            {"quantity": "n/a"},
        ]
        # Missing quantity reads as 0; unparseable text is skipped
        assert low_stock_count(products) == 4

    def test_stock_status_boundaries(self):
        assert stock_status(0) == OUT_OF_STOCK
        assert stock_status(4) == LOW_STOCK
        # 5 is counted as low stock but labelled in stock
        assert stock_status(5) == IN_STOCK
        assert stock_status("0") == OUT_OF_STOCK

    def test_to_number(self):
        assert to_number("7") == 7.0
        assert math.isnan(to_number(None))
        assert math.isnan(to_number(True))


class TestChartSeries:
    def test_groups_by_utc_day_in_first_seen_order(self):
        sales = [
            {"date": Timestamp.from_datetime(JAN_2), "amount": 10},
            {"date": Timestamp.from_datetime(JAN_1), "amount": 5},
            {"created_at": JAN_2 + timedelta(hours=3), "price": 2, "quantity": 2},
            {"amount": 100},
        ]
        assert chart_series(sales) == [
            {"name": "2024-01-02", "revenue": 14},
            {"name": "2024-01-01", "revenue": 5},
        ]

    def test_summary_debug_counters(self):
        summary = dashboard_summary(
            products=[{"quantity": 1}],
            sales=[{"amount": 0}],
            now=JAN_1,
        )
        assert summary["total_revenue"] == 0
        assert summary["low_stock_count"] == 1
        assert summary["chart"] == []
        assert summary["debug"] == {
            "sales_documents": 1,
            "product_documents": 1,
            "sales_have_dates": False,
            "sales_have_revenue": False,
        }


class TestFilterProducts:
    PRODUCTS = [
        {"name": "Blue Mug", "category": "Kitchen"},
        {"name": "Desk Lamp", "category": "Office"},
        {"name": None, "category": "mugs"},
    ]

    def test_matches_name_or_category_ignoring_case(self):
        categories = [p["category"] for p in filter_products(self.PRODUCTS, "MUG")]
        assert categories == ["Kitchen", "mugs"]

    def test_blank_term_returns_everything(self):
        assert len(filter_products(self.PRODUCTS, "  ")) == 3
        assert len(filter_products(self.PRODUCTS, None)) == 3
