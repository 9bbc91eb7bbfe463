"""
Tests for DashboardSelector: headline stats, monthly movement and the
inventory analytics breakdowns.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from inventory_config import LedgerSettings
from inventory_kernel.domain.actor import Role
from inventory_kernel.exceptions import InsufficientStockError, UnauthorizedError, ValidationError
from inventory_kernel.selectors.dashboard_selector import DashboardSelector, bucket_label


class TestStats:
    def test_rice_walkthrough(self, stock_ledger, dashboard_selector, make_product, admin_actor):
        """In 50, out 200 refused, out 150, out 1 refused."""
        rice = make_product("Rice", opening_stock="100")
        stock_ledger.record_stock_in(rice.id, 50, admin_actor)
        with pytest.raises(InsufficientStockError):
            stock_ledger.record_stock_out(rice.id, 200, admin_actor)
        stock_ledger.record_stock_out(rice.id, 150, admin_actor)
        with pytest.raises(InsufficientStockError):
            stock_ledger.record_stock_out(rice.id, 1, admin_actor)

        stats = dashboard_selector.get_stats(admin_actor)

        assert stats.total_products == 1
        assert stats.active_products == 1
        assert stats.total_stock == Decimal("0.00")
        assert stats.today_stock_in == Decimal("50.00")
        # Refused movements write nothing, so only the committed 150 counts
        assert stats.today_stock_out == Decimal("150.00")
        assert stats.low_stock_products == 1

    def test_empty_store(self, dashboard_selector, admin_actor):
        stats = dashboard_selector.get_stats(admin_actor)
        assert stats.total_products == 0
        assert stats.total_stock == Decimal("0.00")
        assert stats.today_stock_in == Decimal("0.00")

    def test_inactive_products_excluded_from_stock(
        self, dashboard_selector, product_service, make_product, admin_actor
    ):
        make_product(opening_stock="40")
        gone = make_product(opening_stock="60")
        product_service.deactivate_product(gone.id, admin_actor)

        stats = dashboard_selector.get_stats(admin_actor)
        assert stats.total_products == 2
        assert stats.active_products == 1
        assert stats.total_stock == Decimal("40.00")

    def test_yesterday_not_counted(self, stock_ledger, dashboard_selector, make_product, admin_actor, deterministic_clock):
        product = make_product(opening_stock="10")
        yesterday = deterministic_clock.now() - timedelta(days=1)
        stock_ledger.record_stock_in(product.id, 5, admin_actor, transaction_date=yesterday)
        stock_ledger.record_stock_in(product.id, 3, admin_actor)

        assert dashboard_selector.get_stats(admin_actor).today_stock_in == Decimal("3.00")

    def test_today_uses_business_timezone(self, session, stock_ledger, make_product, admin_actor, deterministic_clock):
        # 20:00 UTC is 01:30 the next day in Kolkata (UTC+05:30)
        deterministic_clock.set_time(datetime(2024, 1, 1, 20, 0, tzinfo=UTC))
        product = make_product(opening_stock="10")
        stock_ledger.record_stock_in(
            product.id, 7, admin_actor, transaction_date=datetime(2024, 1, 1, 19, 0, tzinfo=UTC)
        )
        stock_ledger.record_stock_in(
            product.id, 11, admin_actor, transaction_date=datetime(2024, 1, 1, 18, 0, tzinfo=UTC)
        )

        kolkata = DashboardSelector(
            session,
            deterministic_clock,
            settings=LedgerSettings(database_url="sqlite://", business_timezone="Asia/Kolkata"),
        )
        utc = DashboardSelector(session, deterministic_clock)

        assert kolkata.get_stats(admin_actor).today_stock_in == Decimal("7.00")
        assert utc.get_stats(admin_actor).today_stock_in == Decimal("18.00")

    def test_configured_threshold(self, session, deterministic_clock, make_product, admin_actor):
        make_product(opening_stock="3")
        make_product(opening_stock="8")
        selector = DashboardSelector(
            session,
            deterministic_clock,
            settings=LedgerSettings(database_url="sqlite://", low_stock_threshold=Decimal("5")),
        )
        assert selector.get_stats(admin_actor).low_stock_products == 1

    def test_requires_view_dashboard(self, dashboard_selector, make_actor):
        with pytest.raises(UnauthorizedError):
            dashboard_selector.get_stats(make_actor(Role.STOCK_IN_MANAGER))


class TestMonthlyMovement:
    def test_month_totals(self, stock_ledger, dashboard_selector, make_product, admin_actor):
        product = make_product(opening_stock="100")
        stock_ledger.record_stock_in(
            product.id, 10, admin_actor, transaction_date=datetime(2024, 2, 1, 0, 0, tzinfo=UTC)
        )
        stock_ledger.record_stock_out(
            product.id, 4, admin_actor, transaction_date=datetime(2024, 2, 29, 23, 59, tzinfo=UTC)
        )
        stock_ledger.record_stock_in(
            product.id, 99, admin_actor, transaction_date=datetime(2024, 3, 1, 0, 0, tzinfo=UTC)
        )

        february = dashboard_selector.get_monthly_movement(admin_actor, 2024, 2)
        assert february.stock_in == Decimal("10.00")
        assert february.stock_out == Decimal("4.00")
        assert february.net_movement == Decimal("6.00")

    def test_december_window(self, dashboard_selector):
        start, end = dashboard_selector.month_window(2023, 12)
        assert (start.year, start.month) == (2023, 12)
        assert (end.year, end.month, end.day) == (2024, 1, 1)

    @pytest.mark.parametrize("month", [0, 13])
    def test_bad_month(self, dashboard_selector, admin_actor, month):
        with pytest.raises(ValidationError):
            dashboard_selector.get_monthly_movement(admin_actor, 2024, month)


class TestLowStockProducts:
    def test_lowest_first(self, dashboard_selector, product_service, make_product, admin_actor):
        make_product("Plenty", opening_stock="500")
        make_product("Few", opening_stock="4")
        make_product("None", opening_stock="0")
        gone = make_product("Gone", opening_stock="1")
        product_service.deactivate_product(gone.id, admin_actor)

        names = [p.name for p in dashboard_selector.low_stock_products(admin_actor)]
        assert names == ["None", "Few"]

    def test_explicit_threshold(self, dashboard_selector, make_product, admin_actor):
        make_product("Some", opening_stock="20")
        assert [p.name for p in dashboard_selector.low_stock_products(admin_actor, threshold=25)] == ["Some"]


class TestStockBuckets:
    @pytest.mark.parametrize(
        "stock, label",
        [
            ("0", "0"),
            ("0.01", "1-10"),
            ("10", "1-10"),
            ("10.5", "11-50"),
            ("50", "11-50"),
            ("100", "51-100"),
            ("100.01", "100+"),
            ("1000000", "100+"),
        ],
    )
    def test_bucket_label(self, stock, label):
        assert bucket_label(Decimal(stock)) == label


class TestInventoryAnalytics:
    def test_breakdowns(self, stock_ledger, dashboard_selector, make_product, admin_actor, deterministic_clock):
        rice = make_product("Rice", opening_stock="5", unit="kg")
        oil = make_product("Oil", opening_stock="60", unit="l")
        make_product("Salt", opening_stock="0", unit="kg")
        make_product("Beans", opening_stock="300", unit="kg")

        stock_ledger.record_stock_in(rice.id, 20, admin_actor)
        stock_ledger.record_stock_out(oil.id, 5, admin_actor)
        stock_ledger.record_stock_out(oil.id, 5, admin_actor)
        # Outside the 30-day window
        stock_ledger.record_stock_in(
            oil.id, 1000, admin_actor,
            transaction_date=deterministic_clock.now() - timedelta(days=31),
        )

        analytics = dashboard_selector.get_inventory_analytics(admin_actor)

        by_unit = {c.category: c for c in analytics.products_by_category}
        assert by_unit["kg"].product_count == 3
        assert by_unit["kg"].total_stock == Decimal("325.00")
        assert by_unit["l"].product_count == 1
        assert analytics.products_by_category[0].category == "kg"

        top = analytics.top_moving_products
        assert [(t.name, t.total_movement, t.transaction_count) for t in top] == [
            ("Rice", Decimal("20.00"), 1),
            ("Oil", Decimal("10.00"), 2),
        ]

        distribution = {b.label: b.product_count for b in analytics.stock_distribution}
        # Rice 25, Oil 1050, Salt 0, Beans 300
        assert distribution == {"0": 1, "1-10": 0, "11-50": 1, "51-100": 0, "100+": 2}
        assert [b.label for b in analytics.stock_distribution] == ["0", "1-10", "11-50", "51-100", "100+"]

    def test_monthly_trends(self, stock_ledger, dashboard_selector, make_product, admin_actor):
        product = make_product(opening_stock="100")
        stock_ledger.record_stock_in(
            product.id, 8, admin_actor, transaction_date=datetime(2023, 11, 15, tzinfo=UTC)
        )
        stock_ledger.record_stock_out(
            product.id, 3, admin_actor, transaction_date=datetime(2023, 11, 20, tzinfo=UTC)
        )
        # Before the six-month window
        stock_ledger.record_stock_in(
            product.id, 50, admin_actor, transaction_date=datetime(2023, 7, 31, tzinfo=UTC)
        )

        trends = dashboard_selector.get_inventory_analytics(admin_actor).monthly_trends

        assert [t.month for t in trends] == [
            "2023-08", "2023-09", "2023-10", "2023-11", "2023-12", "2024-01",
        ]
        november = trends[3]
        assert (november.stock_in, november.stock_out) == (Decimal("8.00"), Decimal("3.00"))
        assert all(t.stock_in == 0 for t in trends if t.month != "2023-11")
