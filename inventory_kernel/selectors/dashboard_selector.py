"""
Module: inventory_kernel.selectors.dashboard_selector
Responsibility: Derived, read-only inventory statistics: headline counts,
    today's movement totals, monthly movement, and the analytics breakdowns
    (category, top movers, stock-level histogram, monthly trend).
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Computed fresh per call from committed state; nothing is cached.
    - Decimal throughout; aggregates returned by the driver are normalized
      with to_quantity().
    - Calendar windows ("today", a month) are half-open [start, end) in the
      configured business timezone and converted to UTC for the query.

Failure modes:
    - UnauthorizedError before any store access.
    - ValidationError for a month outside 1..12.
    - StoreError wrapping any SQLAlchemy failure.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import TypeVar
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from inventory_kernel.db.errors import translate_store_error
from inventory_kernel.db.types import to_quantity, zero_quantity
from inventory_kernel.domain.access_policy import Operation
from inventory_kernel.domain.actor import ActorContext
from inventory_kernel.domain.dtos import (
    CategoryBreakdown,
    DashboardStats,
    InventoryAnalytics,
    MonthlyMovement,
    MonthlyTrend,
    ProductInfo,
    StockBucket,
    TopMovingProduct,
)
from inventory_kernel.domain.values import MovementType
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.product import Product
from inventory_kernel.models.stock_transaction import StockTransaction
from inventory_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.dashboard")

T = TypeVar("T")

DEFAULT_LOW_STOCK_THRESHOLD = Decimal("10")

# (label, exclusive lower bound, inclusive upper bound); None = unbounded
STOCK_BUCKETS: tuple[tuple[str, Decimal | None, Decimal | None], ...] = (
    ("1-10", Decimal("0"), Decimal("10")),
    ("11-50", Decimal("10"), Decimal("50")),
    ("51-100", Decimal("50"), Decimal("100")),
    ("100+", Decimal("100"), None),
)
ZERO_BUCKET = "0"


def bucket_label(stock: Decimal) -> str:
    """Histogram bucket for a balance; every non-negative value has exactly one."""
    if stock <= 0:
        return ZERO_BUCKET
    for label, lower, upper in STOCK_BUCKETS:
        if stock > lower and (upper is None or stock <= upper):
            return label
    return STOCK_BUCKETS[-1][0]


class DashboardSelector(BaseSelector[Product]):
    """
    Dashboard aggregates.

    Contract:
        Aggregates may reflect some of a set of concurrent movements, but
        never half of one: every movement commits atomically.
    """

    def __init__(self, session, clock=None, policy=None, settings=None):
        super().__init__(session, clock, policy)
        if settings is not None:
            self._tz = ZoneInfo(settings.business_timezone)
            self._low_stock_threshold = Decimal(str(settings.low_stock_threshold))
            self._top_moving_window_days = settings.top_moving_window_days
            self._top_moving_limit = settings.top_moving_limit
            self._trend_months = settings.trend_months
        else:
            self._tz = ZoneInfo("UTC")
            self._low_stock_threshold = DEFAULT_LOW_STOCK_THRESHOLD
            self._top_moving_window_days = 30
            self._top_moving_limit = 10
            self._trend_months = 6

    # =========================================================================
    # Helpers
    # =========================================================================

    def _run(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except SQLAlchemyError as exc:
            raise translate_store_error(exc, operation) from exc

    def _local_midnight(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self._tz)

    def today_window(self) -> tuple[datetime, datetime]:
        """[local midnight today, local midnight tomorrow) as aware datetimes."""
        today = self._clock.now().astimezone(self._tz).date()
        return (
            self._local_midnight(today),
            self._local_midnight(today + timedelta(days=1)),
        )

    def month_window(self, year: int, month: int) -> tuple[datetime, datetime]:
        if not 1 <= month <= 12:
            raise ValidationError("month", "must be between 1 and 12")
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return self._local_midnight(start), self._local_midnight(end)

    def _movement_totals(
        self, start: datetime, end: datetime
    ) -> dict[MovementType, Decimal]:
        stmt = (
            select(StockTransaction.type, func.sum(StockTransaction.quantity))
            .where(StockTransaction.transaction_date >= start)
            .where(StockTransaction.transaction_date < end)
            .group_by(StockTransaction.type)
        )
        totals = {movement: zero_quantity() for movement in MovementType}
        for movement_type, total in self.session.execute(stmt):
            totals[MovementType(movement_type)] = to_quantity(total)
        return totals

    # =========================================================================
    # Queries
    # =========================================================================

    def get_stats(self, actor: ActorContext) -> DashboardStats:
        """Headline counts and today's movement totals."""
        self._policy.require(actor, Operation.VIEW_DASHBOARD)

        def compute() -> DashboardStats:
            total_products = self.session.execute(
                select(func.count()).select_from(Product)
            ).scalar_one()
            active_products, total_stock = self.session.execute(
                select(func.count(), func.sum(Product.current_stock)).where(
                    Product.is_active.is_(True)
                )
            ).one()
            low_stock = self.session.execute(
                select(func.count())
                .select_from(Product)
                .where(Product.is_active.is_(True))
                .where(Product.current_stock < self._low_stock_threshold)
            ).scalar_one()

            start, end = self.today_window()
            totals = self._movement_totals(start, end)

            return DashboardStats(
                total_products=total_products,
                active_products=active_products,
                total_stock=to_quantity(total_stock),
                today_stock_in=totals[MovementType.STOCK_IN],
                today_stock_out=totals[MovementType.STOCK_OUT],
                low_stock_products=low_stock,
            )

        stats = self._run("dashboard_stats", compute)
        logger.debug("dashboard_stats_computed", extra={"active_products": stats.active_products})
        return stats

    def get_monthly_movement(
        self, actor: ActorContext, year: int, month: int
    ) -> MonthlyMovement:
        """Stock in / out totals for one calendar month."""
        self._policy.require(actor, Operation.VIEW_DASHBOARD)
        start, end = self.month_window(year, month)
        totals = self._run("monthly_movement", lambda: self._movement_totals(start, end))
        return MonthlyMovement(
            year=year,
            month=month,
            stock_in=totals[MovementType.STOCK_IN],
            stock_out=totals[MovementType.STOCK_OUT],
        )

    def get_inventory_analytics(self, actor: ActorContext) -> InventoryAnalytics:
        self._policy.require(actor, Operation.VIEW_DASHBOARD)
        return self._run(
            "inventory_analytics",
            lambda: InventoryAnalytics(
                products_by_category=self._products_by_category(),
                top_moving_products=self._top_moving_products(),
                stock_distribution=self._stock_distribution(),
                monthly_trends=self._monthly_trends(),
            ),
        )

    def low_stock_products(
        self, actor: ActorContext, threshold: Decimal | None = None
    ) -> list[ProductInfo]:
        """Active products below the threshold, lowest balance first."""
        self._policy.require(actor, Operation.VIEW_DASHBOARD)
        limit = self._low_stock_threshold if threshold is None else Decimal(str(threshold))
        stmt = (
            select(Product)
            .where(Product.is_active.is_(True))
            .where(Product.current_stock < limit)
            .order_by(Product.current_stock, Product.name)
        )
        products = self._run(
            "low_stock_products", lambda: self.session.execute(stmt).scalars().all()
        )
        return [ProductInfo.from_model(p) for p in products]

    # =========================================================================
    # Analytics parts
    # =========================================================================

    def _products_by_category(self) -> tuple[CategoryBreakdown, ...]:
        count = func.count(Product.id)
        stmt = (
            select(Product.unit, count, func.sum(Product.current_stock))
            .where(Product.is_active.is_(True))
            .group_by(Product.unit)
            .order_by(count.desc(), Product.unit)
        )
        return tuple(
            CategoryBreakdown(
                category=unit,
                product_count=product_count,
                total_stock=to_quantity(total),
            )
            for unit, product_count, total in self.session.execute(stmt)
        )

    def _top_moving_products(self) -> tuple[TopMovingProduct, ...]:
        since = self._clock.now() - timedelta(days=self._top_moving_window_days)
        moved = func.sum(StockTransaction.quantity)
        stmt = (
            select(
                StockTransaction.product_id,
                Product.name,
                moved,
                func.count(StockTransaction.id),
            )
            .outerjoin(Product, StockTransaction.product_id == Product.id)
            .where(StockTransaction.transaction_date >= since)
            .group_by(StockTransaction.product_id, Product.name)
            .order_by(moved.desc(), StockTransaction.product_id)
            .limit(self._top_moving_limit)
        )
        return tuple(
            TopMovingProduct(
                product_id=product_id,
                name=name if name is not None else "Unknown",
                total_movement=to_quantity(total),
                transaction_count=tx_count,
            )
            for product_id, name, total, tx_count in self.session.execute(stmt)
        )

    def _stock_distribution(self) -> tuple[StockBucket, ...]:
        counts = {ZERO_BUCKET: 0}
        counts.update({label: 0 for label, _, _ in STOCK_BUCKETS})
        balances = self.session.execute(
            select(Product.current_stock).where(Product.is_active.is_(True))
        ).scalars()
        for stock in balances:
            counts[bucket_label(to_quantity(stock))] += 1
        return tuple(StockBucket(label=label, product_count=n) for label, n in counts.items())

    def _monthly_trends(self) -> tuple[MonthlyTrend, ...]:
        local_now = self._clock.now().astimezone(self._tz)
        months: list[tuple[int, int]] = []
        year, month = local_now.year, local_now.month
        for _ in range(self._trend_months):
            months.append((year, month))
            year, month = (year - 1, 12) if month == 1 else (year, month - 1)
        months.reverse()

        start, _ = self.month_window(*months[0])
        _, end = self.month_window(*months[-1])

        buckets = {
            key: {movement: zero_quantity() for movement in MovementType}
            for key in months
        }
        rows = self.session.execute(
            select(
                StockTransaction.type,
                StockTransaction.quantity,
                StockTransaction.transaction_date,
            )
            .where(StockTransaction.transaction_date >= start)
            .where(StockTransaction.transaction_date < end)
        )
        for movement_type, quantity, transaction_date in rows:
            local = transaction_date.astimezone(self._tz)
            key = (local.year, local.month)
            if key in buckets:
                buckets[key][MovementType(movement_type)] += to_quantity(quantity)

        return tuple(
            MonthlyTrend(
                month=f"{y:04d}-{m:02d}",
                stock_in=buckets[(y, m)][MovementType.STOCK_IN],
                stock_out=buckets[(y, m)][MovementType.STOCK_OUT],
            )
            for y, m in months
        )
