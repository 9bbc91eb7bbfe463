"""
DTOs -- immutable data transfer objects.

Responsibility:
    The shapes that cross the kernel boundary: product / user / storage /
    ledger snapshots, movement requests and results, query filters, and
    dashboard aggregates.  Callers never receive ORM entities.

Architecture position:
    Kernel > Domain -- zero I/O.  from_model() class methods are boundary
    converters invoked only from services and selectors.

Invariants enforced:
    - Every DTO is a frozen dataclass; collections are tuples.
    - Quantities are Decimal at the ledger scale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from inventory_kernel.domain.values import MovementType

if TYPE_CHECKING:
    from inventory_kernel.exceptions import InventoryKernelError
    from inventory_kernel.models.product import Product
    from inventory_kernel.models.stock_transaction import StockTransaction
    from inventory_kernel.models.storage import StorageDimension, StorageLocation
    from inventory_kernel.models.user import User


# =============================================================================
# Entity snapshots
# =============================================================================


@dataclass(frozen=True)
class ProductInfo:
    """Read-only snapshot of a product."""

    id: UUID
    name: str
    unit: str
    opening_stock: Decimal
    current_stock: Decimal
    is_active: bool
    storage_location: str | None = None
    storage_row: str | None = None
    storage_deck: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, product: Product) -> ProductInfo:
        return cls(
            id=product.id,
            name=product.name,
            unit=product.unit,
            opening_stock=product.opening_stock,
            current_stock=product.current_stock,
            is_active=product.is_active,
            storage_location=product.storage_location,
            storage_row=product.storage_row,
            storage_deck=product.storage_deck,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


@dataclass(frozen=True)
class UserInfo:
    """Read-only snapshot of a user.  Never carries the password hash."""

    id: UUID
    username: str
    roles: tuple[str, ...]
    is_active: bool
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    created_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @classmethod
    def from_model(cls, user: User) -> UserInfo:
        return cls(
            id=user.id,
            username=user.username,
            roles=tuple(user.roles or ()),
            is_active=user.is_active,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            created_at=user.created_at,
        )


@dataclass(frozen=True)
class StockTransactionInfo:
    """Read-only snapshot of one ledger entry."""

    id: int
    product_id: UUID
    user_id: UUID
    movement_type: MovementType
    quantity: Decimal
    previous_stock: Decimal
    new_stock: Decimal
    transaction_date: datetime
    created_at: datetime | None = None
    remarks: str | None = None
    so_number: str | None = None
    po_number: str | None = None
    original_quantity: str | None = None
    original_unit: str | None = None

    @property
    def signed_quantity(self) -> Decimal:
        return self.movement_type.signed(self.quantity)

    @classmethod
    def from_model(cls, entry: StockTransaction) -> StockTransactionInfo:
        return cls(
            id=entry.id,
            product_id=entry.product_id,
            user_id=entry.user_id,
            movement_type=MovementType(entry.type),
            quantity=entry.quantity,
            previous_stock=entry.previous_stock,
            new_stock=entry.new_stock,
            transaction_date=entry.transaction_date,
            created_at=entry.created_at,
            remarks=entry.remarks,
            so_number=entry.so_number,
            po_number=entry.po_number,
            original_quantity=entry.original_quantity,
            original_unit=entry.original_unit,
        )


@dataclass(frozen=True)
class StorageLocationInfo:
    id: UUID
    name: str
    description: str | None
    is_active: bool

    @classmethod
    def from_model(cls, location: StorageLocation) -> StorageLocationInfo:
        return cls(
            id=location.id,
            name=location.name,
            description=location.description,
            is_active=location.is_active,
        )


@dataclass(frozen=True)
class StorageDimensionInfo:
    id: UUID
    location_id: UUID
    type: str
    name: str

    @classmethod
    def from_model(cls, dimension: StorageDimension) -> StorageDimensionInfo:
        return cls(
            id=dimension.id,
            location_id=dimension.location_id,
            type=dimension.type,
            name=dimension.name,
        )


# =============================================================================
# Movements
# =============================================================================


@dataclass(frozen=True)
class MovementMetadata:
    """
    Optional, opaque metadata frozen into the ledger row.

    ``transaction_date`` defaults to the clock time at commit; a naive
    datetime is taken to be UTC.
    """

    remarks: str | None = None
    po_number: str | None = None
    so_number: str | None = None
    original_quantity: str | None = None
    original_unit: str | None = None
    transaction_date: datetime | None = None


@dataclass(frozen=True)
class MovementResult:
    """The committed ledger entry and the product balance it produced."""

    transaction: StockTransactionInfo
    product: ProductInfo


@dataclass(frozen=True)
class MovementLine:
    """One line of a batch movement."""

    product_id: UUID
    quantity: object


@dataclass(frozen=True)
class MovementOutcome:
    """
    Result of one batch line: exactly one of ``result`` / ``error`` is set.
    """

    index: int
    line: MovementLine
    result: MovementResult | None = None
    error: InventoryKernelError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None


@dataclass(frozen=True)
class BatchMovementResult:
    """Per-line outcomes of a batch, in submission order."""

    movement_type: MovementType
    outcomes: tuple[MovementOutcome, ...] = ()

    @property
    def succeeded(self) -> tuple[MovementOutcome, ...]:
        return tuple(o for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> tuple[MovementOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.succeeded)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


# =============================================================================
# Queries
# =============================================================================


@dataclass(frozen=True)
class TransactionFilter:
    """
    Ledger query filter.  Every field is optional; ``None`` means "any".

    ``from_date`` and ``to_date`` are both inclusive.
    """

    product_id: UUID | None = None
    user_id: UUID | None = None
    movement_type: MovementType | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None


@dataclass(frozen=True)
class TransactionDetail:
    """A ledger entry joined with its product and user, either of which may be gone."""

    transaction: StockTransactionInfo
    product: ProductInfo | None
    user: UserInfo | None

    @property
    def product_name(self) -> str | None:
        return self.product.name if self.product is not None else None

    @property
    def username(self) -> str | None:
        return self.user.username if self.user is not None else None


@dataclass(frozen=True)
class BalanceCheck:
    """Replay of one product's ledger against its stored balance."""

    product_id: UUID
    opening_stock: Decimal
    current_stock: Decimal
    ledger_total: Decimal
    expected_stock: Decimal
    entry_count: int
    chain_breaks: tuple[int, ...] = ()

    @property
    def balanced(self) -> bool:
        return self.expected_stock == self.current_stock

    @property
    def is_consistent(self) -> bool:
        return self.balanced and not self.chain_breaks


# =============================================================================
# Dashboard
# =============================================================================


@dataclass(frozen=True)
class DashboardStats:
    total_products: int
    active_products: int
    total_stock: Decimal
    today_stock_in: Decimal
    today_stock_out: Decimal
    low_stock_products: int


@dataclass(frozen=True)
class MonthlyMovement:
    year: int
    month: int
    stock_in: Decimal
    stock_out: Decimal

    @property
    def net_movement(self) -> Decimal:
        return self.stock_in - self.stock_out


@dataclass(frozen=True)
class CategoryBreakdown:
    """Active products grouped by unit."""

    category: str
    product_count: int
    total_stock: Decimal


@dataclass(frozen=True)
class TopMovingProduct:
    product_id: UUID
    name: str
    total_movement: Decimal
    transaction_count: int


@dataclass(frozen=True)
class StockBucket:
    label: str
    product_count: int


@dataclass(frozen=True)
class MonthlyTrend:
    month: str  # YYYY-MM in the business timezone
    stock_in: Decimal
    stock_out: Decimal


@dataclass(frozen=True)
class InventoryAnalytics:
    products_by_category: tuple[CategoryBreakdown, ...] = field(default_factory=tuple)
    top_moving_products: tuple[TopMovingProduct, ...] = field(default_factory=tuple)
    stock_distribution: tuple[StockBucket, ...] = field(default_factory=tuple)
    monthly_trends: tuple[MonthlyTrend, ...] = field(default_factory=tuple)
