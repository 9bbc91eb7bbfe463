"""
Module: inventory_kernel.models.product
Responsibility: ORM persistence for the product catalog and the running stock
    balance of each product.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - current_stock >= 0 and opening_stock >= 0 (check constraints).
    - name is unique among ACTIVE products (partial unique index); a
      deactivated product frees its name for reuse.
    - opening_stock is fixed at creation and current_stock changes only
      inside a ledger write (db/immutability.py).

Failure modes:
    - IntegrityError on a second active product with the same name
      (uq_products_active_name) or on a negative balance.
    - ImmutabilityViolationError on a stock field change outside the ledger.
"""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.db.types import QUANTITY_TYPE


class Product(TrackedBase):
    """
    A stocked item and its running balance.

    Contract:
        current_stock == opening_stock + sum of signed committed movements,
        at every committed point.

    Guarantees:
        - Name uniqueness holds among active products only.
        - Storage placement fields are free text and editable without
          touching stock.

    Non-goals:
        - This model does NOT interpret ``unit``; it is an opaque label.
    """

    __tablename__ = "products"

    __table_args__ = (
        Index(
            "uq_products_active_name",
            "name",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("idx_products_active", "is_active"),
        CheckConstraint("current_stock >= 0", name="ck_products_current_stock_non_negative"),
        CheckConstraint("opening_stock >= 0", name="ck_products_opening_stock_non_negative"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Measurement unit label ("pcs", "kg", "box")
    unit: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    opening_stock: Mapped[Decimal] = mapped_column(
        QUANTITY_TYPE,
        nullable=False,
        default=Decimal("0.00"),
    )

    current_stock: Mapped[Decimal] = mapped_column(
        QUANTITY_TYPE,
        nullable=False,
        default=Decimal("0.00"),
    )

    # Placement
    storage_location: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    storage_row: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    storage_deck: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<Product {self.name}: {self.current_stock} {self.unit}>"
