"""
Module: inventory_kernel.models.stock_transaction
Responsibility: ORM persistence for the append-only stock ledger.  Every
    committed balance change of a product has exactly one row here, written
    in the same database transaction as the balance update.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Append-only: no UPDATE, no DELETE (ORM listeners + database triggers).
    - quantity > 0; the sign lives in ``type``.
    - new_stock = previous_stock + quantity   (stock_in)
      new_stock = previous_stock - quantity   (stock_out)
    - Ids are assigned by the store and increase with commit order per
      product, because writers serialize on the product row lock.

Failure modes:
    - IntegrityError on a dangling product_id / user_id or a violated check.
    - ImmutabilityViolationError on any attempted modification.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, LedgerId, UTCDateTime, UUIDString
from inventory_kernel.db.types import QUANTITY_TYPE, MovementType


class StockTransaction(Base):
    """
    One immutable ledger entry.

    Contract:
        Written exactly once by the stock ledger service, atomically with the
        product balance it describes.

    Guarantees:
        - previous_stock / new_stock snapshot the balance around this entry.
        - Optional metadata (remarks, order numbers, original quantity and
          unit) is frozen with the row.
    """

    __tablename__ = "stock_transactions"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_transactions_quantity_positive"),
        CheckConstraint(
            "type IN ('stock_in', 'stock_out')",
            name="ck_stock_transactions_type",
        ),
        CheckConstraint("new_stock >= 0", name="ck_stock_transactions_new_stock_non_negative"),
        Index("idx_stock_transactions_product", "product_id", "id"),
        Index("idx_stock_transactions_user", "user_id"),
        Index("idx_stock_transactions_date", "transaction_date"),
    )

    # Store-assigned, monotonically increasing
    id: Mapped[int] = mapped_column(
        LedgerId,
        primary_key=True,
        autoincrement=True,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=False,
    )

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(
        QUANTITY_TYPE,
        nullable=False,
    )

    previous_stock: Mapped[Decimal] = mapped_column(
        QUANTITY_TYPE,
        nullable=False,
    )

    new_stock: Mapped[Decimal] = mapped_column(
        QUANTITY_TYPE,
        nullable=False,
    )

    remarks: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Sales order number (stock out)
    so_number: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    # Purchase order number (stock in)
    po_number: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    # Quantity and unit exactly as the caller entered them
    original_quantity: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    original_unit: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    transaction_date: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )

    @property
    def signed_quantity(self) -> Decimal:
        """Quantity with the movement direction applied."""
        if self.type == MovementType.STOCK_OUT:
            return -self.quantity
        return self.quantity

    def __repr__(self) -> str:
        return (
            f"<StockTransaction #{self.id} {self.type} {self.quantity} "
            f"({self.previous_stock} -> {self.new_stock})>"
        )
