"""
Module: inventory_kernel.db.types
Responsibility: The stock quantity column type, the movement direction and
    the rounding helpers every model, service and selector shares.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Fixed scale.  QUANTITY_DECIMAL_PLACES is the canonical scale for every
      stock quantity and balance.  round_quantity() is the ONLY sanctioned
      rounding function for ledger values.
    - No floats.  PostgreSQL stores NUMERIC(18, 2).  SQLite has no exact
      decimal storage, so quantities are kept there as integer hundredths
      (BIGINT); comparisons, SUM and CHECK constraints still see the right
      order and sign.  to_quantity() converts aggregate results through
      str() so no binary rounding leaks in.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from sqlalchemy import BigInteger, Numeric
from sqlalchemy.types import TypeDecorator

QUANTITY_DECIMAL_PLACES = 2
QUANTITY_PRECISION = 18
DEFAULT_ROUNDING = ROUND_HALF_UP

_ZERO = Decimal("0").quantize(Decimal(1).scaleb(-QUANTITY_DECIMAL_PLACES))


class MovementType(str, Enum):
    """Direction of a stock movement; stored as-is in stock_transactions.type."""

    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"

    def signed(self, quantity: Decimal) -> Decimal:
        """Apply this direction to a positive magnitude."""
        return quantity if self is MovementType.STOCK_IN else -quantity


class LedgerQuantity(TypeDecorator):
    """
    Exact ledger-scale Decimal column.

    NUMERIC(18, 2) on PostgreSQL; BIGINT hundredths on SQLite, whose NUMERIC
    affinity would store a binary float.
    """

    impl = Numeric(QUANTITY_PRECISION, QUANTITY_DECIMAL_PLACES, asdecimal=True)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(self.impl)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = to_quantity(value)
        if dialect.name == "sqlite":
            return int(value.scaleb(QUANTITY_DECIMAL_PLACES))
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return round_quantity(Decimal(int(value)).scaleb(-QUANTITY_DECIMAL_PLACES))
        return to_quantity(value)


QUANTITY_TYPE = LedgerQuantity()


def round_quantity(
    value: Decimal,
    decimal_places: int = QUANTITY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a quantity to the ledger scale.

    Preconditions: value is a finite Decimal.
    Postconditions: Returns value quantized to ``decimal_places``.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def to_quantity(value: object) -> Decimal:
    """
    Normalize a value read from the store into a ledger-scale Decimal.

    ``None`` (an empty SUM) becomes zero.
    """
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        return round_quantity(value)
    return round_quantity(Decimal(str(value)))


def zero_quantity() -> Decimal:
    """Ledger-scale zero."""
    return _ZERO
