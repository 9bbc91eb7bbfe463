"""
Value objects for stock movements.

Responsibility:
    Movement direction and the parsing of caller-supplied quantities into
    ledger-scale Decimals.

Invariants enforced:
    - A parsed quantity is a finite Decimal > 0 at the ledger scale.
    - Binary floats are converted through ``str()``, never ``Decimal(float)``.
    - When rounding changes the value, the caller's exact input is kept as
      ``raw`` so it can be stored in ``original_quantity``.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from inventory_kernel.db.types import (
    QUANTITY_DECIMAL_PLACES,
    QUANTITY_PRECISION,
    MovementType,
    round_quantity,
)
from inventory_kernel.exceptions import InvalidQuantityError

__all__ = ["MAX_QUANTITY", "MovementType", "ParsedQuantity", "parse_quantity"]

# Largest magnitude a ledger quantity column holds
MAX_QUANTITY = Decimal(10) ** (QUANTITY_PRECISION - QUANTITY_DECIMAL_PLACES)


@dataclass(frozen=True)
class ParsedQuantity:
    """A validated movement quantity."""

    value: Decimal
    raw: str
    rounded: bool


def parse_quantity(raw: object) -> ParsedQuantity:
    """
    Parse a caller-supplied quantity.

    Accepts Decimal, int, float and numeric strings (surrounding whitespace
    ignored).  Rejects booleans, NaN, infinities, and anything that is not
    strictly positive after rounding half-up to the ledger scale.

    Raises:
        InvalidQuantityError: The value is not a positive decimal number.
    """
    if raw is None or isinstance(raw, bool):
        raise InvalidQuantityError(raw, "quantity must be a number")

    if isinstance(raw, Decimal):
        text = str(raw)
        candidate = raw
    elif isinstance(raw, (int, float)):
        text = str(raw)
        candidate = None
    elif isinstance(raw, str):
        text = raw.strip()
        candidate = None
    else:
        raise InvalidQuantityError(raw, "quantity must be a number")

    if candidate is None:
        try:
            candidate = Decimal(text)
        except InvalidOperation:
            raise InvalidQuantityError(raw, "quantity must be a number") from None

    if not candidate.is_finite():
        raise InvalidQuantityError(raw, "quantity must be finite")
    if candidate <= 0:
        raise InvalidQuantityError(raw, "quantity must be greater than zero")
    if candidate >= MAX_QUANTITY:
        raise InvalidQuantityError(raw, "quantity is too large")

    value = round_quantity(candidate)
    if value <= 0:
        raise InvalidQuantityError(raw, "quantity rounds to zero")

    return ParsedQuantity(value=value, raw=text, rounded=value != candidate)
