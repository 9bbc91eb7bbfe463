"""Database layer - engine, base classes, types, and ledger protection."""

from inventory_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString
from inventory_kernel.db.engine import create_tables, get_engine, get_session
from inventory_kernel.db.types import QUANTITY_TYPE, LedgerQuantity, round_quantity, to_quantity

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "LedgerQuantity",
    "QUANTITY_TYPE",
    "round_quantity",
    "to_quantity",
]
