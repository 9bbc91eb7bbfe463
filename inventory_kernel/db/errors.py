"""
Module: inventory_kernel.db.errors
Responsibility: Classify SQLAlchemy failures into kernel exceptions.  Lock
    contention becomes a retryable ConcurrencyError; everything else becomes
    a StoreError that chains the original.
Architecture position: Kernel > DB.

Recognized contention signals:
    - PostgreSQL SQLSTATE 55P03 (lock_not_available, raised by lock_timeout)
    - PostgreSQL SQLSTATE 40P01 (deadlock_detected)
    - SQLite "database is locked" (busy timeout expired)
"""

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from inventory_kernel.exceptions import (
    ConcurrencyError,
    InventoryKernelError,
    StockBusyError,
    StoreError,
)

LOCK_CONTENTION_SQLSTATES = frozenset({"55P03", "40P01"})

_LOCK_CONTENTION_MESSAGES = (
    "database is locked",
    "lock timeout",
    "could not obtain lock",
    "deadlock detected",
)


def is_lock_contention(exc: SQLAlchemyError) -> bool:
    """True if the failure is a lock wait timeout or deadlock."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in LOCK_CONTENTION_SQLSTATES:
        return True
    message = str(orig if orig is not None else exc).lower()
    return any(fragment in message for fragment in _LOCK_CONTENTION_MESSAGES)


def translate_store_error(
    exc: SQLAlchemyError,
    operation: str,
    product_id: object | None = None,
) -> InventoryKernelError:
    """
    Map a SQLAlchemy failure to the kernel exception to raise in its place.

    The caller raises the result ``from exc`` so the original stays chained.
    """
    if is_lock_contention(exc):
        if product_id is not None:
            return StockBusyError(str(product_id))
        return ConcurrencyError(f"Store busy during {operation}; retry the request")
    return StoreError(operation, exc)
