"""
Module: inventory_kernel.db.immutability
Responsibility: ORM-side guard of the stock ledger (the database triggers in
    db/sql/ are the other side).  Fires before any SQL is emitted.
Architecture position: Kernel > DB.  Imports models lazily at registration.

Invariants enforced:
    - stock_transactions rows are never updated or deleted.
    - products.opening_stock never changes after insert.
    - products.current_stock changes only while the product's id is in
      ``session.info[LEDGER_WRITE_KEY]``.  StockLedgerService adds it
      around its own flush and removes it afterwards; the token is
      per-Session, so nothing leaks between callers or threads.
    - Everything else on a product (name, unit, placement, is_active)
      stays editable.

Failure modes:
    - ImmutabilityViolationError, logged as ``immutability_violation_blocked``.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm import object_session

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

LEDGER_WRITE_KEY = "inventory_kernel.ledger_write"


def _block(entity_type: str, target, operation: str, reason: str) -> ImmutabilityViolationError:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(entity_type, str(target.id), reason)


def _ledger_row_update(mapper, connection, target):
    raise _block("StockTransaction", target, "UPDATE", "stock transactions are append-only")


def _ledger_row_delete(mapper, connection, target):
    raise _block("StockTransaction", target, "DELETE", "stock transactions cannot be deleted")


def _in_ledger_write(target) -> bool:
    session = object_session(target)
    return session is not None and target.id in session.info.get(LEDGER_WRITE_KEY, ())


def _product_update(mapper, connection, target):
    state = inspect(target)
    if state.attrs.opening_stock.history.has_changes():
        raise _block("Product", target, "UPDATE opening_stock", "opening_stock is fixed at creation")
    if state.attrs.current_stock.history.has_changes() and not _in_ledger_write(target):
        raise _block(
            "Product",
            target,
            "UPDATE current_stock",
            "current_stock can only change through a stock movement",
        )


def _listeners():
    from inventory_kernel.models.product import Product
    from inventory_kernel.models.stock_transaction import StockTransaction

    return (
        (StockTransaction, "before_update", _ledger_row_update),
        (StockTransaction, "before_delete", _ledger_row_delete),
        (Product, "before_update", _product_update),
    )


def register_immutability_listeners() -> None:
    """Idempotent; init_engine_from_url() calls it on every init."""
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def unregister_immutability_listeners() -> None:
    """Drop the ORM guard so tests can exercise the triggers on their own."""
    for target, name, fn in _listeners():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)
