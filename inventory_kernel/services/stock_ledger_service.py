"""
StockLedgerService -- the balance mutator.

Responsibility:
    Applies a signed stock movement to exactly one product, atomically with
    appending its ledger entry.  This is the ONLY code path that changes
    ``Product.current_stock``.

Architecture position:
    Kernel > Services.  Owns its transaction boundary (commit per movement
    when ``auto_commit=True``; a SAVEPOINT inside the caller's transaction
    otherwise).

Invariants enforced:
    - current_stock == opening_stock + sum(signed committed quantities)
    - current_stock >= 0 after every committed movement
    - Each ledger row's previous_stock equals the prior row's new_stock:
      movements on one product serialize on its row lock
      (SELECT ... FOR UPDATE; BEGIN IMMEDIATE on SQLite).
    - All-or-nothing: the balance write and the ledger insert commit
      together or not at all.

Failure modes:
    - UnauthorizedError before any store access when the actor's roles do
      not allow the movement, or later when the actor's user is inactive.
    - InvalidQuantityError for a non-numeric or non-positive quantity,
      or one that would push the balance past the column range.
    - UserNotFoundError / ProductNotFoundError / ProductInactiveError.
    - InsufficientStockError(available, requested) for an overdrawing
      stock-out; nothing is written.
    - StockBusyError (retryable) when the row lock wait times out.
    - StoreError for any other database failure.

Procedure (one atomic unit):

    require(actor, op) -> parse quantity -> [BEGIN]
        load actor user -> lock product FOR UPDATE -> validate
        -> write balance + flush -> insert ledger row + flush
    [COMMIT] -> DTOs
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_kernel.db.engine import get_lock_timeout_seconds
from inventory_kernel.db.errors import translate_store_error
from inventory_kernel.db.immutability import LEDGER_WRITE_KEY
from inventory_kernel.domain.access_policy import AccessPolicy, Operation
from inventory_kernel.domain.actor import ActorContext
from inventory_kernel.domain.clock import Clock, SystemClock, as_utc
from inventory_kernel.domain.dtos import (
    BatchMovementResult,
    MovementLine,
    MovementMetadata,
    MovementOutcome,
    MovementResult,
    ProductInfo,
    StockTransactionInfo,
)
from inventory_kernel.domain.values import (
    MAX_QUANTITY,
    MovementType,
    ParsedQuantity,
    parse_quantity,
)
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    InventoryKernelError,
    ProductInactiveError,
    ProductNotFoundError,
    UnauthorizedError,
    UserNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.product import Product
from inventory_kernel.models.stock_transaction import StockTransaction
from inventory_kernel.models.user import User

logger = get_logger("services.stock_ledger")


class StockLedgerService:
    """
    Balance mutator for stock-in and stock-out movements.

    Contract:
        ``apply_movement`` either commits exactly one balance update plus
        exactly one ledger row and returns them, or raises a typed error
        with nothing written.

    Guarantees:
        - Concurrent movements on the same product apply in some total order
          and each sees the other's effect (no lost update).
        - Movements on different products do not block each other on
          PostgreSQL.
        - Batch lines are independent atomic units; a failed line never
          rolls back a committed one.

    Non-goals:
        - Does NOT edit product metadata (see ProductService).
        - Does NOT offer an all-or-nothing batch mode.

    Transaction ownership:
        With ``auto_commit=True`` (default) the service owns the session's
        transaction: each movement commits or rolls back the session.
        With ``auto_commit=False`` each movement runs in a SAVEPOINT and the
        caller commits.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: AccessPolicy | None = None,
        settings=None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = policy or AccessPolicy()
        self._auto_commit = auto_commit
        self._lock_timeout_seconds = (
            settings.lock_timeout_seconds
            if settings is not None
            else get_lock_timeout_seconds()
        )

    # =========================================================================
    # Facade
    # =========================================================================

    def record_stock_in(
        self,
        product_id: UUID,
        quantity: object,
        actor: ActorContext,
        *,
        remarks: str | None = None,
        po_number: str | None = None,
        original_quantity: str | None = None,
        original_unit: str | None = None,
        transaction_date: datetime | None = None,
    ) -> MovementResult:
        """Receive stock into a product."""
        metadata = MovementMetadata(
            remarks=remarks,
            po_number=po_number,
            original_quantity=original_quantity,
            original_unit=original_unit,
            transaction_date=transaction_date,
        )
        return self.apply_movement(
            product_id, MovementType.STOCK_IN, quantity, actor, metadata
        )

    def record_stock_out(
        self,
        product_id: UUID,
        quantity: object,
        actor: ActorContext,
        *,
        remarks: str | None = None,
        so_number: str | None = None,
        original_quantity: str | None = None,
        original_unit: str | None = None,
        transaction_date: datetime | None = None,
    ) -> MovementResult:
        """Issue stock from a product; never below zero."""
        metadata = MovementMetadata(
            remarks=remarks,
            so_number=so_number,
            original_quantity=original_quantity,
            original_unit=original_unit,
            transaction_date=transaction_date,
        )
        return self.apply_movement(
            product_id, MovementType.STOCK_OUT, quantity, actor, metadata
        )

    def record_stock_in_batch(
        self,
        lines: Iterable[MovementLine | tuple[UUID, object]],
        actor: ActorContext,
        *,
        remarks: str | None = None,
        po_number: str | None = None,
        transaction_date: datetime | None = None,
    ) -> BatchMovementResult:
        """Receive several products sharing one actor and metadata."""
        metadata = MovementMetadata(
            remarks=remarks,
            po_number=po_number,
            transaction_date=transaction_date,
        )
        return self._apply_batch(MovementType.STOCK_IN, lines, actor, metadata)

    def record_stock_out_batch(
        self,
        lines: Iterable[MovementLine | tuple[UUID, object]],
        actor: ActorContext,
        *,
        remarks: str | None = None,
        so_number: str | None = None,
        transaction_date: datetime | None = None,
    ) -> BatchMovementResult:
        """Issue several products sharing one actor and metadata."""
        metadata = MovementMetadata(
            remarks=remarks,
            so_number=so_number,
            transaction_date=transaction_date,
        )
        return self._apply_batch(MovementType.STOCK_OUT, lines, actor, metadata)

    # =========================================================================
    # Core
    # =========================================================================

    def apply_movement(
        self,
        product_id: UUID,
        movement_type: MovementType | str,
        quantity: object,
        actor: ActorContext,
        metadata: MovementMetadata | None = None,
    ) -> MovementResult:
        """
        Apply one signed movement to one product.

        Preconditions:
            - ``actor`` holds a role allowed for ``movement_type``.
            - ``quantity`` parses to a positive decimal.

        Postconditions:
            - On success the new balance and ledger row are committed
              (or released into the caller's transaction when
              ``auto_commit=False``).
            - On failure nothing from this movement is persisted.

        Raises:
            UnauthorizedError, InvalidQuantityError, UserNotFoundError,
            ProductNotFoundError, ProductInactiveError,
            InsufficientStockError, StockBusyError, StoreError.
        """
        movement_type = MovementType(movement_type)
        operation = Operation(movement_type.value)
        metadata = metadata or MovementMetadata()

        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor.actor_id),
            product_id=str(product_id),
            operation=movement_type.value,
        ):
            # Authorization precedes every store access
            self._policy.require(actor, operation)
            parsed = parse_quantity(quantity)

            logger.info(
                "stock_movement_started",
                extra={"quantity": str(parsed.value)},
            )
            t0 = time.monotonic()

            try:
                result = self._run_unit(
                    product_id, movement_type, parsed, actor, metadata
                )
            except InventoryKernelError as exc:
                logger.warning(
                    "stock_movement_rejected",
                    extra={
                        "error_code": exc.code,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise

            logger.info(
                "stock_movement_committed",
                extra={
                    "transaction_id": result.transaction.id,
                    "previous_stock": str(result.transaction.previous_stock),
                    "new_stock": str(result.transaction.new_stock),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return result

    def _run_unit(
        self,
        product_id: UUID,
        movement_type: MovementType,
        parsed: ParsedQuantity,
        actor: ActorContext,
        metadata: MovementMetadata,
    ) -> MovementResult:
        """Run the locked read-validate-write sequence as one atomic unit."""
        if self._auto_commit:
            try:
                result = self._apply_locked(
                    product_id, movement_type, parsed, actor, metadata
                )
                self._session.commit()
                return result
            except SQLAlchemyError as exc:
                self._session.rollback()
                raise translate_store_error(exc, "stock_movement", product_id) from exc
            except BaseException:
                self._session.rollback()
                raise

        savepoint = self._session.begin_nested()
        try:
            result = self._apply_locked(
                product_id, movement_type, parsed, actor, metadata
            )
            savepoint.commit()
            return result
        except SQLAlchemyError as exc:
            if savepoint.is_active:
                savepoint.rollback()
            raise translate_store_error(exc, "stock_movement", product_id) from exc
        except BaseException:
            if savepoint.is_active:
                savepoint.rollback()
            raise

    def _apply_locked(
        self,
        product_id: UUID,
        movement_type: MovementType,
        parsed: ParsedQuantity,
        actor: ActorContext,
        metadata: MovementMetadata,
    ) -> MovementResult:
        self._require_active_user(actor, movement_type)
        product = self._lock_product(product_id)

        previous_stock = product.current_stock
        new_stock = previous_stock + movement_type.signed(parsed.value)

        # INVARIANT: balance never goes negative
        if new_stock < 0:
            raise InsufficientStockError(
                str(product_id), previous_stock, parsed.value
            )
        if new_stock >= MAX_QUANTITY:
            raise InvalidQuantityError(parsed.raw, "resulting balance is too large")

        now = self._clock.now()
        self._write_balance(product, new_stock, actor, now)
        entry = self._append_entry(
            product, movement_type, parsed, previous_stock, new_stock, actor, metadata, now
        )

        return MovementResult(
            transaction=StockTransactionInfo.from_model(entry),
            product=ProductInfo.from_model(product),
        )

    def _require_active_user(
        self, actor: ActorContext, movement_type: MovementType
    ) -> None:
        stmt = (
            select(User)
            .where(User.id == actor.actor_id)
            .execution_options(populate_existing=True)
        )
        user = self._session.execute(stmt).scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(str(actor.actor_id))
        if not user.is_active:
            raise UnauthorizedError(movement_type.value, str(actor.actor_id))

    def _lock_product(self, product_id: UUID) -> Product:
        """
        SELECT the product FOR UPDATE, waiting at most the lock timeout.

        populate_existing refreshes an identity-map copy with the locked
        row's committed values.
        """
        if self._session.get_bind().dialect.name == "postgresql":
            timeout_ms = int(self._lock_timeout_seconds * 1000)
            self._session.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))

        stmt = (
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        product = self._session.execute(stmt).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(str(product_id))
        if not product.is_active:
            raise ProductInactiveError(str(product_id))
        return product

    def _write_balance(
        self,
        product: Product,
        new_stock: Decimal,
        actor: ActorContext,
        now: datetime,
    ) -> None:
        writes = self._session.info.setdefault(LEDGER_WRITE_KEY, set())
        writes.add(product.id)
        try:
            product.current_stock = new_stock
            product.updated_at = now
            product.updated_by_id = actor.actor_id
            self._session.flush()
        finally:
            writes.discard(product.id)

    def _append_entry(
        self,
        product: Product,
        movement_type: MovementType,
        parsed: ParsedQuantity,
        previous_stock: Decimal,
        new_stock: Decimal,
        actor: ActorContext,
        metadata: MovementMetadata,
        now: datetime,
    ) -> StockTransaction:
        """
        Insert the ledger row for a movement whose balance is already written.

        When rounding changed the caller's quantity and no original was
        supplied, the exact input and the product unit are kept.
        """
        original_quantity = metadata.original_quantity
        original_unit = metadata.original_unit
        if parsed.rounded and original_quantity is None:
            original_quantity = parsed.raw
            if original_unit is None:
                original_unit = product.unit

        transaction_date = (
            as_utc(metadata.transaction_date)
            if metadata.transaction_date is not None
            else now
        )

        entry = StockTransaction(
            product_id=product.id,
            user_id=actor.actor_id,
            type=movement_type.value,
            quantity=parsed.value,
            previous_stock=previous_stock,
            new_stock=new_stock,
            remarks=metadata.remarks,
            so_number=metadata.so_number,
            po_number=metadata.po_number,
            original_quantity=original_quantity,
            original_unit=original_unit,
            transaction_date=transaction_date,
            created_at=now,
        )
        self._session.add(entry)
        self._session.flush()
        return entry

    # =========================================================================
    # Batch
    # =========================================================================

    def _apply_batch(
        self,
        movement_type: MovementType,
        lines: Iterable[MovementLine | tuple[UUID, object]],
        actor: ActorContext,
        metadata: MovementMetadata,
    ) -> BatchMovementResult:
        """
        Apply each line as its own atomic unit, in order.

        Typed kernel errors are captured per line; anything else propagates
        and stops the batch (lines before it stay committed).
        """
        self._policy.require(actor, Operation(movement_type.value))

        outcomes: list[MovementOutcome] = []
        for index, raw_line in enumerate(lines):
            line = (
                raw_line
                if isinstance(raw_line, MovementLine)
                else MovementLine(*raw_line)
            )
            try:
                result = self.apply_movement(
                    line.product_id, movement_type, line.quantity, actor, metadata
                )
            except InventoryKernelError as exc:
                outcomes.append(MovementOutcome(index=index, line=line, error=exc))
            else:
                outcomes.append(MovementOutcome(index=index, line=line, result=result))

        batch = BatchMovementResult(movement_type=movement_type, outcomes=tuple(outcomes))
        logger.info(
            "stock_batch_completed",
            extra={
                "movement_type": movement_type.value,
                "line_count": len(batch.outcomes),
                "succeeded": len(batch.succeeded),
                "failed": len(batch.failed),
            },
        )
        return batch
