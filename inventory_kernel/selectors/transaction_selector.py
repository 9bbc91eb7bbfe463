"""
Module: inventory_kernel.selectors.transaction_selector
Responsibility: Filtered, joined, read-only view of the stock ledger, plus
    per-product ledger replay for reconciliation.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Results are ordered by transaction_date DESC, id DESC.
    - Date filters are inclusive at both ends: from_date <= transaction_date
      <= to_date.
    - Product and user are OUTER joined: a missing side yields None, never
      an error.
    - TransactionQuery is lazy and restartable: each iteration re-executes
      the statement and streams rows with yield_per.

Failure modes:
    - UnauthorizedError before any store access.
    - StoreError wrapping any SQLAlchemy failure.
"""

from __future__ import annotations

from collections.abc import Iterator
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_kernel.db.errors import translate_store_error
from inventory_kernel.db.types import round_quantity
from inventory_kernel.domain.access_policy import Operation
from inventory_kernel.domain.actor import ActorContext
from inventory_kernel.domain.clock import as_utc
from inventory_kernel.domain.dtos import (
    BalanceCheck,
    ProductInfo,
    StockTransactionInfo,
    TransactionDetail,
    TransactionFilter,
    UserInfo,
)
from inventory_kernel.domain.values import MovementType
from inventory_kernel.exceptions import ProductNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.product import Product
from inventory_kernel.models.stock_transaction import StockTransaction
from inventory_kernel.models.user import User
from inventory_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.transaction")

DEFAULT_BATCH_SIZE = 500


class TransactionQuery:
    """
    Lazy, restartable sequence of TransactionDetail.

    Iterating twice runs the query twice; with no intervening writes both
    passes yield identical results.
    """

    def __init__(self, session: Session, statement: Select, batch_size: int = DEFAULT_BATCH_SIZE):
        self._session = session
        self._statement = statement
        self._batch_size = batch_size

    def __iter__(self) -> Iterator[TransactionDetail]:
        try:
            result = self._session.execute(
                self._statement.execution_options(yield_per=self._batch_size)
            )
        except SQLAlchemyError as exc:
            raise translate_store_error(exc, "list_transactions") from exc

        try:
            for entry, product, user in result:
                yield TransactionDetail(
                    transaction=StockTransactionInfo.from_model(entry),
                    product=ProductInfo.from_model(product) if product is not None else None,
                    user=UserInfo.from_model(user) if user is not None else None,
                )
        except SQLAlchemyError as exc:
            raise translate_store_error(exc, "list_transactions") from exc
        finally:
            result.close()

    def all(self) -> list[TransactionDetail]:
        return list(self)


class TransactionSelector(BaseSelector[StockTransaction]):
    """
    Read path over the stock ledger.

    Contract:
        Only committed state is visible (the caller's session reads at READ
        COMMITTED or stronger).  No method mutates anything.
    """

    def __init__(self, session, clock=None, policy=None, batch_size: int = DEFAULT_BATCH_SIZE):
        super().__init__(session, clock, policy)
        self._batch_size = batch_size

    def _joined_statement(self, filters: TransactionFilter) -> Select:
        stmt = (
            select(StockTransaction, Product, User)
            .outerjoin(Product, StockTransaction.product_id == Product.id)
            .outerjoin(User, StockTransaction.user_id == User.id)
        )

        if filters.product_id is not None:
            stmt = stmt.where(StockTransaction.product_id == filters.product_id)
        if filters.user_id is not None:
            stmt = stmt.where(StockTransaction.user_id == filters.user_id)
        if filters.movement_type is not None:
            stmt = stmt.where(
                StockTransaction.type == MovementType(filters.movement_type).value
            )
        if filters.from_date is not None:
            stmt = stmt.where(StockTransaction.transaction_date >= as_utc(filters.from_date))
        if filters.to_date is not None:
            stmt = stmt.where(StockTransaction.transaction_date <= as_utc(filters.to_date))

        return stmt.order_by(
            StockTransaction.transaction_date.desc(),
            StockTransaction.id.desc(),
        )

    def list_transactions(
        self,
        actor: ActorContext,
        filters: TransactionFilter | None = None,
    ) -> TransactionQuery:
        """
        Filtered ledger view joined with product and user.

        Raises:
            UnauthorizedError: Actor may not view transactions.
        """
        self._policy.require(actor, Operation.VIEW_TRANSACTIONS)
        filters = filters or TransactionFilter()
        logger.debug(
            "transactions_listed",
            extra={
                "filter_product_id": str(filters.product_id) if filters.product_id else None,
                "filter_user_id": str(filters.user_id) if filters.user_id else None,
            },
        )
        return TransactionQuery(self.session, self._joined_statement(filters), self._batch_size)

    def list_transactions_for_user(
        self,
        actor: ActorContext,
        user_id: UUID | None = None,
    ) -> TransactionQuery:
        """
        Ledger entries performed by one user (default: the actor).

        Every role may read its own history; reading someone else's needs
        the view_transactions permission.
        """
        target = user_id if user_id is not None else actor.actor_id
        if target == actor.actor_id:
            self._policy.require(actor, Operation.VIEW_OWN_TRANSACTIONS)
        else:
            self._policy.require(actor, Operation.VIEW_TRANSACTIONS)
        return TransactionQuery(
            self.session,
            self._joined_statement(TransactionFilter(user_id=target)),
            self._batch_size,
        )

    def product_ledger(
        self, actor: ActorContext, product_id: UUID
    ) -> list[StockTransactionInfo]:
        """One product's entries in commit order (id ascending)."""
        self._policy.require(actor, Operation.VIEW_TRANSACTIONS)
        try:
            entries = self.session.execute(
                select(StockTransaction)
                .where(StockTransaction.product_id == product_id)
                .order_by(StockTransaction.id)
            ).scalars().all()
        except SQLAlchemyError as exc:
            raise translate_store_error(exc, "product_ledger") from exc
        return [StockTransactionInfo.from_model(e) for e in entries]

    def verify_product_balance(
        self, actor: ActorContext, product_id: UUID
    ) -> BalanceCheck:
        """
        Replay a product's ledger against its stored balance.

        Checks opening_stock + sum(signed quantities) == current_stock and
        that each entry's previous_stock equals the prior entry's new_stock
        (the first entry chains from opening_stock).  ``chain_breaks`` lists
        the ids of entries that break the chain.
        """
        self._policy.require(actor, Operation.VIEW_TRANSACTIONS)
        try:
            product = self.session.execute(
                select(Product)
                .where(Product.id == product_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise translate_store_error(exc, "verify_product_balance") from exc
        if product is None:
            raise ProductNotFoundError(str(product_id))

        entries = self.product_ledger(actor, product_id)

        total = Decimal("0")
        expected_previous = product.opening_stock
        breaks: list[int] = []
        for entry in entries:
            if entry.previous_stock != expected_previous:
                breaks.append(entry.id)
            if entry.previous_stock + entry.signed_quantity != entry.new_stock:
                breaks.append(entry.id)
            total += entry.signed_quantity
            expected_previous = entry.new_stock

        check = BalanceCheck(
            product_id=product.id,
            opening_stock=product.opening_stock,
            current_stock=product.current_stock,
            ledger_total=round_quantity(total),
            expected_stock=round_quantity(product.opening_stock + total),
            entry_count=len(entries),
            chain_breaks=tuple(dict.fromkeys(breaks)),
        )
        if not check.is_consistent:
            logger.error(
                "ledger_balance_mismatch",
                extra={
                    "product_id": str(product_id),
                    "current_stock": str(check.current_stock),
                    "expected_stock": str(check.expected_stock),
                    "chain_breaks": list(check.chain_breaks),
                },
            )
        return check
