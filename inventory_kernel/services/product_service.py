"""
Service layer for the product catalog.

Creates, edits, deactivates and searches products.  Stock fields are off
limits here: opening stock is set once at creation and current stock only
moves through StockLedgerService.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.types import zero_quantity
from inventory_kernel.domain.access_policy import Operation
from inventory_kernel.domain.actor import ActorContext
from inventory_kernel.domain.dtos import ProductInfo
from inventory_kernel.domain.values import parse_quantity
from inventory_kernel.exceptions import (
    DuplicateProductError,
    InvalidQuantityError,
    ProductNotFoundError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.product import Product
from inventory_kernel.services.base import BaseService

logger = get_logger("services.product")

DEFAULT_SEARCH_LIMIT = 20

_EDITABLE_FIELDS = frozenset(
    {"name", "unit", "storage_location", "storage_row", "storage_deck"}
)
_STOCK_FIELDS = frozenset({"opening_stock", "current_stock"})


class ProductService(BaseService[Product]):
    """
    Service for managing products.

    All public methods return ProductInfo DTOs, not ORM entities.
    """

    def __init__(self, session, clock=None, policy=None, settings=None):
        super().__init__(session, clock, policy)
        self._search_limit = (
            settings.search_limit if settings is not None else DEFAULT_SEARCH_LIMIT
        )

    def _get_by_id(self, product_id: UUID) -> Product:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def _flush_unique(self, name: str) -> None:
        """Flush inside a SAVEPOINT; an active-name clash becomes DuplicateProductError."""
        try:
            with self.session.begin_nested():
                self.session.flush()
        except IntegrityError as exc:
            message = str(exc.orig)
            if "uq_products_active_name" in message or "products.name" in message:
                raise DuplicateProductError(name) from exc
            raise

    def create_product(
        self,
        name: str,
        unit: str,
        actor: ActorContext,
        opening_stock: object = Decimal("0"),
        storage_location: str | None = None,
        storage_row: str | None = None,
        storage_deck: str | None = None,
    ) -> ProductInfo:
        """
        Create a product.  The opening stock seeds the current balance.

        Raises:
            UnauthorizedError: Actor may not manage products.
            ValidationError: Blank or non-string name/unit, or negative opening stock.
            DuplicateProductError: An active product has this name.
        """
        self._policy.require(actor, Operation.MANAGE_PRODUCTS)

        name = self._required_text("name", name)
        unit = self._required_text("unit", unit)

        opening = _parse_opening_stock(opening_stock)
        now = self._clock.now()

        product = Product(
            name=name,
            unit=unit,
            opening_stock=opening,
            current_stock=opening,
            storage_location=storage_location,
            storage_row=storage_row,
            storage_deck=storage_deck,
            is_active=True,
            created_at=now,
            updated_at=now,
            created_by_id=actor.actor_id,
            updated_by_id=actor.actor_id,
        )
        self.session.add(product)
        self._flush_unique(name)

        logger.info(
            "product_created",
            extra={"product_id": str(product.id), "opening_stock": str(opening)},
        )
        return ProductInfo.from_model(product)

    def update_product(
        self,
        product_id: UUID,
        actor: ActorContext,
        **changes: object,
    ) -> ProductInfo:
        """
        Edit product metadata: name, unit and storage placement.

        Raises:
            ValidationError: A stock field or unknown field was passed, or a
                value is not a string (name and unit also not blank).
            ProductNotFoundError, DuplicateProductError.
        """
        self._policy.require(actor, Operation.MANAGE_PRODUCTS)

        for field_name in changes:
            if field_name in _STOCK_FIELDS:
                raise ValidationError(
                    field_name, "stock changes must go through a stock movement"
                )
            if field_name not in _EDITABLE_FIELDS:
                raise ValidationError(field_name, "not an editable product field")

        cleaned = {}
        for field_name, value in changes.items():
            if field_name in ("name", "unit"):
                value = self._required_text(field_name, value)
            elif value is not None and not isinstance(value, str):
                raise ValidationError(field_name, "must be a string")
            cleaned[field_name] = value

        product = self._get_by_id(product_id)
        for field_name, value in cleaned.items():
            setattr(product, field_name, value)

        product.updated_at = self._clock.now()
        product.updated_by_id = actor.actor_id
        self._flush_unique(product.name)

        logger.info(
            "product_updated",
            extra={"product_id": str(product_id), "fields": sorted(changes)},
        )
        return ProductInfo.from_model(product)

    def deactivate_product(self, product_id: UUID, actor: ActorContext) -> ProductInfo:
        """Soft-delete a product.  Its ledger history is kept."""
        self._policy.require(actor, Operation.MANAGE_PRODUCTS)

        product = self._get_by_id(product_id)
        product.is_active = False
        product.updated_at = self._clock.now()
        product.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info("product_deactivated", extra={"product_id": str(product_id)})
        return ProductInfo.from_model(product)

    def get_product(self, product_id: UUID, actor: ActorContext) -> ProductInfo:
        self._policy.require(actor, Operation.SEARCH_PRODUCTS)
        return ProductInfo.from_model(self._get_by_id(product_id))

    def list_products(
        self, actor: ActorContext, active_only: bool = True
    ) -> list[ProductInfo]:
        """List products ordered by name."""
        self._policy.require(actor, Operation.SEARCH_PRODUCTS)

        stmt = select(Product)
        if active_only:
            stmt = stmt.where(Product.is_active.is_(True))
        stmt = stmt.order_by(Product.name, Product.id)
        return [ProductInfo.from_model(p) for p in self.session.execute(stmt).scalars()]

    def search_products(
        self,
        query: str,
        actor: ActorContext,
        limit: int | None = None,
    ) -> list[ProductInfo]:
        """Case-insensitive substring search over active product names."""
        self._policy.require(actor, Operation.SEARCH_PRODUCTS)

        if query is not None and not isinstance(query, str):
            raise ValidationError("query", "must be a string")
        term = (query or "").strip().lower()
        if not term:
            return []

        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        stmt = (
            select(Product)
            .where(Product.is_active.is_(True))
            .where(func.lower(Product.name).like(f"%{escaped}%", escape="\\"))
            .order_by(Product.name)
            .limit(limit if limit is not None else self._search_limit)
        )
        return [ProductInfo.from_model(p) for p in self.session.execute(stmt).scalars()]


def _parse_opening_stock(value: object) -> Decimal:
    """Opening stock may be zero; otherwise it parses like a movement quantity."""
    if value is None:
        return zero_quantity()
    try:
        return parse_quantity(value).value
    except InvalidQuantityError:
        try:
            if Decimal(str(value).strip()) == 0:
                return zero_quantity()
        except InvalidOperation:
            pass
        raise
