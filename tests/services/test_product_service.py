"""
Tests for ProductService: catalog CRUD, search, and the stock-field guard.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.domain.actor import Role
from inventory_kernel.exceptions import (
    DuplicateProductError,
    ImmutabilityViolationError,
    InvalidQuantityError,
    ProductNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from inventory_kernel.models.product import Product


class TestCreateProduct:
    def test_opening_stock_seeds_balance(self, product_service, admin_actor):
        info = product_service.create_product("Rice", "kg", admin_actor, opening_stock="100")
        assert info.opening_stock == Decimal("100.00")
        assert info.current_stock == Decimal("100.00")
        assert info.is_active

    def test_zero_opening_stock(self, product_service, admin_actor):
        info = product_service.create_product("Salt", "kg", admin_actor, opening_stock="0")
        assert info.current_stock == Decimal("0.00")

    def test_default_opening_stock(self, product_service, admin_actor):
        info = product_service.create_product("Sugar", "kg", admin_actor)
        assert info.opening_stock == Decimal("0.00")

    def test_negative_opening_stock(self, product_service, admin_actor):
        with pytest.raises(InvalidQuantityError):
            product_service.create_product("Oil", "l", admin_actor, opening_stock="-1")

    def test_storage_placement(self, product_service, admin_actor):
        info = product_service.create_product(
            "Flour", "kg", admin_actor,
            storage_location="Warehouse A", storage_row="R1", storage_deck="D2",
        )
        assert (info.storage_location, info.storage_row, info.storage_deck) == (
            "Warehouse A", "R1", "D2",
        )

    @pytest.mark.parametrize("name, unit", [("", "kg"), ("  ", "kg"), ("Rice", "")])
    def test_blank_fields(self, product_service, admin_actor, name, unit):
        with pytest.raises(ValidationError):
            product_service.create_product(name, unit, admin_actor)

    @pytest.mark.parametrize("name, unit", [(123, "kg"), ("Rice", ["kg"])])
    def test_non_string_fields(self, product_service, admin_actor, name, unit):
        with pytest.raises(ValidationError, match="must be a string"):
            product_service.create_product(name, unit, admin_actor)

    def test_duplicate_active_name(self, product_service, admin_actor):
        product_service.create_product("Rice", "kg", admin_actor)
        with pytest.raises(DuplicateProductError):
            product_service.create_product("Rice", "bag", admin_actor)

    def test_name_reusable_after_deactivation(self, product_service, admin_actor):
        first = product_service.create_product("Rice", "kg", admin_actor)
        product_service.deactivate_product(first.id, admin_actor)
        second = product_service.create_product("Rice", "kg", admin_actor)
        assert second.id != first.id

    def test_requires_manage_products(self, product_service, make_actor):
        clerk = make_actor(Role.STOCK_IN_MANAGER)
        with pytest.raises(UnauthorizedError):
            product_service.create_product("Rice", "kg", clerk)


class TestUpdateProduct:
    def test_metadata_edit(self, product_service, make_product, admin_actor):
        product = make_product("Rice")
        info = product_service.update_product(
            product.id, admin_actor, name="Basmati Rice", storage_row="R9"
        )
        assert info.name == "Basmati Rice"
        assert info.storage_row == "R9"

    @pytest.mark.parametrize("field", ["current_stock", "opening_stock"])
    def test_stock_fields_refused(self, product_service, make_product, admin_actor, field):
        product = make_product(opening_stock="5")
        with pytest.raises(ValidationError, match="stock movement"):
            product_service.update_product(product.id, admin_actor, **{field: Decimal("99")})

    def test_unknown_field_refused(self, product_service, make_product, admin_actor):
        product = make_product()
        with pytest.raises(ValidationError):
            product_service.update_product(product.id, admin_actor, colour="red")

    @pytest.mark.parametrize("field", ["name", "unit", "storage_row"])
    def test_non_string_value_refused(self, session, product_service, make_product, admin_actor, field):
        product = make_product("Rice")
        with pytest.raises(ValidationError, match="must be a string"):
            product_service.update_product(product.id, admin_actor, **{field: 123})
        row = session.get(Product, product.id)
        assert (row.name, row.unit, row.storage_row) == ("Rice", "kg", None)

    def test_invalid_value_leaves_earlier_fields_untouched(self, session, product_service, make_product, admin_actor):
        product = make_product("Rice")
        with pytest.raises(ValidationError):
            product_service.update_product(product.id, admin_actor, storage_row="R1", name=" ")
        row = session.get(Product, product.id)
        assert row.storage_row is None
        assert row not in session.dirty

    def test_rename_onto_existing_name(self, product_service, make_product, admin_actor):
        make_product("Rice")
        wheat = make_product("Wheat")
        with pytest.raises(DuplicateProductError):
            product_service.update_product(wheat.id, admin_actor, name="Rice")

    def test_missing_product(self, product_service, admin_actor):
        with pytest.raises(ProductNotFoundError):
            product_service.update_product(uuid4(), admin_actor, name="x")


class TestStockFieldGuard:
    """Direct ORM writes to ledger-owned columns are blocked."""

    def test_current_stock_write_blocked(self, session, make_product):
        product = session.get(Product, make_product(opening_stock="5").id)
        product.current_stock = Decimal("500")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_opening_stock_write_blocked(self, session, make_product):
        product = session.get(Product, make_product(opening_stock="5").id)
        product.opening_stock = Decimal("1")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()


class TestQueries:
    def test_get_product(self, product_service, make_product, make_actor):
        product = make_product("Rice")
        viewer = make_actor(Role.ATTENDANCE_CHECKER)
        assert product_service.get_product(product.id, viewer).name == "Rice"

    def test_list_active_only(self, product_service, make_product, admin_actor):
        keep = make_product("B-keep")
        gone = make_product("A-gone")
        product_service.deactivate_product(gone.id, admin_actor)

        active = product_service.list_products(admin_actor)
        assert [p.id for p in active] == [keep.id]
        every = product_service.list_products(admin_actor, active_only=False)
        assert [p.name for p in every] == ["A-gone", "B-keep"]

    def test_search_is_case_insensitive_substring(self, product_service, make_product, admin_actor):
        make_product("Basmati Rice")
        make_product("Brown rice")
        make_product("Wheat")
        names = [p.name for p in product_service.search_products("RICE", admin_actor)]
        assert names == ["Basmati Rice", "Brown rice"]

    def test_search_escapes_wildcards(self, product_service, make_product, admin_actor):
        make_product("100% Cotton")
        make_product("Cotton")
        names = [p.name for p in product_service.search_products("100%", admin_actor)]
        assert names == ["100% Cotton"]

    def test_search_skips_inactive(self, product_service, make_product, admin_actor):
        product = make_product("Rice")
        product_service.deactivate_product(product.id, admin_actor)
        assert product_service.search_products("rice", admin_actor) == []

    def test_search_limit(self, product_service, make_product, admin_actor):
        for i in range(5):
            make_product(f"Item {i}")
        assert len(product_service.search_products("item", admin_actor, limit=3)) == 3

    def test_blank_search(self, product_service, admin_actor):
        assert product_service.search_products("   ", admin_actor) == []

    def test_non_string_search(self, product_service, admin_actor):
        with pytest.raises(ValidationError):
            product_service.search_products(7, admin_actor)
