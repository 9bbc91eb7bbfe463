"""
Hypothesis-based property tests for the stock ledger.

Random sequences of stock-in / stock-out movements are applied to a fresh
product and compared with a trivial reference model.  After every
sequence:

- current_stock == opening_stock + sum(signed committed quantities)
- current_stock >= 0
- each entry's previous_stock chains from the prior entry's new_stock
- exactly the overdrawing stock-outs were refused
"""

from decimal import ROUND_HALF_UP, Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from inventory_kernel.domain.values import MovementType, parse_quantity
from inventory_kernel.exceptions import InsufficientStockError, InvalidQuantityError

quantities = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("500"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

movements = st.lists(
    st.tuples(st.sampled_from(list(MovementType)), quantities),
    min_size=1,
    max_size=15,
)

_fixture_settings = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)


class TestLedgerProperties:
    @_fixture_settings
    @given(opening=quantities | st.just(Decimal("0")), steps=movements)
    def test_balance_matches_reference_model(
        self, stock_ledger, transaction_selector, make_product, admin_actor, opening, steps
    ):
        product = make_product(opening_stock=opening)
        expected = product.opening_stock
        refused = 0

        for movement_type, quantity in steps:
            signed = movement_type.signed(quantity)
            try:
                stock_ledger.apply_movement(product.id, movement_type, quantity, admin_actor)
            except InsufficientStockError as exc:
                assert movement_type is MovementType.STOCK_OUT
                assert expected + signed < 0
                assert exc.available == expected
                refused += 1
            else:
                expected += signed
            assert expected >= 0

        check = transaction_selector.verify_product_balance(admin_actor, product.id)
        assert check.is_consistent
        assert check.current_stock == expected
        assert check.entry_count == len(steps) - refused


class TestQuantityProperties:
    @given(
        st.decimals(
            min_value=Decimal("0.005"),
            max_value=Decimal("1000000"),
            allow_nan=False,
            allow_infinity=False,
        )
    )
    def test_parse_rounds_half_up_to_cents(self, value):
        parsed = parse_quantity(value)
        assert parsed.value == value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        assert parsed.value > 0
        assert parsed.rounded == (parsed.value != value)

    @given(st.text(max_size=20))
    def test_arbitrary_text_never_crashes(self, raw):
        try:
            parsed = parse_quantity(raw)
        except InvalidQuantityError:
            return
        assert parsed.value > 0
