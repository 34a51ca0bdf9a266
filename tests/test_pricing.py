from decimal import Decimal

import pytest

from digital_menu.core.exceptions import (
    EmptyCartError,
    InvalidQuantityError,
    ProductNotFoundError,
)
from digital_menu.models import OptionKind
from digital_menu.services.pricing import (
    CartLine,
    CatalogSnapshot,
    OptionGroup,
    OptionItem,
    OptionSelection,
    ProductSnapshot,
    ResolutionOutcome,
    price_order,
    resolve_option,
    to_money,
)


BURGER = ProductSnapshot(
    id=1,
    name="Classic Burger",
    base_price=Decimal("20.00"),
    option_groups=(
        OptionGroup(
            name="Size",
            kind=OptionKind.SINGLE_SELECT,
            items=(OptionItem("Regular"), OptionItem("Large", Decimal("5.00"))),
        ),
        OptionGroup(
            name="Addons",
            kind=OptionKind.MULTI_SELECT,
            items=(OptionItem("Cheese", Decimal("3.00")), OptionItem("Bacon", Decimal("4.50"))),
            min_selections=0,
            max_selections=2,
        ),
        OptionGroup(name="Ice", kind=OptionKind.QUANTITY),
    ),
)
SODA = ProductSnapshot(id=2, name="Soda", base_price=Decimal("6.00"))
CATALOG = CatalogSnapshot.from_products(10, [BURGER, SODA])


def burger_line(*selections, quantity=1, notes=None):
    return CartLine(
        product_id=1,
        quantity=quantity,
        selections=tuple(OptionSelection(g, v) for g, v in selections),
        notes=notes,
    )


class TestResolveOption:
    def test_matching_item_adds_its_price(self):
        resolution = resolve_option(BURGER, OptionSelection("Size", "Large"))
        assert resolution.outcome is ResolutionOutcome.MATCHED
        assert resolution.selected.extra_price == Decimal("5.00")

    def test_unknown_group_is_ignored(self):
        resolution = resolve_option(BURGER, OptionSelection("Sauce", "BBQ"))
        assert resolution.outcome is ResolutionOutcome.IGNORED_UNKNOWN_GROUP
        assert not resolution.recorded

    def test_free_text_is_accepted_for_quantity_groups(self):
        resolution = resolve_option(BURGER, OptionSelection("Ice", "a little"))
        assert resolution.outcome is ResolutionOutcome.FREE_TEXT_ACCEPTED
        assert resolution.selected.value == "a little"
        assert resolution.selected.extra_price == Decimal("0.00")

    def test_unmatched_value_in_select_group_is_dropped(self):
        resolution = resolve_option(BURGER, OptionSelection("Size", "Huge"))
        assert resolution.outcome is ResolutionOutcome.DROPPED
        assert not resolution.recorded

    def test_labels_match_exactly(self):
        resolution = resolve_option(BURGER, OptionSelection("Size", "large"))
        assert resolution.outcome is ResolutionOutcome.DROPPED


class TestPriceOrder:
    def test_size_and_addon_priced_into_unit_price(self):
        priced = price_order(
            CATALOG, [burger_line(("Size", "Large"), ("Addons", "Cheese"), quantity=2)]
        )

        line = priced.lines[0]
        assert line.unit_price == Decimal("28.00")
        assert line.subtotal == Decimal("56.00")
        assert priced.total == Decimal("56.00")
        assert [(o.group_name, o.value, o.extra_price) for o in line.selected_options] == [
            ("Size", "Large", Decimal("5.00")),
            ("Addons", "Cheese", Decimal("3.00")),
        ]

    def test_unknown_group_leaves_price_untouched(self):
        priced = price_order(CATALOG, [burger_line(("Sauce", "BBQ"))])
        assert priced.lines[0].unit_price == Decimal("20.00")
        assert priced.lines[0].selected_options == ()
        assert priced.lines[0].resolutions[0].outcome is ResolutionOutcome.IGNORED_UNKNOWN_GROUP

    def test_free_text_recorded_at_zero(self):
        priced = price_order(CATALOG, [burger_line(("Ice", "no ice"))])
        line = priced.lines[0]
        assert line.unit_price == Decimal("20.00")
        assert line.selected_options[0].value == "no ice"
        assert line.selected_options[0].extra_price == Decimal("0.00")

    def test_dropped_selection_not_recorded(self):
        priced = price_order(CATALOG, [burger_line(("Size", "Huge"), ("Addons", "Bacon"))])
        line = priced.lines[0]
        assert line.unit_price == Decimal("24.50")
        assert [o.value for o in line.selected_options] == ["Bacon"]

    def test_total_is_sum_of_lines(self):
        lines = [
            burger_line(("Size", "Large"), quantity=3),
            CartLine(product_id=2, quantity=4),
            burger_line(("Addons", "Bacon"), ("Addons", "Cheese")),
        ]
        priced = price_order(CATALOG, lines)

        assert priced.total == sum(l.unit_price * l.quantity for l in priced.lines)
        assert priced.total == Decimal("75.00") + Decimal("24.00") + Decimal("27.50")

    def test_lines_keep_input_order_and_notes(self):
        priced = price_order(
            CATALOG,
            [CartLine(product_id=2, quantity=1, notes="cold"), burger_line(notes="no onions")],
        )
        assert [l.product_name for l in priced.lines] == ["Soda", "Classic Burger"]
        assert [l.notes for l in priced.lines] == ["cold", "no onions"]

    def test_same_input_same_output(self):
        lines = [burger_line(("Size", "Large"), ("Ice", "some"), quantity=2)]
        assert price_order(CATALOG, lines) == price_order(CATALOG, lines)

    def test_establishment_carried_through(self):
        assert price_order(CATALOG, [CartLine(product_id=2, quantity=1)]).establishment_id == 10


class TestPriceOrderErrors:
    def test_empty_cart(self):
        with pytest.raises(EmptyCartError):
            price_order(CATALOG, [])

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True, "2"])
    def test_invalid_quantity(self, quantity):
        with pytest.raises(InvalidQuantityError):
            price_order(CATALOG, [CartLine(product_id=2, quantity=quantity)])

    def test_quantities_checked_before_products(self):
        lines = [CartLine(product_id=999, quantity=1), CartLine(product_id=2, quantity=0)]
        with pytest.raises(InvalidQuantityError):
            price_order(CATALOG, lines)

    def test_unknown_product_rejects_whole_order(self):
        lines = [CartLine(product_id=2, quantity=1), CartLine(product_id=999, quantity=1)]
        with pytest.raises(ProductNotFoundError) as exc_info:
            price_order(CATALOG, lines)
        assert exc_info.value.product_id == 999


class TestSnapshots:
    def test_option_group_from_stored_json(self):
        group = OptionGroup.from_dict(
            {
                "name": "Size",
                "kind": "single_select",
                "items": [{"label": "Large", "extra_price": "5.5"}],
            }
        )
        assert group.kind is OptionKind.SINGLE_SELECT
        assert group.items[0].extra_price == Decimal("5.50")

    def test_missing_kind_defaults_to_single_select(self):
        group = OptionGroup.from_dict({"name": "Size", "items": []})
        assert group.kind is OptionKind.SINGLE_SELECT

    def test_to_money_quantizes(self):
        assert to_money("3") == Decimal("3.00")
        assert to_money(None) == Decimal("0.00")
