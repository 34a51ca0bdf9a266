"""
Order Pricing Engine

Prices a customer cart against a snapshot of one establishment's catalog.
The engine is pure: it performs no I/O, never touches the session, and
returns the same result for the same inputs. Loading the snapshot and
persisting the result belong to the caller (see services/orders.py).

Option resolution rules, per selected ``{group_name, value}`` pair:
    - no group with that exact name    -> IGNORED_UNKNOWN_GROUP (not recorded)
    - an item label matches the value  -> MATCHED (extra price added)
    - no match, group kind is quantity -> FREE_TEXT_ACCEPTED (recorded at 0)
    - no match, any other kind         -> DROPPED (not recorded)

All money is Decimal, quantized to cents.
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from digital_menu.core.exceptions import (
    EmptyCartError,
    InvalidQuantityError,
    ProductNotFoundError,
)
from digital_menu.models import OptionKind

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Convert a stored or submitted amount to a cent-quantized Decimal."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# CATALOG SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class OptionItem:
    label: str
    extra_price: Decimal = ZERO


@dataclass(frozen=True)
class OptionGroup:
    name: str
    kind: OptionKind = OptionKind.SINGLE_SELECT
    items: tuple[OptionItem, ...] = ()
    min_selections: Optional[int] = None
    max_selections: Optional[int] = None

    def find_item(self, label: str) -> Optional[OptionItem]:
        for item in self.items:
            if item.label == label:
                return item
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OptionGroup":
        return cls(
            name=data["name"],
            kind=OptionKind(data.get("kind") or OptionKind.SINGLE_SELECT),
            items=tuple(
                OptionItem(label=item["label"], extra_price=to_money(item.get("extra_price")))
                for item in data.get("items") or ()
            ),
            min_selections=data.get("min_selections"),
            max_selections=data.get("max_selections"),
        )


@dataclass(frozen=True)
class ProductSnapshot:
    """The pricing-relevant view of a product at the moment of ordering."""
    id: int
    name: str
    base_price: Decimal
    option_groups: tuple[OptionGroup, ...] = ()

    def find_group(self, name: str) -> Optional[OptionGroup]:
        for group in self.option_groups:
            if group.name == name:
                return group
        return None

    @classmethod
    def from_record(cls, product: Any) -> "ProductSnapshot":
        """Build a snapshot from a Product row (or anything shaped like one)."""
        return cls(
            id=product.id,
            name=product.name,
            base_price=to_money(product.base_price),
            option_groups=tuple(
                OptionGroup.from_dict(group) for group in product.option_groups or ()
            ),
        )


@dataclass(frozen=True)
class CatalogSnapshot:
    establishment_id: int
    products: Mapping[int, ProductSnapshot] = field(default_factory=dict)

    def get(self, product_id: int) -> Optional[ProductSnapshot]:
        return self.products.get(product_id)

    @classmethod
    def from_products(cls, establishment_id: int, products: Iterable[ProductSnapshot]) -> "CatalogSnapshot":
        return cls(establishment_id=establishment_id, products={p.id: p for p in products})


# =============================================================================
# CART
# =============================================================================

@dataclass(frozen=True)
class OptionSelection:
    group_name: str
    value: str


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    selections: tuple[OptionSelection, ...] = ()
    notes: Optional[str] = None


# =============================================================================
# RESULTS
# =============================================================================

class ResolutionOutcome(str, Enum):
    MATCHED = "matched"
    IGNORED_UNKNOWN_GROUP = "ignored_unknown_group"
    FREE_TEXT_ACCEPTED = "free_text_accepted"
    DROPPED = "dropped"


@dataclass(frozen=True)
class SelectedOption:
    group_name: str
    value: str
    extra_price: Decimal = ZERO

    def to_dict(self) -> dict:
        """JSON-safe form stored on the order line."""
        return {
            "group_name": self.group_name,
            "value": self.value,
            "extra_price": str(self.extra_price),
        }


@dataclass(frozen=True)
class OptionResolution:
    selection: OptionSelection
    outcome: ResolutionOutcome
    selected: Optional[SelectedOption] = None

    @property
    def recorded(self) -> bool:
        return self.selected is not None


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    product_name: str
    unit_price: Decimal
    quantity: int
    selected_options: tuple[SelectedOption, ...] = ()
    resolutions: tuple[OptionResolution, ...] = ()
    notes: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENT)


@dataclass(frozen=True)
class PricedOrder:
    establishment_id: int
    lines: tuple[PricedLine, ...]
    total: Decimal


# =============================================================================
# ENGINE
# =============================================================================

def resolve_option(product: ProductSnapshot, selection: OptionSelection) -> OptionResolution:
    """Resolve one customer selection against the product's option groups."""
    group = product.find_group(selection.group_name)
    if group is None:
        return OptionResolution(selection, ResolutionOutcome.IGNORED_UNKNOWN_GROUP)

    item = group.find_item(selection.value)
    if item is not None:
        return OptionResolution(
            selection,
            ResolutionOutcome.MATCHED,
            SelectedOption(group.name, selection.value, item.extra_price),
        )

    if group.kind == OptionKind.QUANTITY:
        return OptionResolution(
            selection,
            ResolutionOutcome.FREE_TEXT_ACCEPTED,
            SelectedOption(group.name, selection.value, ZERO),
        )

    return OptionResolution(selection, ResolutionOutcome.DROPPED)


def price_line(product: ProductSnapshot, line: CartLine) -> PricedLine:
    """
    Price a single cart line.

    Args:
        product: Snapshot of the referenced product
        line: The cart line (quantity already validated)

    Returns:
        PricedLine with the resolved unit price and accepted options
    """
    unit_price = product.base_price
    resolutions = tuple(resolve_option(product, selection) for selection in line.selections)

    selected = []
    for resolution in resolutions:
        if resolution.selected is not None:
            unit_price += resolution.selected.extra_price
            selected.append(resolution.selected)

    return PricedLine(
        product_id=product.id,
        product_name=product.name,
        unit_price=unit_price.quantize(CENT),
        quantity=line.quantity,
        selected_options=tuple(selected),
        resolutions=resolutions,
        notes=line.notes,
    )


def _validate_quantity(line: CartLine) -> None:
    quantity = line.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(line.product_id, quantity)


def price_order(catalog: CatalogSnapshot, cart_lines: Sequence[CartLine]) -> PricedOrder:
    """
    Price a whole cart, all-or-nothing.

    Every quantity is validated before any product is resolved; the first
    unknown product aborts the operation.

    Args:
        catalog: Snapshot of the establishment's products
        cart_lines: Ordered cart lines

    Returns:
        PricedOrder whose total equals the sum of unit_price * quantity

    Raises:
        EmptyCartError: No lines given
        InvalidQuantityError: A quantity is not a positive integer
        ProductNotFoundError: A line references a product outside the snapshot
    """
    if not cart_lines:
        raise EmptyCartError()

    for line in cart_lines:
        _validate_quantity(line)

    lines = []
    total = ZERO
    for line in cart_lines:
        product = catalog.get(line.product_id)
        if product is None:
            raise ProductNotFoundError(line.product_id)

        priced = price_line(product, line)
        for resolution in priced.resolutions:
            if resolution.outcome in (ResolutionOutcome.IGNORED_UNKNOWN_GROUP, ResolutionOutcome.DROPPED):
                logger.debug(
                    f"Selection {resolution.selection.group_name}={resolution.selection.value!r} "
                    f"on product #{product.id}: {resolution.outcome.value}"
                )

        total += priced.subtotal
        lines.append(priced)

    return PricedOrder(
        establishment_id=catalog.establishment_id,
        lines=tuple(lines),
        total=total.quantize(CENT),
    )
