"""
Product Selection

The customization wizard opened when a customer taps a product. Its steps
are derived from the product's options:

    Info -> [Removables] -> [Extras] -> [Cross-sell 0] -> [Cross-sell 1] ...

The step kind at a position is never stored; `resolve_step` recomputes it
from the presence flags each time, so it cannot drift from the options.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from cardapio.core.errors import ProductNotFoundError
from cardapio.services.cart import CartStore, CartLineItem, ProductSnapshot, SelectedExtra
from cardapio.services.catalog.base import (
    BaseCatalogService,
    ProductInfo,
    ExtraInfo,
)
from cardapio.services.pricing import extras_total

logger = logging.getLogger(__name__)


class StepType(str, enum.Enum):
    INFO = "info"
    REMOVABLES = "removables"
    EXTRAS = "extras"
    CROSS_SELL = "crosssell"


@dataclass(frozen=True)
class StepKind:
    """Tagged step variant; `rule_index` is set only for cross-sell steps."""
    type: StepType
    rule_index: Optional[int] = None

    @property
    def key(self) -> str:
        if self.type == StepType.CROSS_SELL:
            return f"crosssell-{self.rule_index}"
        return self.type.value


INFO_STEP = StepKind(StepType.INFO)
REMOVABLES_STEP = StepKind(StepType.REMOVABLES)
EXTRAS_STEP = StepKind(StepType.EXTRAS)


def count_steps(has_removables: bool, has_extras: bool, cross_sell_count: int) -> int:
    return 1 + int(has_removables) + int(has_extras) + cross_sell_count


def resolve_step(
    index: int,
    has_removables: bool,
    has_extras: bool,
    cross_sell_count: int,
) -> StepKind:
    """
    Map a step position to its kind.

    Positions outside the wizard resolve to the info step.
    """
    position = 0
    if index == position:
        return INFO_STEP
    position += 1

    if has_removables:
        if index == position:
            return REMOVABLES_STEP
        position += 1

    if has_extras:
        if index == position:
            return EXTRAS_STEP
        position += 1

    for rule_index in range(cross_sell_count):
        if index == position:
            return StepKind(StepType.CROSS_SELL, rule_index)
        position += 1

    return INFO_STEP


@dataclass
class CrossSellStep:
    label: str
    category_id: int
    category_name: str
    products: list[ProductInfo] = field(default_factory=list)


@dataclass
class ProductOptions:
    """Everything the wizard offers for one product."""
    removables: list[str] = field(default_factory=list)
    extras: list[ExtraInfo] = field(default_factory=list)
    cross_sell: list[CrossSellStep] = field(default_factory=list)


def snapshot_product(product: ProductInfo, removables: Optional[list[str]] = None) -> ProductSnapshot:
    """Copy the product into cart form, capturing its current price."""
    return ProductSnapshot(
        id=product.id,
        name=product.name,
        price=float(product.sell_price),
        description=product.description or "",
        image=product.image_url or "",
        category_id=product.category_id,
        removables=tuple(removables or ()),
    )


async def load_product_options(catalog: BaseCatalogService, product: ProductInfo) -> ProductOptions:
    """
    Fetch removables, extras and cross-sell suggestions for a product.

    Each lookup degrades to an empty list inside the catalog, so a failing
    lookup only hides its step.
    """
    removables = await catalog.list_removables(product.id)
    extras = await catalog.list_extras(product.id)
    rules = await catalog.list_cross_sell_rules(product.category_id)

    suggested = await catalog.list_products_in_categories(
        [rule.suggest_category_id for rule in rules]
    )

    cross_sell = [
        CrossSellStep(
            label=rule.step_label,
            category_id=rule.suggest_category_id,
            category_name=rule.suggest_category_name or rule.step_label,
            products=[p for p in suggested if p.category_id == rule.suggest_category_id],
        )
        for rule in rules
    ]

    return ProductOptions(removables=removables, extras=extras, cross_sell=cross_sell)


class ProductSelection:
    """
    Customization state for one product occurrence.

    Nothing reaches the cart until `add_to_cart` (or a cross-sell add);
    `cancel` forgets the selection and leaves the cart as it was.
    """

    def __init__(self, product: ProductInfo, options: ProductOptions):
        self.product = product
        self.options = options
        self.step = 0
        self.removed: list[str] = []
        self.extra_quantities: dict[int, int] = {}

    # =========================================================================
    # STEPS
    # =========================================================================

    @property
    def has_removables(self) -> bool:
        return len(self.options.removables) > 0

    @property
    def has_extras(self) -> bool:
        return len(self.options.extras) > 0

    @property
    def total_steps(self) -> int:
        return count_steps(self.has_removables, self.has_extras, len(self.options.cross_sell))

    @property
    def current_step(self) -> StepKind:
        return resolve_step(
            self.step,
            self.has_removables,
            self.has_extras,
            len(self.options.cross_sell),
        )

    @property
    def can_go_next(self) -> bool:
        return self.step < self.total_steps - 1

    def next_step(self) -> bool:
        if not self.can_go_next:
            return False
        self.step += 1
        return True

    def previous_step(self) -> bool:
        if self.step <= 0:
            return False
        self.step -= 1
        return True

    # =========================================================================
    # CHOICES
    # =========================================================================

    def toggle_removed(self, name: str) -> None:
        if name in self.removed:
            self.removed = [r for r in self.removed if r != name]
        else:
            self.removed = self.removed + [name]

    def change_extra(self, extra_id: int, delta: int) -> int:
        """Add `delta` to an extra's quantity, never going below zero."""
        quantity = max(0, self.extra_quantities.get(extra_id, 0) + delta)
        if quantity == 0:
            self.extra_quantities.pop(extra_id, None)
        else:
            self.extra_quantities[extra_id] = quantity
        return quantity

    def selected_extras(self) -> list[SelectedExtra]:
        """Extras with a positive quantity, in catalog order."""
        return [
            SelectedExtra(
                name=extra.name,
                price=float(extra.price),
                qty=self.extra_quantities[extra.id],
                extra_id=extra.id,
                ingredient_id=extra.ingredient_id,
                quantity_used=float(extra.quantity_used or 0),
            )
            for extra in self.options.extras
            if self.extra_quantities.get(extra.id, 0) > 0
        ]

    @property
    def preview_price(self) -> float:
        return float(self.product.sell_price) + extras_total(self.selected_extras())

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def add_to_cart(self, cart: CartStore) -> CartLineItem:
        """Turn the current choices into a new cart line, then reset."""
        snapshot = snapshot_product(self.product, self.options.removables)
        item = cart.add_item(snapshot, list(self.removed), self.selected_extras())
        logger.info(
            f"Added {self.product.name} to cart "
            f"(removed={len(self.removed)}, extras={len(item.extras)})"
        )
        self.reset()
        return item

    def add_cross_sell(self, cart: CartStore, product_id: int) -> CartLineItem:
        """Add a suggested product as its own plain line, right away."""
        for step in self.options.cross_sell:
            for product in step.products:
                if product.id == product_id:
                    return cart.add_item(snapshot_product(product), [], [])
        raise ProductNotFoundError(f"Produto #{product_id} não está entre as sugestões")

    def reset(self) -> None:
        self.step = 0
        self.removed = []
        self.extra_quantities = {}

    def cancel(self) -> None:
        self.reset()

    def to_dict(self) -> dict[str, Any]:
        current = self.current_step
        return {
            "product": self.product.to_dict(),
            "step": self.step,
            "total_steps": self.total_steps,
            "current_step": current.key,
            "can_go_next": self.can_go_next,
            "removables": list(self.options.removables),
            "removed": list(self.removed),
            "extras": [
                {
                    "id": e.id,
                    "name": e.name,
                    "price": e.price,
                    "qty": self.extra_quantities.get(e.id, 0),
                }
                for e in self.options.extras
            ],
            "cross_sell": [
                {
                    "label": s.label,
                    "category_id": s.category_id,
                    "category_name": s.category_name,
                    "products": [p.to_dict() for p in s.products],
                }
                for s in self.options.cross_sell
            ],
            "preview_price": round(self.preview_price, 2),
        }


async def open_selection(catalog: BaseCatalogService, product_id: int) -> ProductSelection:
    """Load a product and its options into a fresh selection."""
    product = await catalog.get_product(product_id)
    if product is None or not product.is_active:
        raise ProductNotFoundError(f"Produto #{product_id} não encontrado")
    options = await load_product_options(catalog, product)
    return ProductSelection(product, options)
