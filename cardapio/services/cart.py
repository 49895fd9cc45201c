"""
Cart Store

Holds the line items of one browsing session. Each `add_item` call creates
an independent line, even for an identical product and customization.
Totals are recomputed on every read.

Example:
    >>> cart = CartStore()
    >>> cart.add_item(burger, removed=["Cebola"], extras=[bacon])
    >>> cart.update_quantity(0, 2)
    >>> format_brl(cart.total)
    '48,00'
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from cardapio.services.pricing import line_total, unit_price, cart_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    """Product data copied into the cart when the line is created."""
    id: int
    name: str
    price: float
    description: str = ""
    image: str = ""
    category_id: Optional[int] = None
    removables: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "description": self.description,
            "image": self.image,
            "category_id": self.category_id,
            "removables": list(self.removables),
        }


@dataclass(frozen=True)
class SelectedExtra:
    """An extra chosen for one line, with its unit price and quantity."""
    name: str
    price: float
    qty: int
    extra_id: Optional[int] = None
    ingredient_id: Optional[int] = None
    quantity_used: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "extra_id": self.extra_id,
            "name": self.name,
            "price": self.price,
            "qty": self.qty,
        }


@dataclass
class CartLineItem:
    product: ProductSnapshot
    quantity: int = 1
    removed: list[str] = field(default_factory=list)
    extras: list[SelectedExtra] = field(default_factory=list)

    @property
    def unit_price(self) -> float:
        return unit_price(self)

    @property
    def total(self) -> float:
        return line_total(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "removed": list(self.removed),
            "extras": [e.to_dict() for e in self.extras],
            "unit_price": round(self.unit_price, 2),
            "total": round(self.total, 2),
        }


class CartStore:
    """
    Ordered list of line items for a single browsing session.

    Indices are positions in insertion order; removing a line shifts
    the following lines down by one.
    """

    def __init__(self) -> None:
        self._items: list[CartLineItem] = []

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def add_item(
        self,
        product: ProductSnapshot,
        removed: list[str],
        extras: list[SelectedExtra],
    ) -> CartLineItem:
        """Append a new line with quantity 1."""
        item = CartLineItem(
            product=product,
            quantity=1,
            removed=list(removed),
            extras=list(extras),
        )
        self._items.append(item)
        logger.debug(f"Cart: added {product.name} (line {len(self._items) - 1})")
        return item

    def remove_item(self, index: int) -> None:
        """Delete the line at `index`; out-of-range indices are ignored."""
        if 0 <= index < len(self._items):
            del self._items[index]

    def update_quantity(self, index: int, quantity: int) -> None:
        """Set the quantity of a line; zero or less removes it."""
        if quantity <= 0:
            self.remove_item(index)
            return
        if 0 <= index < len(self._items):
            self._items[index].quantity = quantity

    def clear_cart(self) -> None:
        self._items = []

    def snapshot(self) -> "CartStore":
        """Independent copy of the current lines; later edits to either side do not leak."""
        frozen = CartStore()
        frozen._items = [
            replace(item, removed=list(item.removed), extras=list(item.extras))
            for item in self._items
        ]
        return frozen

    def discard_lines(self, lines: list[CartLineItem]) -> None:
        """Remove exactly these line objects, keeping lines added since."""
        taken = {id(line) for line in lines}
        self._items = [item for item in self._items if id(item) not in taken]

    @property
    def total(self) -> float:
        return cart_total(self._items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self._items],
            "total": round(self.total, 2),
            "item_count": self.item_count,
        }
