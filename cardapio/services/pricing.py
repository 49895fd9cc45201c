"""
Line-item pricing helpers.

Every amount shown to a customer or sent in an order message goes through
`format_brl`: two decimals, comma separator, no thousands grouping.
"""

from typing import Iterable, Protocol


class _PricedExtra(Protocol):
    price: float
    qty: int


def extras_total(extras: Iterable[_PricedExtra]) -> float:
    """Sum of price x quantity over the selected extras."""
    return sum(extra.price * extra.qty for extra in extras)


def unit_price(item) -> float:
    """Product price captured at add time plus its extras."""
    return item.product.price + extras_total(item.extras)


def line_total(item) -> float:
    return unit_price(item) * item.quantity


def cart_total(items) -> float:
    return sum(line_total(item) for item in items)


def format_brl(amount: float) -> str:
    """
    Format an amount the way order messages expect it.

    Example:
        >>> format_brl(28.9)
        '28,90'
        >>> format_brl(1234.5)
        '1234,50'
    """
    return f"{amount:.2f}".replace(".", ",")


def format_price(amount: float) -> str:
    return f"R$ {format_brl(amount)}"
