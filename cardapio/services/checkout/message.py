"""
Order message formatting.

Restaurant staff read these messages on WhatsApp, so labels, ordering and
number formatting are fixed:

    *Novo Pedido*

    - 2x X Burger (Sem: Cebola) (+1x Bacon)

    *Total: R$ 48,00*
    Tipo: Delivery
    Endereco: Rua A, 10, Centro - São Paulo - CEP 01000-000
    Cliente: Ana - 11999999999
    Pagamento: PIX
"""

import re
from typing import Iterable, Optional
from urllib.parse import quote

from cardapio.services.cart import CartLineItem
from cardapio.services.pricing import format_brl

PAYMENT_LABELS = {
    "pix": "PIX",
    "card": "Cartao",
    "cash": "Dinheiro",
}

# Characters encodeURIComponent leaves untouched besides letters and digits
_URI_COMPONENT_SAFE = "-_.!~*'()"


def digits_only(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", phone or "")


def encode_uri_component(text: str) -> str:
    return quote(text, safe=_URI_COMPONENT_SAFE)


def format_delivery_address(
    street: str,
    number: str,
    neighborhood: str,
    city: str,
    cep: str,
    complement: str = "",
) -> str:
    complement_part = f" - {complement}" if complement else ""
    return f"{street}, {number}{complement_part}, {neighborhood} - {city} - CEP {cep}"


def fulfillment_label(order_type: str, table: str = "") -> str:
    if order_type == "delivery":
        return "Delivery"
    if order_type == "local":
        return f"Local - Mesa {table}" if table else "Local"
    return "Retirada"


def payment_label(payment_method: str) -> str:
    return PAYMENT_LABELS.get(payment_method, "Dinheiro")


def format_line(item: CartLineItem) -> str:
    line = f"- {item.quantity}x {item.product.name}"
    if item.removed:
        line += f" (Sem: {', '.join(item.removed)})"
    if item.extras:
        line += f" (+{', '.join(f'{e.qty}x {e.name}' for e in item.extras)})"
    return line


def build_order_message(
    items: Iterable[CartLineItem],
    total: float,
    order_type: str,
    customer_name: str,
    customer_phone: str,
    payment_method: str,
    delivery_address: Optional[str] = None,
    change_for: str = "",
    table: str = "",
) -> str:
    """Render the plain-text order summary sent over WhatsApp."""
    msg = "*Novo Pedido*\n\n"
    for item in items:
        msg += format_line(item) + "\n"

    msg += f"\n*Total: R$ {format_brl(total)}*"
    msg += f"\nTipo: {fulfillment_label(order_type, table)}"
    if order_type == "delivery":
        msg += f"\nEndereco: {delivery_address}"
    msg += f"\nCliente: {customer_name} - {customer_phone}"
    msg += f"\nPagamento: {payment_label(payment_method)}"
    if payment_method == "cash" and change_for:
        msg += f" (Troco para R$ {change_for})"
    return msg


def build_whatsapp_url(
    message: str,
    phone: Optional[str] = None,
    base_url: str = "https://wa.me",
) -> str:
    """
    Build a click-to-chat link.

    Without a phone the link lets the sender pick the recipient.

    Example:
        >>> build_whatsapp_url("Oi", "(11) 98888-7777")
        'https://wa.me/11988887777?text=Oi'
        >>> build_whatsapp_url("Oi")
        'https://wa.me/?text=Oi'
    """
    return f"{base_url.rstrip('/')}/{digits_only(phone)}?text={encode_uri_component(message)}"
