"""
Checkout form state.

A `CheckoutSession` lives only while the checkout is open; reopening the
checkout starts from a fresh one.
"""

import enum
import re
from dataclasses import dataclass, field, fields
from typing import Any, Optional

from cardapio.core.errors import InvalidCheckoutFieldError
from cardapio.models import OrderType, PaymentMethod
from cardapio.services.checkout.message import format_delivery_address


class FulfillmentType(str, enum.Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    LOCAL = "local"


class PaymentChoice(str, enum.Enum):
    PIX = "pix"
    CARD = "card"
    CASH = "cash"


ORDER_TYPES = {
    FulfillmentType.DELIVERY.value: OrderType.DELIVERY,
    FulfillmentType.PICKUP.value: OrderType.PICKUP,
    FulfillmentType.LOCAL.value: OrderType.LOCAL,
}

PAYMENT_METHODS = {
    PaymentChoice.CASH.value: PaymentMethod.CASH,
    PaymentChoice.PIX.value: PaymentMethod.PIX,
    PaymentChoice.CARD.value: PaymentMethod.CARD,
}


@dataclass
class DeliveryAddress:
    cep: str = ""
    street: str = ""
    neighborhood: str = ""
    city: str = ""
    number: str = ""
    complement: str = ""

    def format(self) -> str:
        return format_delivery_address(
            street=self.street,
            number=self.number,
            neighborhood=self.neighborhood,
            city=self.city,
            cep=self.cep,
            complement=self.complement,
        )


_CHANGE_FOR = re.compile(r"^[0-9]+([.,][0-9]{1,2})?$")


def parse_change_for(text: str) -> Optional[float]:
    """'50' or '50,00' -> 50.0; empty -> None. Plain amounts only, at most two decimals."""
    cleaned = (text or "").strip()
    if not cleaned:
        return None
    if not _CHANGE_FOR.match(cleaned):
        raise InvalidCheckoutFieldError(f"Troco inválido: {text!r}")
    return float(cleaned.replace(",", "."))


@dataclass
class CheckoutSession:
    step: int = 0
    order_type: str = FulfillmentType.PICKUP.value
    address: DeliveryAddress = field(default_factory=DeliveryAddress)
    table: str = ""
    payment_method: str = ""
    change_for: str = ""
    customer_name: str = ""
    customer_phone: str = ""

    EDITABLE = ("order_type", "table", "payment_method", "change_for", "customer_name", "customer_phone")

    def update(self, **changes: Any) -> None:
        """
        Apply form edits.

        `address` accepts a dict of address fields. Unknown fields and
        out-of-range choices raise `InvalidCheckoutFieldError`.
        """
        for name, value in changes.items():
            if name == "address":
                self._update_address(value or {})
            elif name in self.EDITABLE:
                self._set(name, "" if value is None else str(value))
            else:
                raise InvalidCheckoutFieldError(f"Campo desconhecido: {name}")

    def _set(self, name: str, value: str) -> None:
        if name == "order_type" and value not in ORDER_TYPES:
            raise InvalidCheckoutFieldError(f"Tipo de pedido inválido: {value!r}")
        if name == "payment_method" and value and value not in PAYMENT_METHODS:
            raise InvalidCheckoutFieldError(f"Forma de pagamento inválida: {value!r}")
        if name == "change_for":
            parse_change_for(value)
        setattr(self, name, value)

    def _update_address(self, values: dict[str, Any]) -> None:
        known = {f.name for f in fields(DeliveryAddress)}
        for key, value in values.items():
            if key not in known:
                raise InvalidCheckoutFieldError(f"Campo de endereço desconhecido: {key}")
            setattr(self.address, key, "" if value is None else str(value))

    @property
    def delivery_address(self) -> Optional[str]:
        """Address string for the message and the order; None unless delivery."""
        if self.order_type == FulfillmentType.DELIVERY.value:
            return self.address.format()
        return None

    @property
    def stored_address(self) -> Optional[str]:
        if self.order_type == FulfillmentType.LOCAL.value:
            return f"Mesa {self.table}"
        return self.delivery_address

    @property
    def change_for_amount(self) -> Optional[float]:
        if self.payment_method != PaymentChoice.CASH.value:
            return None
        return parse_change_for(self.change_for)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "order_type": self.order_type,
            "address": {f.name: getattr(self.address, f.name) for f in fields(DeliveryAddress)},
            "table": self.table,
            "payment_method": self.payment_method,
            "change_for": self.change_for,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
        }
