"""
Order Repository Abstract Base Class

Defines the persistence contract used by the checkout (writes) and the
staff order board (reads and status moves).

`create_order` is a single logical write: the order row and all of its
item rows are stored together or not at all.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from cardapio.models import OrderStatus, OrderType, PaymentMethod


@dataclass
class NewOrderItem:
    product_id: int
    quantity: int
    unit_price: float
    notes: Optional[str] = None
    extras_json: list[dict[str, Any]] = field(default_factory=list)
    product_name: Optional[str] = None


@dataclass
class NewOrder:
    restaurant_id: int
    customer_name: str
    customer_phone: Optional[str]
    order_type: OrderType
    payment_method: PaymentMethod
    total_amount: float
    delivery_address: Optional[str] = None
    change_for: Optional[float] = None
    status: OrderStatus = OrderStatus.NEW


@dataclass
class OrderItemRecord:
    id: int
    product_id: int
    quantity: int
    unit_price: float
    notes: Optional[str] = None
    extras_json: list[dict[str, Any]] = field(default_factory=list)
    product_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "notes": self.notes,
            "extras_json": list(self.extras_json or []),
        }


@dataclass
class OrderRecord:
    """A stored order with its items."""
    id: int
    restaurant_id: int
    customer_name: str
    customer_phone: Optional[str]
    order_type: OrderType
    payment_method: PaymentMethod
    total_amount: float
    status: OrderStatus
    created_at: datetime
    delivery_address: Optional[str] = None
    change_for: Optional[float] = None
    items: list[OrderItemRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "order_type": self.order_type.value,
            "delivery_address": self.delivery_address,
            "payment_method": self.payment_method.value,
            "change_for": self.change_for,
            "total_amount": self.total_amount,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "items": [item.to_dict() for item in self.items],
        }


class BaseOrderRepository(ABC):
    """
    Abstract base class for order storage.

    Implementations raise `PersistenceError` for storage failures and
    `OrderNotFoundError` for unknown ids.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def resolve_restaurant_id(self, product_id: int) -> Optional[int]:
        """Restaurant owning a product, or None if unknown."""
        pass

    @abstractmethod
    async def create_order(self, order: NewOrder, items: list[NewOrderItem]) -> OrderRecord:
        """Store an order and its items atomically."""
        pass

    @abstractmethod
    async def delete_order(self, order_id: int) -> bool:
        """Remove an order and its items; used to undo a cancelled submission."""
        pass

    @abstractmethod
    async def get_order(self, order_id: int) -> Optional[OrderRecord]:
        pass

    @abstractmethod
    async def list_orders(
        self,
        restaurant_id: int,
        status: Optional[OrderStatus] = None,
        limit: Optional[int] = None,
    ) -> list[OrderRecord]:
        """Orders of a restaurant, newest first."""
        pass

    @abstractmethod
    async def update_status(self, order_id: int, status: OrderStatus) -> OrderRecord:
        pass

    async def health_check(self) -> bool:
        return True
