"""
In-Memory Order Repository

Used with DATA_BACKEND=memory (local demos) and in tests.

Behavior:
    - Optional simulated latency, to exercise the submit timeout
    - `failure_rate` rejects whole writes at random
    - `fail_on_items=True` simulates the item insert failing after the
      order insert; the order is discarded too, matching the SQL transaction
"""

import asyncio
import logging
import random
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from cardapio.core.errors import OrderNotFoundError, PersistenceError
from cardapio.models import OrderStatus
from cardapio.services.orders.base import (
    BaseOrderRepository,
    NewOrder,
    NewOrderItem,
    OrderRecord,
    OrderItemRecord,
)

logger = logging.getLogger(__name__)


class InMemoryOrderRepository(BaseOrderRepository):
    """Dictionary-backed order storage."""

    def __init__(
        self,
        product_restaurants: Optional[dict[int, int]] = None,
        latency: float = 0.0,
        failure_rate: float = 0.0,
        fail_on_items: bool = False,
    ):
        self.product_restaurants = product_restaurants or {}
        self.latency = latency
        self.failure_rate = failure_rate
        self.fail_on_items = fail_on_items
        self.orders: dict[int, OrderRecord] = {}
        self.create_calls = 0
        self._next_order_id = 1
        self._next_item_id = 1

    @property
    def provider_name(self) -> str:
        return "memory"

    async def _simulate_latency(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    async def resolve_restaurant_id(self, product_id: int) -> Optional[int]:
        return self.product_restaurants.get(product_id)

    async def create_order(self, order: NewOrder, items: list[NewOrderItem]) -> OrderRecord:
        self.create_calls += 1
        await self._simulate_latency()

        if self.failure_rate and random.random() < self.failure_rate:
            logger.warning("In-memory order insert failed (simulated)")
            raise PersistenceError("Simulated order insert failure")

        order_id = self._next_order_id
        record = OrderRecord(
            id=order_id,
            restaurant_id=order.restaurant_id,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            order_type=order.order_type,
            payment_method=order.payment_method,
            total_amount=order.total_amount,
            status=order.status,
            created_at=datetime.now(timezone.utc),
            delivery_address=order.delivery_address,
            change_for=order.change_for,
        )

        if self.fail_on_items:
            logger.warning(f"In-memory item insert failed for order #{order_id}, rolled back")
            raise PersistenceError("Simulated order items insert failure")

        for item in items:
            record.items.append(OrderItemRecord(
                id=self._next_item_id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                notes=item.notes,
                extras_json=list(item.extras_json),
                product_name=item.product_name,
            ))
            self._next_item_id += 1

        self._next_order_id += 1
        self.orders[order_id] = record
        logger.info(f"Order #{order_id} stored in memory with {len(items)} item(s)")
        return record

    async def delete_order(self, order_id: int) -> bool:
        return self.orders.pop(order_id, None) is not None

    async def get_order(self, order_id: int) -> Optional[OrderRecord]:
        return self.orders.get(order_id)

    async def list_orders(
        self,
        restaurant_id: int,
        status: Optional[OrderStatus] = None,
        limit: Optional[int] = None,
    ) -> list[OrderRecord]:
        found = [
            o for o in self.orders.values()
            if o.restaurant_id == restaurant_id and (status is None or o.status == status)
        ]
        found.sort(key=lambda o: (o.created_at, o.id), reverse=True)
        return found[:limit] if limit is not None else found

    async def update_status(self, order_id: int, status: OrderStatus) -> OrderRecord:
        record = self.orders.get(order_id)
        if record is None:
            raise OrderNotFoundError(f"Pedido #{order_id} não encontrado")
        updated = replace(record, status=status)
        self.orders[order_id] = updated
        return updated
