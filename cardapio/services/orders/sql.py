"""
SQL Order Repository

Orders and order items live in the application database. `create_order`
writes both inside one transaction, so a failing item insert rolls the
order back instead of leaving an order without items.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardapio.core.errors import OrderNotFoundError, PersistenceError
from cardapio.models import Order, OrderItem, OrderStatus, Product
from cardapio.services.orders.base import (
    BaseOrderRepository,
    NewOrder,
    NewOrderItem,
    OrderRecord,
    OrderItemRecord,
)

logger = logging.getLogger(__name__)


def _to_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        restaurant_id=order.restaurant_id,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        order_type=order.order_type,
        payment_method=order.payment_method,
        total_amount=float(order.total_amount),
        status=order.status,
        created_at=order.created_at,
        delivery_address=order.delivery_address,
        change_for=float(order.change_for) if order.change_for is not None else None,
        items=[
            OrderItemRecord(
                id=item.id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=float(item.unit_price),
                notes=item.notes,
                extras_json=list(item.extras_json or []),
                product_name=item.product_name,
            )
            for item in order.items
        ],
    )


class SqlOrderRepository(BaseOrderRepository):
    """Order storage backed by the application database."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    @property
    def provider_name(self) -> str:
        return "sql"

    async def resolve_restaurant_id(self, product_id: int) -> Optional[int]:
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(Product.restaurant_id).where(Product.id == product_id)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Could not resolve restaurant of product #{product_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def create_order(self, order: NewOrder, items: list[NewOrderItem]) -> OrderRecord:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    row = Order(
                        restaurant_id=order.restaurant_id,
                        customer_name=order.customer_name,
                        customer_phone=order.customer_phone,
                        order_type=order.order_type,
                        delivery_address=order.delivery_address,
                        payment_method=order.payment_method,
                        change_for=order.change_for,
                        total_amount=order.total_amount,
                        status=order.status,
                    )
                    session.add(row)
                    await session.flush()

                    session.add_all([
                        OrderItem(
                            order_id=row.id,
                            product_id=item.product_id,
                            product_name=item.product_name,
                            quantity=item.quantity,
                            unit_price=item.unit_price,
                            notes=item.notes,
                            extras_json=item.extras_json,
                        )
                        for item in items
                    ])
                order_id = row.id

            logger.info(f"Order #{order_id} stored with {len(items)} item(s)")
        except SQLAlchemyError as e:
            logger.error(f"Order insert rolled back: {e}")
            raise PersistenceError(str(e)) from e

        stored = await self.get_order(order_id)
        if stored is None:
            raise PersistenceError(f"Pedido #{order_id} não encontrado após gravação")
        return stored

    async def delete_order(self, order_id: int) -> bool:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    row = await session.get(Order, order_id)
                    if row is None:
                        return False
                    await session.delete(row)
            logger.warning(f"Order #{order_id} deleted")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Could not delete order #{order_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def get_order(self, order_id: int) -> Optional[OrderRecord]:
        async with self.session_maker() as session:
            result = await session.execute(select(Order).where(Order.id == order_id))
            row = result.scalar_one_or_none()
            return _to_record(row) if row else None

    async def list_orders(
        self,
        restaurant_id: int,
        status: Optional[OrderStatus] = None,
        limit: Optional[int] = None,
    ) -> list[OrderRecord]:
        query = (
            select(Order)
            .where(Order.restaurant_id == restaurant_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        if status is not None:
            query = query.where(Order.status == status)
        if limit is not None:
            query = query.limit(limit)

        async with self.session_maker() as session:
            result = await session.execute(query)
            return [_to_record(row) for row in result.scalars().all()]

    async def update_status(self, order_id: int, status: OrderStatus) -> OrderRecord:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    row = await session.get(Order, order_id)
                    if row is None:
                        raise OrderNotFoundError(f"Pedido #{order_id} não encontrado")
                    row.status = status
        except SQLAlchemyError as e:
            logger.error(f"Could not update order #{order_id}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Order #{order_id} moved to {status.value}")
        return await self.get_order(order_id)

    async def health_check(self) -> bool:
        try:
            async with self.session_maker() as session:
                await session.execute(select(Order.id).limit(1))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Order repository health check failed: {e}")
            return False
