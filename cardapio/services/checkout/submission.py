"""
Checkout submission variants.

Two ways to hand off a finished checkout:

    MessageOnlySubmitter:
        message -> link addressed to the restaurant's phone

    PersistThenMessageSubmitter:
        resolve restaurant -> store order + items (one transaction)
        -> link without a fixed recipient -> deduct extras from stock

Every submission carries a `CancellationToken`. Closing the checkout
cancels it; the submitter checks it between steps and removes an order
that was stored after the checkout was closed.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from cardapio.core.errors import (
    MessageDeliveryError,
    RestaurantNotFoundError,
    SubmissionCancelledError,
    SubmissionTimeoutError,
)
from cardapio.services.cart import CartStore
from cardapio.services.checkout.message import build_order_message, build_whatsapp_url
from cardapio.services.checkout.session import (
    CheckoutSession,
    ORDER_TYPES,
    PAYMENT_METHODS,
)
from cardapio.services.inventory.base import BaseInventoryRepository, stock_usage
from cardapio.services.messaging.base import BaseMessageChannel
from cardapio.services.orders.base import BaseOrderRepository, NewOrder, NewOrderItem

logger = logging.getLogger(__name__)


class CancellationToken:
    """Signals a submission that its checkout has been closed."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SubmissionCancelledError()


@dataclass
class CheckoutResult:
    message: str
    whatsapp_url: str
    total: float
    order_id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "whatsapp_url": self.whatsapp_url,
            "total": round(self.total, 2),
            "order_id": self.order_id,
        }


def render_message(session: CheckoutSession, cart: CartStore) -> str:
    return build_order_message(
        items=cart.items,
        total=cart.total,
        order_type=session.order_type,
        customer_name=session.customer_name,
        customer_phone=session.customer_phone,
        payment_method=session.payment_method,
        delivery_address=session.delivery_address,
        change_for=session.change_for,
        table=session.table,
    )


def build_order_records(
    session: CheckoutSession,
    cart: CartStore,
    restaurant_id: int,
) -> tuple[NewOrder, list[NewOrderItem]]:
    """Snapshot the cart and form into order and item rows."""
    order = NewOrder(
        restaurant_id=restaurant_id,
        customer_name=session.customer_name,
        customer_phone=session.customer_phone or None,
        order_type=ORDER_TYPES[session.order_type],
        delivery_address=session.stored_address,
        payment_method=PAYMENT_METHODS[session.payment_method],
        change_for=session.change_for_amount,
        total_amount=round(cart.total, 2),
    )
    items = [
        NewOrderItem(
            product_id=item.product.id,
            product_name=item.product.name,
            quantity=item.quantity,
            unit_price=item.product.price,
            notes=", ".join(f"Sem {r}" for r in item.removed) if item.removed else None,
            extras_json=[e.to_dict() for e in item.extras],
        )
        for item in cart.items
    ]
    return order, items


class BaseSubmitter(ABC):
    """Strategy for the final checkout action."""

    def __init__(self, channel: BaseMessageChannel, base_url: str = "https://wa.me"):
        self.channel = channel
        self.base_url = base_url

    @property
    @abstractmethod
    def mode(self) -> str:
        pass

    @abstractmethod
    async def submit(
        self,
        session: CheckoutSession,
        cart: CartStore,
        token: CancellationToken,
    ) -> CheckoutResult:
        pass

    async def _open(self, url: str, message: str) -> str:
        result = await self.channel.open_link(url, message)
        if not result.success:
            raise MessageDeliveryError(result.error_message)
        return result.url or url


class MessageOnlySubmitter(BaseSubmitter):
    """Send the order straight to the restaurant's WhatsApp, store nothing."""

    def __init__(
        self,
        channel: BaseMessageChannel,
        restaurant_phone: Optional[str] = None,
        base_url: str = "https://wa.me",
    ):
        super().__init__(channel, base_url)
        self.restaurant_phone = restaurant_phone

    @property
    def mode(self) -> str:
        return "message_only"

    async def submit(
        self,
        session: CheckoutSession,
        cart: CartStore,
        token: CancellationToken,
    ) -> CheckoutResult:
        token.raise_if_cancelled()
        message = render_message(session, cart)
        url = build_whatsapp_url(message, self.restaurant_phone, self.base_url)
        opened = await self._open(url, message)
        return CheckoutResult(message=message, whatsapp_url=opened, total=cart.total)


class PersistThenMessageSubmitter(BaseSubmitter):
    """Store the order first, then produce a share link for the customer."""

    def __init__(
        self,
        repository: BaseOrderRepository,
        channel: BaseMessageChannel,
        restaurant_id: Optional[int] = None,
        timeout: float = 15.0,
        base_url: str = "https://wa.me",
        inventory: Optional[BaseInventoryRepository] = None,
    ):
        super().__init__(channel, base_url)
        self.repository = repository
        self.restaurant_id = restaurant_id
        self.timeout = timeout
        self.inventory = inventory

    @property
    def mode(self) -> str:
        return "persist_then_message"

    async def _resolve_restaurant(self, cart: CartStore) -> int:
        if self.restaurant_id is not None:
            return self.restaurant_id
        first = cart.items[0].product
        restaurant_id = await self.repository.resolve_restaurant_id(first.id)
        if restaurant_id is None:
            raise RestaurantNotFoundError()
        return restaurant_id

    async def _undo(self, order_id: int) -> None:
        try:
            await self.repository.delete_order(order_id)
        except Exception:
            logger.exception(f"Compensating delete failed for order #{order_id}")

    async def _deduct_stock(self, order_id: int, cart: CartStore) -> None:
        """Best effort: the order stands even if the stock update fails."""
        if self.inventory is None:
            return
        usage = stock_usage(cart.items)
        if not usage:
            return
        try:
            levels = await self.inventory.deduct_stock(usage)
            logger.info(f"Order #{order_id}: stock deducted for {len(levels)} ingredient(s)")
        except Exception as e:
            logger.warning(f"Order #{order_id}: stock not deducted: {e}")

    async def submit(
        self,
        session: CheckoutSession,
        cart: CartStore,
        token: CancellationToken,
    ) -> CheckoutResult:
        token.raise_if_cancelled()
        restaurant_id = await self._resolve_restaurant(cart)
        order, items = build_order_records(session, cart, restaurant_id)

        token.raise_if_cancelled()
        try:
            record = await asyncio.wait_for(
                self.repository.create_order(order, items),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Order insert timed out after {self.timeout}s")
            raise SubmissionTimeoutError()

        if token.cancelled:
            logger.warning(f"Checkout closed during submission, removing order #{record.id}")
            await self._undo(record.id)
            raise SubmissionCancelledError()

        message = render_message(session, cart)
        url = build_whatsapp_url(message, None, self.base_url)
        try:
            opened = await self._open(url, message)
        except MessageDeliveryError:
            await self._undo(record.id)
            raise

        await self._deduct_stock(record.id, cart)
        return CheckoutResult(
            message=message,
            whatsapp_url=opened,
            total=cart.total,
            order_id=record.id,
        )
