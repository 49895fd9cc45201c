"""
Order Repository Factory

Returns the SQL or in-memory repository based on DATA_BACKEND.

Environment Switching:
    - DATA_BACKEND=database → SqlOrderRepository
    - DATA_BACKEND=memory → InMemoryOrderRepository (demo menu owners)
"""

import logging
from functools import lru_cache

from cardapio.core.config import get_settings
from cardapio.services.orders.base import (
    BaseOrderRepository,
    NewOrder,
    NewOrderItem,
    OrderRecord,
    OrderItemRecord,
)
from cardapio.services.orders.memory import InMemoryOrderRepository
from cardapio.services.orders.sql import SqlOrderRepository

logger = logging.getLogger(__name__)


@lru_cache()
def get_order_repository() -> BaseOrderRepository:
    """
    Get the configured order repository instance.

    The instance is cached so every request sees the same in-memory
    orders when running without a database.
    """
    settings = get_settings()

    if settings.use_database:
        from cardapio.database import async_session_maker

        logger.info("Order Repository: Using SqlOrderRepository")
        return SqlOrderRepository(async_session_maker)

    from cardapio.services.catalog import get_catalog_service

    catalog = get_catalog_service()
    owners = {p.id: p.restaurant_id for p in getattr(catalog, "products", [])}
    logger.info("Order Repository: Using InMemoryOrderRepository")
    return InMemoryOrderRepository(product_restaurants=owners)


def reset_order_repository() -> None:
    """Clear the cached repository instance."""
    get_order_repository.cache_clear()
    logger.debug("Order repository cache cleared")


__all__ = [
    "get_order_repository",
    "reset_order_repository",
    "BaseOrderRepository",
    "InMemoryOrderRepository",
    "SqlOrderRepository",
    "NewOrder",
    "NewOrderItem",
    "OrderRecord",
    "OrderItemRecord",
]
