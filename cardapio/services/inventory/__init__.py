"""
Inventory Repository Factory

Returns the SQL or in-memory ingredient stock based on DATA_BACKEND.

Environment Switching:
    - DATA_BACKEND=database → SqlInventoryRepository
    - DATA_BACKEND=memory → InMemoryInventoryRepository (demo stock)
"""

import logging
from functools import lru_cache

from cardapio.core.config import get_settings
from cardapio.services.inventory.base import (
    BaseInventoryRepository,
    IngredientInfo,
    StockAlertSettings,
    StockStatus,
    dashboard_inventory,
    inventory_metrics,
    stock_report,
    stock_status,
    stock_usage,
)
from cardapio.services.inventory.memory import InMemoryInventoryRepository
from cardapio.services.inventory.sql import SqlInventoryRepository

logger = logging.getLogger(__name__)


@lru_cache()
def get_inventory_repository() -> BaseInventoryRepository:
    """Get the configured inventory repository; cached like the order repository."""
    settings = get_settings()

    if settings.use_database:
        from cardapio.database import async_session_maker

        logger.info("Inventory Repository: Using SqlInventoryRepository")
        return SqlInventoryRepository(async_session_maker)

    logger.info("Inventory Repository: Using InMemoryInventoryRepository (demo stock)")
    return InMemoryInventoryRepository.demo()


def reset_inventory_repository() -> None:
    """Clear the cached repository instance."""
    get_inventory_repository.cache_clear()


__all__ = [
    "get_inventory_repository",
    "reset_inventory_repository",
    "BaseInventoryRepository",
    "InMemoryInventoryRepository",
    "SqlInventoryRepository",
    "IngredientInfo",
    "StockAlertSettings",
    "StockStatus",
    "dashboard_inventory",
    "inventory_metrics",
    "stock_report",
    "stock_status",
    "stock_usage",
]
