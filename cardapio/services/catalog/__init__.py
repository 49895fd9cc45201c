"""
Catalog Service Factory

Returns the SQL or in-memory catalog based on DATA_BACKEND.

Usage:
    from cardapio.services.catalog import get_catalog_service

    catalog = get_catalog_service()
    extras = await catalog.list_extras(product_id)
"""

import logging
from functools import lru_cache

from cardapio.core.config import get_settings
from cardapio.services.catalog.base import (
    BaseCatalogService,
    RestaurantInfo,
    CategoryInfo,
    ProductInfo,
    ExtraInfo,
    CrossSellRuleInfo,
    MenuSection,
    build_menu_sections,
)
from cardapio.services.catalog.mock import MockCatalogService
from cardapio.services.catalog.sql import SqlCatalogService

logger = logging.getLogger(__name__)


@lru_cache()
def get_catalog_service() -> BaseCatalogService:
    """Get the configured catalog service."""
    settings = get_settings()

    if settings.use_database:
        from cardapio.database import async_session_maker

        logger.info("Catalog Service: Using SqlCatalogService")
        return SqlCatalogService(async_session_maker)

    logger.info("Catalog Service: Using MockCatalogService (demo menu)")
    return MockCatalogService.demo()


def reset_catalog_service() -> None:
    """Clear the cached service instance."""
    get_catalog_service.cache_clear()


__all__ = [
    "get_catalog_service",
    "reset_catalog_service",
    "BaseCatalogService",
    "MockCatalogService",
    "SqlCatalogService",
    "RestaurantInfo",
    "CategoryInfo",
    "ProductInfo",
    "ExtraInfo",
    "CrossSellRuleInfo",
    "MenuSection",
    "build_menu_sections",
]
