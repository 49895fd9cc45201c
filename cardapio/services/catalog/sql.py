"""
SQL Catalog Service

Reads the catalog tables through the async SQLAlchemy session maker.
Each call opens and closes its own session.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardapio.models import (
    Restaurant,
    Category,
    Product,
    Recipe,
    Extra,
    CrossSellRule,
)
from cardapio.services.catalog.base import (
    BaseCatalogService,
    RestaurantInfo,
    CategoryInfo,
    ProductInfo,
    ExtraInfo,
    CrossSellRuleInfo,
)

logger = logging.getLogger(__name__)


def _restaurant_info(row: Restaurant) -> RestaurantInfo:
    return RestaurantInfo(
        id=row.id,
        name=row.name,
        phone=row.phone,
        logo_url=row.logo_url,
        banner_url=row.banner_url,
        primary_color=row.primary_color,
        name_color=row.name_color,
        promo_banner_text=row.promo_banner_text,
        open_time=row.open_time,
        close_time=row.close_time,
        is_open=row.is_open,
    )


def _product_info(row: Product) -> ProductInfo:
    return ProductInfo(
        id=row.id,
        restaurant_id=row.restaurant_id,
        name=row.name,
        sell_price=float(row.sell_price),
        description=row.description,
        image_url=row.image_url,
        category_id=row.category_id,
        promo_price=float(row.promo_price) if row.promo_price is not None else None,
        is_active=row.is_active,
        is_featured=row.is_featured,
    )


class SqlCatalogService(BaseCatalogService):
    """Catalog backed by the application database."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    @property
    def provider_name(self) -> str:
        return "sql"

    async def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantInfo]:
        async with self.session_maker() as session:
            row = await session.get(Restaurant, restaurant_id)
            return _restaurant_info(row) if row else None

    async def get_default_restaurant(self) -> Optional[RestaurantInfo]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(Restaurant).order_by(Restaurant.id).limit(1)
            )
            row = result.scalar_one_or_none()
            return _restaurant_info(row) if row else None

    async def list_categories(self, restaurant_id: int) -> list[CategoryInfo]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(Category)
                .where(Category.restaurant_id == restaurant_id)
                .order_by(Category.display_order, Category.name)
            )
            return [
                CategoryInfo(
                    id=c.id,
                    name=c.name,
                    display_order=c.display_order,
                    description=c.description,
                )
                for c in result.scalars().all()
            ]

    async def list_products(self, restaurant_id: int) -> list[ProductInfo]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(Product)
                .where(Product.restaurant_id == restaurant_id, Product.is_active.is_(True))
                .order_by(Product.name)
            )
            return [_product_info(p) for p in result.scalars().all()]

    async def get_product(self, product_id: int) -> Optional[ProductInfo]:
        async with self.session_maker() as session:
            row = await session.get(Product, product_id)
            return _product_info(row) if row else None

    async def list_removables(self, product_id: int) -> list[str]:
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(Recipe)
                    .where(Recipe.product_id == product_id, Recipe.can_remove.is_(True))
                    .order_by(Recipe.id)
                )
                return [
                    r.ingredient.name
                    for r in result.scalars().unique().all()
                    if r.ingredient is not None and r.ingredient.name
                ]
        except SQLAlchemyError as e:
            logger.warning(f"Removables unavailable for product #{product_id}: {e}")
            return []

    async def list_extras(self, product_id: int) -> list[ExtraInfo]:
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(Extra)
                    .where(Extra.product_id == product_id, Extra.is_active.is_(True))
                    .order_by(Extra.id)
                )
                return [
                    ExtraInfo(
                        id=e.id,
                        product_id=e.product_id,
                        name=e.name,
                        price=float(e.price),
                        ingredient_id=e.ingredient_id,
                        quantity_used=float(e.quantity_used or 0),
                    )
                    for e in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            logger.warning(f"Extras unavailable for product #{product_id}: {e}")
            return []

    async def list_cross_sell_rules(self, category_id: Optional[int]) -> list[CrossSellRuleInfo]:
        if category_id is None:
            return []
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(CrossSellRule)
                    .where(CrossSellRule.trigger_category_id == category_id)
                    .order_by(CrossSellRule.display_order)
                )
                return [
                    CrossSellRuleInfo(
                        id=r.id,
                        suggest_category_id=r.suggest_category_id,
                        step_label=r.step_label,
                        trigger_category_id=r.trigger_category_id,
                        display_order=r.display_order,
                        suggest_category_name=(
                            r.suggest_category.name if r.suggest_category else None
                        ),
                    )
                    for r in result.scalars().unique().all()
                ]
        except SQLAlchemyError as e:
            logger.warning(f"Cross-sell rules unavailable for category #{category_id}: {e}")
            return []

    async def list_products_in_categories(self, category_ids: Iterable[int]) -> list[ProductInfo]:
        ids = list(category_ids)
        if not ids:
            return []
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(Product)
                    .where(Product.category_id.in_(ids), Product.is_active.is_(True))
                    .order_by(Product.name)
                )
                return [_product_info(p) for p in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.warning(f"Cross-sell products unavailable: {e}")
            return []

    async def health_check(self) -> bool:
        try:
            async with self.session_maker() as session:
                await session.execute(select(Restaurant.id).limit(1))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Catalog health check failed: {e}")
            return False
