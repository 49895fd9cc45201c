"""
SQL Inventory Repository

Ingredient stock lives in the application database. `deduct_stock`
updates every touched ingredient inside one transaction.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardapio.core.errors import PersistenceError
from cardapio.models import Ingredient, Restaurant
from cardapio.services.inventory.base import (
    BaseInventoryRepository,
    IngredientInfo,
    OTHER_CATEGORY,
    StockAlertSettings,
)

logger = logging.getLogger(__name__)


def _to_info(row: Ingredient) -> IngredientInfo:
    return IngredientInfo(
        id=row.id,
        restaurant_id=row.restaurant_id,
        name=row.name,
        category=row.category or OTHER_CATEGORY,
        unit=row.unit or "UN",
        current_stock=float(row.current_stock or 0),
        min_stock=float(row.min_stock or 0),
        cost_price=float(row.cost_price or 0),
        expiration_date=row.expiration_date,
    )


class SqlInventoryRepository(BaseInventoryRepository):
    """Ingredient storage backed by the application database."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    @property
    def provider_name(self) -> str:
        return "sql"

    async def list_ingredients(self, restaurant_id: int) -> list[IngredientInfo]:
        query = (
            select(Ingredient)
            .where(Ingredient.restaurant_id == restaurant_id)
            .order_by(Ingredient.name)
        )
        try:
            async with self.session_maker() as session:
                result = await session.execute(query)
                return [_to_info(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Could not list ingredients of restaurant #{restaurant_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def get_alert_settings(self, restaurant_id: int) -> StockAlertSettings:
        defaults = StockAlertSettings()
        try:
            async with self.session_maker() as session:
                row = await session.get(Restaurant, restaurant_id)
        except SQLAlchemyError as e:
            logger.error(f"Could not read stock settings of restaurant #{restaurant_id}: {e}")
            raise PersistenceError(str(e)) from e

        if row is None:
            return defaults
        return StockAlertSettings(
            low_stock_threshold=(
                row.low_stock_threshold if row.low_stock_threshold is not None
                else defaults.low_stock_threshold
            ),
            expiry_alert_days=(
                row.expiry_alert_days if row.expiry_alert_days is not None
                else defaults.expiry_alert_days
            ),
        )

    async def deduct_stock(self, usage: dict[int, float]) -> dict[int, float]:
        if not usage:
            return {}
        levels = {}
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    result = await session.execute(
                        select(Ingredient)
                        .where(Ingredient.id.in_(list(usage)))
                        .with_for_update()
                    )
                    for row in result.scalars().all():
                        remaining = float(row.current_stock or 0) - usage[row.id]
                        row.current_stock = max(0.0, round(remaining, 3))
                        levels[row.id] = row.current_stock
        except SQLAlchemyError as e:
            logger.error(f"Stock deduction rolled back: {e}")
            raise PersistenceError(str(e)) from e

        skipped = set(usage) - set(levels)
        if skipped:
            logger.warning(f"Stock deduction skipped unknown ingredients: {sorted(skipped)}")
        return levels

    async def health_check(self) -> bool:
        try:
            async with self.session_maker() as session:
                await session.execute(select(Ingredient.id).limit(1))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Inventory repository health check failed: {e}")
            return False
