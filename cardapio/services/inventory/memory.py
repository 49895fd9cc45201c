"""
In-Memory Inventory Repository

Used with DATA_BACKEND=memory (local demos) and in tests.
`InMemoryInventoryRepository.demo()` stocks the demo burger shop; its
ingredient ids match the `ingredient_id` of the demo catalog's extras.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from cardapio.services.inventory.base import (
    BaseInventoryRepository,
    IngredientInfo,
    StockAlertSettings,
)

logger = logging.getLogger(__name__)


class InMemoryInventoryRepository(BaseInventoryRepository):
    """List-backed ingredient storage."""

    def __init__(
        self,
        ingredients: Optional[list[IngredientInfo]] = None,
        alert_settings: Optional[dict[int, StockAlertSettings]] = None,
    ):
        self.ingredients = ingredients or []
        self.alert_settings = alert_settings or {}

    @property
    def provider_name(self) -> str:
        return "memory"

    async def list_ingredients(self, restaurant_id: int) -> list[IngredientInfo]:
        return sorted(
            (i for i in self.ingredients if i.restaurant_id == restaurant_id),
            key=lambda i: i.name,
        )

    async def get_alert_settings(self, restaurant_id: int) -> StockAlertSettings:
        return self.alert_settings.get(restaurant_id, StockAlertSettings())

    async def deduct_stock(self, usage: dict[int, float]) -> dict[int, float]:
        by_id = {i.id: i for i in self.ingredients}
        levels = {}
        for ingredient_id, amount in usage.items():
            item = by_id.get(ingredient_id)
            if item is None:
                logger.warning(f"Stock deduction skipped unknown ingredient #{ingredient_id}")
                continue
            item.current_stock = max(0.0, round(item.current_stock - amount, 3))
            levels[ingredient_id] = item.current_stock
        return levels

    async def health_check(self) -> bool:
        return True

    # =========================================================================
    # DEMO DATA
    # =========================================================================

    @classmethod
    def demo(cls, today: Optional[date] = None) -> "InMemoryInventoryRepository":
        """Stock for the demo menu: one item out, one low, one about to expire."""
        today = today or date.today()
        return cls(
            ingredients=[
                IngredientInfo(id=1, restaurant_id=1, name="Cebola", category="Verduras/Legumes",
                               unit="KG", current_stock=5.0, min_stock=2.0, cost_price=6.00),
                IngredientInfo(id=2, restaurant_id=1, name="Picles", category="Temperos",
                               unit="UN", current_stock=0.0, min_stock=20.0, cost_price=0.50),
                IngredientInfo(id=3, restaurant_id=1, name="Bacon", category="Proteínas",
                               unit="KG", current_stock=2.1, min_stock=2.0, cost_price=45.00),
                IngredientInfo(id=4, restaurant_id=1, name="Cheddar", category="Laticínios",
                               unit="KG", current_stock=3.0, min_stock=1.0, cost_price=38.00,
                               expiration_date=today + timedelta(days=1)),
                IngredientInfo(id=5, restaurant_id=1, name="Tomate", category="Verduras/Legumes",
                               unit="KG", current_stock=4.0, min_stock=1.0, cost_price=8.00),
                IngredientInfo(id=6, restaurant_id=1, name="Pão", category="Carboidratos",
                               unit="UN", current_stock=80.0, min_stock=30.0, cost_price=1.20),
                IngredientInfo(id=7, restaurant_id=1, name="Guardanapo",
                               unit="UN", current_stock=500.0, min_stock=100.0),
            ],
            alert_settings={1: StockAlertSettings(low_stock_threshold=10, expiry_alert_days=1)},
        )
