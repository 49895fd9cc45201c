"""
Mock Catalog Service

In-memory catalog used with DATA_BACKEND=memory and in tests.
`MockCatalogService.demo()` returns a small burger-shop menu.

Behavior:
    - Same ordering rules as the SQL catalog
    - `options_unavailable=True` simulates failing option lookups, which
      degrade to empty lists exactly like the SQL implementation
"""

import logging
from typing import Iterable, Optional

from cardapio.services.catalog.base import (
    BaseCatalogService,
    RestaurantInfo,
    CategoryInfo,
    ProductInfo,
    ExtraInfo,
    CrossSellRuleInfo,
)

logger = logging.getLogger(__name__)


class MockCatalogService(BaseCatalogService):
    """In-memory implementation of the catalog."""

    def __init__(
        self,
        restaurants: Optional[list[RestaurantInfo]] = None,
        categories: Optional[dict[int, list[CategoryInfo]]] = None,
        products: Optional[list[ProductInfo]] = None,
        removables: Optional[dict[int, list[str]]] = None,
        extras: Optional[dict[int, list[ExtraInfo]]] = None,
        cross_sell_rules: Optional[list[CrossSellRuleInfo]] = None,
        options_unavailable: bool = False,
    ):
        self.restaurants = restaurants or []
        self.categories = categories or {}
        self.products = products or []
        self.removables = removables or {}
        self.extras = extras or {}
        self.cross_sell_rules = cross_sell_rules or []
        self.options_unavailable = options_unavailable

    @property
    def provider_name(self) -> str:
        return "mock"

    def _degraded(self, what: str) -> bool:
        if self.options_unavailable:
            logger.warning(f"Mock catalog: {what} unavailable (simulated)")
            return True
        return False

    async def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantInfo]:
        return next((r for r in self.restaurants if r.id == restaurant_id), None)

    async def get_default_restaurant(self) -> Optional[RestaurantInfo]:
        return min(self.restaurants, key=lambda r: r.id) if self.restaurants else None

    async def list_categories(self, restaurant_id: int) -> list[CategoryInfo]:
        return sorted(
            self.categories.get(restaurant_id, []),
            key=lambda c: (c.display_order, c.name),
        )

    async def list_products(self, restaurant_id: int) -> list[ProductInfo]:
        return sorted(
            (p for p in self.products if p.restaurant_id == restaurant_id and p.is_active),
            key=lambda p: p.name,
        )

    async def get_product(self, product_id: int) -> Optional[ProductInfo]:
        return next((p for p in self.products if p.id == product_id), None)

    async def list_removables(self, product_id: int) -> list[str]:
        if self._degraded("removables"):
            return []
        return list(self.removables.get(product_id, []))

    async def list_extras(self, product_id: int) -> list[ExtraInfo]:
        if self._degraded("extras"):
            return []
        return [e for e in self.extras.get(product_id, []) if e.is_active]

    async def list_cross_sell_rules(self, category_id: Optional[int]) -> list[CrossSellRuleInfo]:
        if category_id is None or self._degraded("cross-sell rules"):
            return []
        return sorted(
            (r for r in self.cross_sell_rules if r.trigger_category_id == category_id),
            key=lambda r: r.display_order,
        )

    async def list_products_in_categories(self, category_ids: Iterable[int]) -> list[ProductInfo]:
        ids = set(category_ids)
        if not ids or self._degraded("cross-sell products"):
            return []
        return sorted(
            (p for p in self.products if p.category_id in ids and p.is_active),
            key=lambda p: p.name,
        )

    # =========================================================================
    # DEMO DATA
    # =========================================================================

    @classmethod
    def demo(cls) -> "MockCatalogService":
        """Burger shop with removables, extras and two cross-sell steps."""
        restaurant = RestaurantInfo(
            id=1,
            name="Cheff Burger",
            phone="(11) 98888-7777",
            primary_color="#E11D48",
            open_time="18:00",
            close_time="23:30",
            is_open=True,
        )
        lanches = CategoryInfo(id=1, name="Lanches", display_order=0)
        acompanhamentos = CategoryInfo(id=2, name="Acompanhamentos", display_order=1)
        bebidas = CategoryInfo(id=3, name="Bebidas", display_order=2)

        products = [
            ProductInfo(id=1, restaurant_id=1, name="X Burger", sell_price=20.00,
                        description="Pão, hambúrguer 150g, queijo e salada",
                        category_id=1, is_featured=True),
            ProductInfo(id=2, restaurant_id=1, name="X Salada", sell_price=22.90,
                        description="Pão, hambúrguer, queijo, alface e tomate",
                        category_id=1, promo_price=19.90),
            ProductInfo(id=3, restaurant_id=1, name="Batata Frita", sell_price=12.00,
                        description="Porção individual", category_id=2),
            ProductInfo(id=4, restaurant_id=1, name="Refrigerante Lata", sell_price=6.00,
                        category_id=3),
            ProductInfo(id=5, restaurant_id=1, name="Suco Natural", sell_price=8.50,
                        category_id=3),
        ]

        return cls(
            restaurants=[restaurant],
            categories={1: [lanches, acompanhamentos, bebidas]},
            products=products,
            removables={1: ["Cebola", "Picles"], 2: ["Tomate"]},
            extras={
                1: [
                    ExtraInfo(id=1, product_id=1, name="Bacon", price=4.00,
                              ingredient_id=3, quantity_used=0.05),
                    ExtraInfo(id=2, product_id=1, name="Cheddar", price=3.50,
                              ingredient_id=4, quantity_used=0.03),
                ],
            },
            cross_sell_rules=[
                CrossSellRuleInfo(id=1, trigger_category_id=1, suggest_category_id=2,
                                  step_label="Que tal uma batata?", display_order=0,
                                  suggest_category_name="Acompanhamentos"),
                CrossSellRuleInfo(id=2, trigger_category_id=1, suggest_category_id=3,
                                  step_label="Algo para beber?", display_order=1,
                                  suggest_category_name="Bebidas"),
            ],
        )
