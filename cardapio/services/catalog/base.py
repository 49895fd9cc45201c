"""
Catalog Service Abstract Base Class

Read-only view of the restaurant catalog used by the menu, the product
selection modal and the checkout. Both the SQL and the in-memory demo
implementations return the same plain records defined here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional


@dataclass
class RestaurantInfo:
    id: int
    name: str
    phone: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None
    primary_color: Optional[str] = None
    name_color: Optional[str] = None
    promo_banner_text: Optional[str] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_open: Optional[bool] = None

    @property
    def accepting_orders(self) -> bool:
        """Only an explicit `False` marks the restaurant as closed."""
        return self.is_open is not False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "logo_url": self.logo_url,
            "banner_url": self.banner_url,
            "primary_color": self.primary_color or "#E11D48",
            "name_color": self.name_color,
            "promo_banner_text": self.promo_banner_text,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "is_open": self.accepting_orders,
        }


@dataclass
class CategoryInfo:
    id: int
    name: str
    display_order: int = 0
    description: Optional[str] = None


@dataclass
class ProductInfo:
    id: int
    restaurant_id: int
    name: str
    sell_price: float
    description: Optional[str] = None
    image_url: Optional[str] = None
    category_id: Optional[int] = None
    promo_price: Optional[float] = None
    is_active: bool = True
    is_featured: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "sell_price": self.sell_price,
            "promo_price": self.promo_price,
            "image_url": self.image_url,
            "category_id": self.category_id,
            "is_featured": self.is_featured,
        }


@dataclass
class ExtraInfo:
    id: int
    product_id: int
    name: str
    price: float
    ingredient_id: Optional[int] = None
    quantity_used: float = 0.0
    is_active: bool = True


@dataclass
class CrossSellRuleInfo:
    id: int
    suggest_category_id: int
    step_label: str = ""
    trigger_category_id: Optional[int] = None
    display_order: int = 0
    suggest_category_name: Optional[str] = None


@dataclass
class MenuSection:
    category: CategoryInfo
    products: list[ProductInfo] = field(default_factory=list)


class BaseCatalogService(ABC):
    """
    Abstract base class for catalog readers.

    Option lookups (removables, extras, cross-sell) must degrade to an
    empty list on storage errors so a customer can still order.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantInfo]:
        pass

    @abstractmethod
    async def get_default_restaurant(self) -> Optional[RestaurantInfo]:
        """First restaurant on record, used when a request names none."""
        pass

    @abstractmethod
    async def list_categories(self, restaurant_id: int) -> list[CategoryInfo]:
        """Categories ordered by display order, then name."""
        pass

    @abstractmethod
    async def list_products(self, restaurant_id: int) -> list[ProductInfo]:
        """Active products ordered by name."""
        pass

    @abstractmethod
    async def get_product(self, product_id: int) -> Optional[ProductInfo]:
        pass

    @abstractmethod
    async def list_removables(self, product_id: int) -> list[str]:
        """Names of ingredients the customer may take out."""
        pass

    @abstractmethod
    async def list_extras(self, product_id: int) -> list[ExtraInfo]:
        """Active extras of a product."""
        pass

    @abstractmethod
    async def list_cross_sell_rules(self, category_id: Optional[int]) -> list[CrossSellRuleInfo]:
        """Rules triggered by a category, ordered by display order."""
        pass

    @abstractmethod
    async def list_products_in_categories(self, category_ids: Iterable[int]) -> list[ProductInfo]:
        """Active products of any of the categories, ordered by name."""
        pass

    async def health_check(self) -> bool:
        return True


def build_menu_sections(
    categories: list[CategoryInfo],
    products: list[ProductInfo],
    search: Optional[str] = None,
) -> list[MenuSection]:
    """
    Group products under their categories in category order.

    Categories without a matching product are left out. `search` filters
    case-insensitively on name and description.
    """
    if search:
        needle = search.lower()
        products = [
            p for p in products
            if needle in p.name.lower() or needle in (p.description or "").lower()
        ]

    sections = []
    for category in categories:
        items = [p for p in products if p.category_id == category.id]
        if items:
            sections.append(MenuSection(category=category, products=items))
    return sections
