"""
Inventory Abstract Base Class

Ingredient stock as seen by the staff stock page and the dashboard, plus
the pure rules both screens share:

    out     current stock is zero
    low     at or below min_stock raised by the restaurant's threshold (%)
    normal  anything else

An item is near expiry when its expiration date falls after today and no
later than `expiry_alert_days` from today.
"""

import enum
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Optional

from cardapio.services.cart import CartLineItem

OTHER_CATEGORY = "Outros"

DEFAULT_CATEGORIES = [
    "Laticínios",
    "Proteínas",
    "Carboidratos",
    "Verduras/Legumes",
    "Temperos",
    "Bebidas",
    "Embalagens",
    OTHER_CATEGORY,
]


class StockStatus(str, enum.Enum):
    OUT = "out"
    LOW = "low"
    NORMAL = "normal"


STATUS_LABELS = {
    StockStatus.OUT: "Sem estoque",
    StockStatus.LOW: "Estoque baixo",
    StockStatus.NORMAL: "Normal",
}


@dataclass
class StockAlertSettings:
    low_stock_threshold: int = 10
    expiry_alert_days: int = 1

    def to_dict(self) -> dict[str, int]:
        return {
            "low_stock_threshold": self.low_stock_threshold,
            "expiry_alert_days": self.expiry_alert_days,
        }


@dataclass
class IngredientInfo:
    id: int
    restaurant_id: int
    name: str
    category: str = OTHER_CATEGORY
    unit: str = "UN"
    current_stock: float = 0.0
    min_stock: float = 0.0
    cost_price: float = 0.0
    expiration_date: Optional[date] = None

    @property
    def category_name(self) -> str:
        return self.category or OTHER_CATEGORY

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category_name,
            "unit": self.unit,
            "current_stock": self.current_stock,
            "min_stock": self.min_stock,
            "cost_price": self.cost_price,
            "expiration_date": self.expiration_date.isoformat() if self.expiration_date else None,
        }


# =============================================================================
# RULES
# =============================================================================

def stock_status(item: IngredientInfo, threshold_percent: int = 10) -> StockStatus:
    if item.current_stock <= 0:
        return StockStatus.OUT
    if item.current_stock <= item.min_stock * (1 + threshold_percent / 100):
        return StockStatus.LOW
    return StockStatus.NORMAL


def is_near_expiry(item: IngredientInfo, today: date, alert_days: int) -> bool:
    if item.expiration_date is None:
        return False
    return today < item.expiration_date <= today + timedelta(days=alert_days)


def category_order(name: str) -> tuple[bool, str]:
    """Alphabetical, with "Outros" always last."""
    return (name == OTHER_CATEGORY, name.casefold())


def inventory_metrics(
    items: list[IngredientInfo],
    alerts: StockAlertSettings,
    today: date,
) -> dict[str, Any]:
    """KPI counts and total stock value (items without a cost are left out)."""
    statuses = [stock_status(i, alerts.low_stock_threshold) for i in items]
    stock_value = sum(i.cost_price * i.current_stock for i in items if i.cost_price > 0)

    return {
        "total_items": len(items),
        "out_of_stock": statuses.count(StockStatus.OUT),
        "low_stock": statuses.count(StockStatus.LOW),
        "near_expiry": sum(1 for i in items if is_near_expiry(i, today, alerts.expiry_alert_days)),
        "stock_value": round(stock_value, 2),
    }


def category_stats(items: list[IngredientInfo]) -> list[dict[str, Any]]:
    totals: dict[str, int] = defaultdict(int)
    empty: dict[str, int] = defaultdict(int)
    for item in items:
        totals[item.category_name] += 1
        if item.current_stock <= 0:
            empty[item.category_name] += 1

    return [
        {"category": name, "total": totals[name], "out_of_stock": empty[name]}
        for name in sorted(totals, key=category_order)
    ]


def stock_card(item: IngredientInfo, alerts: StockAlertSettings, today: date) -> dict[str, Any]:
    status = stock_status(item, alerts.low_stock_threshold)
    return {
        **item.to_dict(),
        "status": status.value,
        "status_label": STATUS_LABELS[status],
        "near_expiry": is_near_expiry(item, today, alerts.expiry_alert_days),
    }


def stock_report(
    items: list[IngredientInfo],
    alerts: StockAlertSettings,
    today: date,
    search: Optional[str] = None,
    status: Optional[StockStatus] = None,
) -> dict[str, Any]:
    """
    Stock page payload.

    Metrics and the category list always cover every item; the search
    (case-insensitive, on the name) and the status filter only narrow
    the grouped listing.
    """
    needle = (search or "").strip().casefold()
    shown = [
        i for i in items
        if needle in i.name.casefold()
        and (status is None or stock_status(i, alerts.low_stock_threshold) == status)
    ]

    groups: dict[str, list[IngredientInfo]] = defaultdict(list)
    for item in shown:
        groups[item.category_name].append(item)

    known = {i.category_name for i in items}
    return {
        "settings": alerts.to_dict(),
        "metrics": inventory_metrics(items, alerts, today),
        "categories": sorted(known.union(DEFAULT_CATEGORIES), key=category_order),
        "groups": [
            {
                "category": name,
                "count": len(groups[name]),
                "items": [
                    stock_card(i, alerts, today)
                    for i in sorted(groups[name], key=lambda i: i.name.casefold())
                ],
            }
            for name in sorted(groups, key=category_order)
        ],
    }


def dashboard_inventory(
    items: list[IngredientInfo],
    alerts: StockAlertSettings,
    today: date,
) -> dict[str, Any]:
    """Stock KPIs and the three alert lists shown on the dashboard."""
    threshold = alerts.low_stock_threshold
    return {
        "metrics": inventory_metrics(items, alerts, today),
        "out_of_stock": [i.to_dict() for i in items if stock_status(i, threshold) == StockStatus.OUT],
        "low_stock": [i.to_dict() for i in items if stock_status(i, threshold) == StockStatus.LOW],
        "near_expiry": [
            i.to_dict() for i in items if is_near_expiry(i, today, alerts.expiry_alert_days)
        ],
        "categories": category_stats(items),
    }


def stock_usage(lines: Iterable[CartLineItem]) -> dict[int, float]:
    """Ingredient consumption of ordered extras: quantity_used x extra qty x line qty."""
    usage: dict[int, float] = defaultdict(float)
    for line in lines:
        for extra in line.extras:
            if extra.ingredient_id is None or extra.quantity_used <= 0:
                continue
            usage[extra.ingredient_id] += extra.quantity_used * extra.qty * line.quantity
    return dict(usage)


# =============================================================================
# REPOSITORY
# =============================================================================

class BaseInventoryRepository(ABC):
    """
    Abstract base class for ingredient stock storage.

    Implementations raise `PersistenceError` for storage failures.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def list_ingredients(self, restaurant_id: int) -> list[IngredientInfo]:
        """Ingredients of a restaurant, by name."""
        pass

    @abstractmethod
    async def get_alert_settings(self, restaurant_id: int) -> StockAlertSettings:
        pass

    @abstractmethod
    async def deduct_stock(self, usage: dict[int, float]) -> dict[int, float]:
        """
        Subtract consumption per ingredient id, never going below zero.

        Returns:
            New stock level of every ingredient touched; unknown ids are skipped
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
