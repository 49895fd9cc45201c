"""
Staff Order Board

Orders move left to right through four columns:

    NEW -> PREPARING -> DISPATCHED -> COMPLETED

Staff may drop an order on any column. Moving to DISPATCHED or COMPLETED
offers a WhatsApp notice to the customer.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo
from typing import Any, Optional

from cardapio.core.config import get_settings
from cardapio.models import OrderStatus, OrderType
from cardapio.services.checkout.message import build_whatsapp_url
from cardapio.services.orders.base import BaseOrderRepository, OrderRecord
from cardapio.core.errors import OrderNotFoundError

logger = logging.getLogger(__name__)


BOARD_COLUMNS = [
    (OrderStatus.NEW, "Novos Pedidos"),
    (OrderStatus.PREPARING, "Em Preparo"),
    (OrderStatus.DISPATCHED, "Saiu p/ Entrega"),
    (OrderStatus.COMPLETED, "Concluído"),
]

STATUS_NOTICES = {
    OrderStatus.DISPATCHED: "Pedido saiu para entrega!",
    OrderStatus.COMPLETED: "Pedido concluído!",
}

CUSTOMER_NOTICES = {
    "dispatched": "Ola {name}! Seu pedido saiu para entrega!",
    "completed": "Ola {name}! Seu pedido esta pronto!",
}


@dataclass
class MoveResult:
    order: OrderRecord
    changed: bool
    notice: Optional[str] = None


def local_time(moment: datetime) -> datetime:
    """
    Naive wall-clock time in the restaurant's timezone.

    Aware timestamps (as stored by PostgreSQL) are converted; naive ones
    are taken to be local already.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(ZoneInfo(get_settings().timezone)).replace(tzinfo=None)


def order_number(created_at: datetime) -> str:
    """Short number shown on the board: the local creation time as HHMMSS."""
    return local_time(created_at).strftime("%H%M%S")


def order_type_label(order_type: OrderType) -> str:
    if order_type == OrderType.DELIVERY:
        return "Delivery"
    if order_type == OrderType.LOCAL:
        return "Local"
    return "Retirada"


def group_by_status(orders: list[OrderRecord]) -> dict[OrderStatus, list[OrderRecord]]:
    board: dict[OrderStatus, list[OrderRecord]] = {status: [] for status, _ in BOARD_COLUMNS}
    for order in orders:
        board.setdefault(order.status, []).append(order)
    return board


def board_card(order: OrderRecord) -> dict[str, Any]:
    return {
        **order.to_dict(),
        "number": order_number(order.created_at),
        "order_type_label": order_type_label(order.order_type),
    }


def render_board(orders: list[OrderRecord]) -> list[dict[str, Any]]:
    grouped = group_by_status(orders)
    return [
        {
            "status": status.value,
            "label": label,
            "count": len(grouped[status]),
            "orders": [board_card(o) for o in grouped[status]],
        }
        for status, label in BOARD_COLUMNS
    ]


async def move_order(
    repository: BaseOrderRepository,
    order_id: int,
    status: OrderStatus,
) -> MoveResult:
    """Move an order to another column; dropping it on its own column is a no-op."""
    order = await repository.get_order(order_id)
    if order is None:
        raise OrderNotFoundError(f"Pedido #{order_id} não encontrado")
    if order.status == status:
        return MoveResult(order=order, changed=False)

    updated = await repository.update_status(order_id, status)
    return MoveResult(order=updated, changed=True, notice=STATUS_NOTICES.get(status))


def customer_notice_link(order: OrderRecord, kind: str, base_url: str = "https://wa.me") -> str:
    """WhatsApp link telling the customer their order left or is ready."""
    template = CUSTOMER_NOTICES.get(kind)
    if template is None:
        raise ValueError(f"Unknown notice kind: {kind}")
    return build_whatsapp_url(template.format(name=order.customer_name), order.customer_phone, base_url)


def dashboard_stats(orders: list[OrderRecord], now: Optional[datetime] = None) -> dict[str, Any]:
    """Counts per status, today's revenue and average ticket; "today" is the restaurant's local day."""
    now = local_time(now or datetime.now(timezone.utc))
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    counts = {status.value: 0 for status, _ in BOARD_COLUMNS}
    for order in orders:
        counts[order.status.value] = counts.get(order.status.value, 0) + 1

    today = [o for o in orders if local_time(o.created_at) >= today_start]
    today_revenue = sum(o.total_amount for o in today)
    avg_ticket = sum(o.total_amount for o in orders) / len(orders) if orders else 0.0
    open_today = [o for o in today if o.status in (OrderStatus.NEW, OrderStatus.PREPARING)]

    return {
        "total_orders": len(orders),
        "status_counts": counts,
        "today_orders": len(today),
        "today_open_orders": len(open_today),
        "today_revenue": round(today_revenue, 2),
        "avg_order_value": round(avg_ticket, 2),
        "recent_orders": [board_card(o) for o in orders[:10]],
    }
