from datetime import datetime, timedelta, timezone

import pytest

from cardapio.core.errors import OrderNotFoundError
from cardapio.models import OrderStatus, OrderType, PaymentMethod
from cardapio.services.order_board import (
    customer_notice_link,
    dashboard_stats,
    group_by_status,
    move_order,
    local_time,
    order_number,
    order_type_label,
    render_board,
)
from cardapio.services.orders.base import NewOrder, NewOrderItem, OrderRecord


def record(order_id, status=OrderStatus.NEW, total=30.0, created_at=None) -> OrderRecord:
    return OrderRecord(
        id=order_id,
        restaurant_id=1,
        customer_name="Ana",
        customer_phone="(11) 99999-0000",
        order_type=OrderType.DELIVERY,
        payment_method=PaymentMethod.PIX,
        total_amount=total,
        status=status,
        created_at=created_at or datetime(2024, 5, 10, 19, 4, 7),
    )


async def stored_order(repository) -> OrderRecord:
    return await repository.create_order(
        NewOrder(
            restaurant_id=1,
            customer_name="Ana",
            customer_phone="(11) 99999-0000",
            order_type=OrderType.DELIVERY,
            payment_method=PaymentMethod.PIX,
            total_amount=24.0,
        ),
        [NewOrderItem(product_id=1, quantity=1, unit_price=20.0)],
    )


def test_order_number_is_creation_time():
    assert order_number(datetime(2024, 5, 10, 9, 4, 7)) == "090407"


def test_order_number_uses_restaurant_timezone():
    utc = datetime(2024, 5, 10, 22, 4, 7, tzinfo=timezone.utc)

    assert order_number(utc) == "190407"
    assert local_time(utc) == datetime(2024, 5, 10, 19, 4, 7)


def test_order_type_labels():
    assert order_type_label(OrderType.DELIVERY) == "Delivery"
    assert order_type_label(OrderType.PICKUP) == "Retirada"
    assert order_type_label(OrderType.LOCAL) == "Local"


def test_group_by_status_keeps_every_column():
    grouped = group_by_status([record(1), record(2, OrderStatus.COMPLETED), record(3)])

    assert list(grouped) == [
        OrderStatus.NEW,
        OrderStatus.PREPARING,
        OrderStatus.DISPATCHED,
        OrderStatus.COMPLETED,
    ]
    assert [o.id for o in grouped[OrderStatus.NEW]] == [1, 3]
    assert grouped[OrderStatus.PREPARING] == []


def test_render_board_cards():
    columns = render_board([record(1, OrderStatus.PREPARING)])

    assert [c["status"] for c in columns] == ["NEW", "PREPARING", "DISPATCHED", "COMPLETED"]
    [card] = columns[1]["orders"]
    assert card["number"] == "190407"
    assert card["order_type_label"] == "Delivery"


async def test_move_order_changes_status(repository):
    order = await stored_order(repository)

    result = await move_order(repository, order.id, OrderStatus.DISPATCHED)

    assert result.changed
    assert result.notice == "Pedido saiu para entrega!"
    assert repository.orders[order.id].status == OrderStatus.DISPATCHED


async def test_move_to_completed_has_notice(repository):
    order = await stored_order(repository)
    result = await move_order(repository, order.id, OrderStatus.COMPLETED)
    assert result.notice == "Pedido concluído!"


async def test_move_to_same_column_is_noop(repository):
    order = await stored_order(repository)

    result = await move_order(repository, order.id, OrderStatus.NEW)

    assert not result.changed
    assert result.notice is None


async def test_move_to_preparing_has_no_notice(repository):
    order = await stored_order(repository)
    result = await move_order(repository, order.id, OrderStatus.PREPARING)
    assert result.changed and result.notice is None


async def test_move_unknown_order(repository):
    with pytest.raises(OrderNotFoundError):
        await move_order(repository, 42, OrderStatus.PREPARING)


def test_customer_notice_links():
    order = record(1)

    dispatched = customer_notice_link(order, "dispatched")
    ready = customer_notice_link(order, "completed")

    assert dispatched == "https://wa.me/11999990000?text=Ola%20Ana!%20Seu%20pedido%20saiu%20para%20entrega!"
    assert ready.endswith("Seu%20pedido%20esta%20pronto!")


def test_customer_notice_unknown_kind():
    with pytest.raises(ValueError):
        customer_notice_link(record(1), "lost")


def test_dashboard_stats():
    now = datetime(2024, 5, 10, 22, 0)
    orders = [
        record(3, OrderStatus.NEW, total=50.0, created_at=now - timedelta(hours=1)),
        record(2, OrderStatus.COMPLETED, total=30.0, created_at=now - timedelta(hours=2)),
        record(1, OrderStatus.COMPLETED, total=10.0, created_at=now - timedelta(days=1)),
    ]

    stats = dashboard_stats(orders, now=now)

    assert stats["total_orders"] == 3
    assert stats["status_counts"] == {"NEW": 1, "PREPARING": 0, "DISPATCHED": 0, "COMPLETED": 2}
    assert stats["today_orders"] == 2
    assert stats["today_open_orders"] == 1
    assert stats["today_revenue"] == 80.0
    assert stats["avg_order_value"] == 30.0
    assert [o["id"] for o in stats["recent_orders"]] == [3, 2, 1]


def test_dashboard_today_follows_local_day():
    now = datetime(2024, 5, 11, 1, 30, tzinfo=timezone.utc)  # 22:30 on the 10th in São Paulo
    orders = [
        record(2, OrderStatus.PREPARING, total=40.0, created_at=datetime(2024, 5, 10, 23, 0, tzinfo=timezone.utc)),
        record(1, OrderStatus.COMPLETED, total=10.0, created_at=datetime(2024, 5, 10, 2, 0, tzinfo=timezone.utc)),
    ]

    stats = dashboard_stats(orders, now=now)

    assert stats["today_orders"] == 1
    assert stats["today_open_orders"] == 1
    assert stats["today_revenue"] == 40.0
    assert stats["recent_orders"][0]["number"] == "200000"


def test_dashboard_stats_empty():
    stats = dashboard_stats([])
    assert stats["avg_order_value"] == 0.0
    assert stats["today_revenue"] == 0
