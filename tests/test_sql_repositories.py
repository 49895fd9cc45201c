import pytest
from sqlalchemy import text

from cardapio.core.errors import OrderNotFoundError, PersistenceError
from cardapio.models import OrderStatus, OrderType, PaymentMethod
from cardapio.services.catalog.sql import SqlCatalogService
from cardapio.services.orders.base import NewOrder, NewOrderItem
from cardapio.services.orders.sql import SqlOrderRepository
from cardapio.services.product_selection import open_selection


def new_order(**overrides) -> NewOrder:
    fields = dict(
        restaurant_id=1,
        customer_name="Ana",
        customer_phone="11999999999",
        order_type=OrderType.DELIVERY,
        delivery_address="Rua A, 10, Centro - São Paulo - CEP 01000-000",
        payment_method=PaymentMethod.PIX,
        change_for=None,
        total_amount=48.0,
    )
    fields.update(overrides)
    return NewOrder(**fields)


def burger_item(**overrides) -> NewOrderItem:
    fields = dict(
        product_id=1,
        product_name="X Burger",
        quantity=2,
        unit_price=20.0,
        notes="Sem Cebola",
        extras_json=[{"extra_id": 1, "name": "Bacon", "price": 4.0, "qty": 1}],
    )
    fields.update(overrides)
    return NewOrderItem(**fields)


# =============================================================================
# CATALOG
# =============================================================================

async def test_catalog_reads_menu(seeded_session_maker):
    catalog = SqlCatalogService(seeded_session_maker)

    restaurant = await catalog.get_default_restaurant()
    categories = await catalog.list_categories(restaurant.id)
    products = await catalog.list_products(restaurant.id)

    assert restaurant.name == "Cheff Burger"
    assert [c.name for c in categories] == ["Lanches", "Bebidas"]
    assert [p.name for p in products] == ["Refrigerante", "X Burger"]


async def test_catalog_options(seeded_session_maker):
    catalog = SqlCatalogService(seeded_session_maker)

    assert await catalog.list_removables(1) == ["Cebola"]
    assert [e.name for e in await catalog.list_extras(1)] == ["Bacon"]

    [rule] = await catalog.list_cross_sell_rules(1)
    assert rule.step_label == "Algo para beber?"
    assert rule.suggest_category_name == "Bebidas"

    suggested = await catalog.list_products_in_categories([rule.suggest_category_id])
    assert [p.name for p in suggested] == ["Refrigerante"]


async def test_catalog_selection_from_database(seeded_session_maker):
    selection = await open_selection(SqlCatalogService(seeded_session_maker), 1)

    assert selection.current_step.key == "info"
    assert selection.total_steps == 4


async def test_catalog_options_degrade_without_tables(session_maker):
    catalog = SqlCatalogService(session_maker)

    async with session_maker() as session:
        await session.execute(text("DROP TABLE extras"))
        await session.commit()

    assert await catalog.list_extras(1) == []


# =============================================================================
# ORDERS
# =============================================================================

async def test_create_order_with_items(seeded_session_maker):
    repository = SqlOrderRepository(seeded_session_maker)

    soda = burger_item(product_id=2, product_name="Refrigerante", quantity=1, notes=None, extras_json=[])

    record = await repository.create_order(new_order(), [burger_item(), soda])

    assert record.id is not None
    assert record.status == OrderStatus.NEW
    assert record.order_type == OrderType.DELIVERY
    assert len(record.items) == 2
    assert record.items[0].extras_json[0]["name"] == "Bacon"
    assert record.created_at is not None


async def test_failed_item_insert_rolls_back_order(seeded_session_maker):
    repository = SqlOrderRepository(seeded_session_maker)

    with pytest.raises(PersistenceError):
        await repository.create_order(new_order(), [burger_item(product_id=None)])

    assert await repository.list_orders(1) == []


async def test_delete_order_removes_items(seeded_session_maker):
    repository = SqlOrderRepository(seeded_session_maker)
    record = await repository.create_order(new_order(), [burger_item()])

    assert await repository.delete_order(record.id)
    assert await repository.get_order(record.id) is None
    assert not await repository.delete_order(record.id)


async def test_list_orders_newest_first_and_filtered(seeded_session_maker):
    repository = SqlOrderRepository(seeded_session_maker)
    first = await repository.create_order(new_order(customer_name="Ana"), [burger_item()])
    second = await repository.create_order(new_order(customer_name="Bia"), [burger_item()])
    await repository.update_status(first.id, OrderStatus.PREPARING)

    assert [o.id for o in await repository.list_orders(1)] == [second.id, first.id]
    assert [o.id for o in await repository.list_orders(1, status=OrderStatus.PREPARING)] == [first.id]
    assert [o.id for o in await repository.list_orders(1, limit=1)] == [second.id]
    assert await repository.list_orders(2) == []


async def test_update_status_unknown_order(seeded_session_maker):
    repository = SqlOrderRepository(seeded_session_maker)

    with pytest.raises(OrderNotFoundError):
        await repository.update_status(404, OrderStatus.COMPLETED)


async def test_resolve_restaurant_id(seeded_session_maker):
    repository = SqlOrderRepository(seeded_session_maker)

    assert await repository.resolve_restaurant_id(1) == 1
    assert await repository.resolve_restaurant_id(999) is None
    assert await repository.health_check()
