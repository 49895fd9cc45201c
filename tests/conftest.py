"""
Shared fixtures.

Settings are cached on first import, so the environment is fixed here
before any `cardapio` module is loaded: in-memory catalog and orders,
SQLite for the SQL-backed tests, no Celery export.
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="cardapio-tests-")

os.environ["ENV_MODE"] = "development"
os.environ["DATA_BACKEND"] = "memory"
os.environ["CHECKOUT_MODE"] = "persist_then_message"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'app.db')}"
os.environ["EXCEL_EXPORT_ENABLED"] = "false"
os.environ["MOCK_FAILURE_RATE"] = "0"
os.environ["DATA_DIRECTORY"] = os.path.join(_TMP_DIR, "data")
os.environ["REDIS_URL"] = "redis://localhost:6379/0"

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cardapio.database import Base
from cardapio.models import Category, Extra, Ingredient, Product, Recipe, Restaurant, CrossSellRule
from cardapio.services.cart import CartStore
from cardapio.services.catalog.mock import MockCatalogService
from cardapio.services.messaging.mock import MockMessageChannel
from cardapio.services.orders.memory import InMemoryOrderRepository


@pytest.fixture
def catalog() -> MockCatalogService:
    return MockCatalogService.demo()


@pytest.fixture
def cart() -> CartStore:
    return CartStore()


@pytest.fixture
def repository(catalog) -> InMemoryOrderRepository:
    return InMemoryOrderRepository(
        product_restaurants={p.id: p.restaurant_id for p in catalog.products},
    )


@pytest.fixture
def channel() -> MockMessageChannel:
    return MockMessageChannel()


@pytest.fixture
async def session_maker(tmp_path):
    """Fresh SQLite database with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def seeded_session_maker(session_maker):
    """
    Database holding one burger restaurant:

        Lanches: X Burger (removable Cebola, extra Bacon)
        Bebidas: Refrigerante
        Rule: Lanches -> Bebidas "Algo para beber?"
    """
    async with session_maker() as session:
        async with session.begin():
            restaurant = Restaurant(name="Cheff Burger", phone="(11) 98888-7777", is_open=True)
            session.add(restaurant)
            await session.flush()

            lanches = Category(restaurant_id=restaurant.id, name="Lanches", display_order=0)
            bebidas = Category(restaurant_id=restaurant.id, name="Bebidas", display_order=1)
            session.add_all([lanches, bebidas])
            await session.flush()

            burger = Product(restaurant_id=restaurant.id, category_id=lanches.id,
                             name="X Burger", sell_price=20.0, is_featured=True)
            soda = Product(restaurant_id=restaurant.id, category_id=bebidas.id,
                           name="Refrigerante", sell_price=6.0)
            hidden = Product(restaurant_id=restaurant.id, category_id=bebidas.id,
                             name="Suco Antigo", sell_price=7.0, is_active=False)
            session.add_all([burger, soda, hidden])
            await session.flush()

            onion = Ingredient(restaurant_id=restaurant.id, name="Cebola")
            bun = Ingredient(restaurant_id=restaurant.id, name="Pão")
            session.add_all([onion, bun])
            await session.flush()

            session.add_all([
                Recipe(product_id=burger.id, ingredient_id=onion.id, can_remove=True),
                Recipe(product_id=burger.id, ingredient_id=bun.id, can_remove=False),
                Extra(product_id=burger.id, name="Bacon", price=4.0),
                Extra(product_id=burger.id, name="Ovo", price=2.0, is_active=False),
                CrossSellRule(restaurant_id=restaurant.id, trigger_category_id=lanches.id,
                              suggest_category_id=bebidas.id, step_label="Algo para beber?"),
            ])

    return session_maker
