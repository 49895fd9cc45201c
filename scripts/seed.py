"""
Demo Seed Script

Loads the demo burger-shop menu and its ingredient stock into the
configured database so the storefront, the order board and the stock
page have something to show.
Run from project root: python scripts/seed.py [--reset]
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from cardapio.core.config import setup_logging
from cardapio.database import Base, async_session_maker, engine, init_db
from cardapio.models import (
    Category,
    CrossSellRule,
    Extra,
    Ingredient,
    Product,
    Recipe,
    Restaurant,
)
from cardapio.services.catalog.mock import MockCatalogService
from cardapio.services.inventory.memory import InMemoryInventoryRepository


async def seed(reset: bool = False) -> None:
    """Insert the demo catalog unless a restaurant already exists."""
    if reset:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        print("🗑️  Tables dropped")

    await init_db()
    demo = MockCatalogService.demo()
    stock = InMemoryInventoryRepository.demo()

    async with async_session_maker() as session:
        existing = await session.execute(select(Restaurant.id).limit(1))
        if existing.scalar_one_or_none() is not None:
            print("ℹ️  Database already has a restaurant, nothing to do (use --reset)")
            return

    async with async_session_maker() as session:
        async with session.begin():
            restaurant_ids = {}
            for r in demo.restaurants:
                row = Restaurant(
                    name=r.name,
                    phone=r.phone,
                    primary_color=r.primary_color,
                    open_time=r.open_time,
                    close_time=r.close_time,
                    is_open=r.is_open,
                )
                alerts = stock.alert_settings.get(r.id)
                if alerts is not None:
                    row.low_stock_threshold = alerts.low_stock_threshold
                    row.expiry_alert_days = alerts.expiry_alert_days
                session.add(row)
                await session.flush()
                restaurant_ids[r.id] = row.id
                print(f"   ✅ Restaurante: {r.name} (ID: {row.id})")

            category_ids = {}
            for rid, categories in demo.categories.items():
                for c in categories:
                    row = Category(
                        restaurant_id=restaurant_ids[rid],
                        name=c.name,
                        display_order=c.display_order,
                    )
                    session.add(row)
                    await session.flush()
                    category_ids[c.id] = row.id

            product_ids = {}
            for p in demo.products:
                row = Product(
                    restaurant_id=restaurant_ids[p.restaurant_id],
                    category_id=category_ids.get(p.category_id),
                    name=p.name,
                    description=p.description,
                    sell_price=p.sell_price,
                    promo_price=p.promo_price,
                    is_featured=p.is_featured,
                )
                session.add(row)
                await session.flush()
                product_ids[p.id] = row.id
                print(f"   🍔 Produto: {p.name}")

            ingredient_ids = {}
            for i in stock.ingredients:
                row = Ingredient(
                    restaurant_id=restaurant_ids[i.restaurant_id],
                    name=i.name,
                    category=i.category,
                    unit=i.unit,
                    current_stock=i.current_stock,
                    min_stock=i.min_stock,
                    cost_price=i.cost_price,
                    expiration_date=i.expiration_date,
                )
                session.add(row)
                await session.flush()
                ingredient_ids[i.id] = row.id
                print(f"   📦 Estoque: {i.name} ({i.current_stock:g} {i.unit})")

            by_name = {i.name: ingredient_ids[i.id] for i in stock.ingredients}
            for pid, names in demo.removables.items():
                for name in names:
                    session.add(Recipe(
                        product_id=product_ids[pid],
                        ingredient_id=by_name[name],
                        can_remove=True,
                    ))

            for pid, extras in demo.extras.items():
                for e in extras:
                    session.add(Extra(
                        product_id=product_ids[pid],
                        ingredient_id=ingredient_ids.get(e.ingredient_id),
                        name=e.name,
                        price=e.price,
                        quantity_used=e.quantity_used,
                    ))

            for rule in demo.cross_sell_rules:
                session.add(CrossSellRule(
                    restaurant_id=next(iter(restaurant_ids.values())),
                    trigger_category_id=category_ids.get(rule.trigger_category_id),
                    suggest_category_id=category_ids[rule.suggest_category_id],
                    step_label=rule.step_label,
                    display_order=rule.display_order,
                ))

    print("✅ Demo menu loaded")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the demo menu")
    parser.add_argument("--reset", action="store_true", help="Drop all tables first")
    args = parser.parse_args()

    setup_logging()
    print("🚀 Seeding demo data...")
    asyncio.run(seed(reset=args.reset))
    asyncio.run(engine.dispose())


if __name__ == "__main__":
    main()
