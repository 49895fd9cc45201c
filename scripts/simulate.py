"""
Checkout Simulation Script

Drives many storefront sessions at once through the public API:
open a session, customize products, walk the checkout wizard, submit.
Run from project root: python scripts/simulate.py --orders 30
"""

import argparse
import asyncio
import random
import time
from datetime import datetime
from typing import Any

import httpx

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 30

FIRST_NAMES = ["Ana", "Bruno", "Carla", "Diego", "Elisa", "Felipe", "Gabi", "Hugo", "Iara", "João"]
STREETS = ["Rua das Flores", "Av. Paulista", "Rua Augusta", "Rua Oscar Freire", "Av. Rebouças"]
NEIGHBORHOODS = ["Centro", "Bela Vista", "Jardins", "Pinheiros", "Moema"]


def generate_random_customer() -> dict[str, str]:
    """Generate random customer info."""
    return {
        "customer_name": random.choice(FIRST_NAMES),
        "customer_phone": f"(11) 9{random.randint(1000, 9999)}-{random.randint(1000, 9999)}",
    }


def generate_checkout_form() -> dict[str, Any]:
    order_type = random.choice(["delivery", "pickup", "local"])
    form: dict[str, Any] = {"order_type": order_type}
    if order_type == "delivery":
        form["address"] = {
            "street": random.choice(STREETS),
            "number": str(random.randint(1, 2000)),
            "neighborhood": random.choice(NEIGHBORHOODS),
            "city": "São Paulo",
            "cep": f"0{random.randint(1000, 9999)}-000",
        }
    elif order_type == "local":
        form["table"] = str(random.randint(1, 20))
    return form


# =============================================================================
# ONE CUSTOMER
# =============================================================================

async def fill_cart(client: httpx.AsyncClient, sid: str, products: list[dict]) -> None:
    for product in random.sample(products, k=min(len(products), random.randint(1, 3))):
        opened = await client.post(
            f"{API_BASE_URL}/api/sessions/{sid}/selection",
            json={"product_id": product["id"]},
        )
        opened.raise_for_status()
        selection = opened.json()

        if selection["removables"] and random.random() < 0.5:
            await client.post(
                f"{API_BASE_URL}/api/sessions/{sid}/selection/removed",
                json={"name": random.choice(selection["removables"])},
            )
        for extra in selection["extras"]:
            if random.random() < 0.4:
                await client.post(
                    f"{API_BASE_URL}/api/sessions/{sid}/selection/extras",
                    json={"extra_id": extra["id"], "delta": random.randint(1, 2)},
                )
        added = await client.post(f"{API_BASE_URL}/api/sessions/{sid}/selection/add")
        added.raise_for_status()


async def run_customer(client: httpx.AsyncClient, num: int, products: list[dict]) -> dict[str, Any]:
    """One full storefront visit ending in a submitted checkout."""
    start_time = time.time()
    try:
        session = await client.post(f"{API_BASE_URL}/api/sessions", json={})
        session.raise_for_status()
        sid = session.json()["session_id"]

        await fill_cart(client, sid, products)

        base = f"{API_BASE_URL}/api/sessions/{sid}/checkout"
        (await client.post(base)).raise_for_status()
        await client.patch(base, json=generate_checkout_form())
        await client.post(f"{base}/next")

        payment = random.choice(["pix", "card", "cash"])
        form: dict[str, Any] = {"payment_method": payment}
        if payment == "cash":
            form["change_for"] = random.choice(["", "50", "100,00"])
        await client.patch(base, json=form)
        await client.post(f"{base}/next")

        await client.patch(base, json=generate_random_customer())
        response = await client.post(f"{base}/submit", timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 200:
            data = response.json()
            return {
                "num": num,
                "success": True,
                "order_id": data.get("order_id"),
                "total": data.get("total", 0),
                "time": elapsed,
            }
        return {
            "num": num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "num": num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 CHECKOUT SIMULATION - CONCURRENT SESSIONS")
    print("=" * 70)
    print(f"📋 Customers: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    async with httpx.AsyncClient(timeout=30.0) as client:
        menu = await client.get(f"{API_BASE_URL}/api/menu")
        menu.raise_for_status()
        products = [p for s in menu.json()["sections"] for p in s["products"]]
        if not products:
            print("❌ Menu is empty. Run: python scripts/seed.py")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        tasks = [run_customer(client, i + 1, products) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    order_ids = [r["order_id"] for r in successful if r.get("order_id") is not None]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful checkouts: {len(successful)}/{num_orders}")
    print(f"❌ Failed checkouts: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if len(set(order_ids)) != len(order_ids):
        print("⚠️  Duplicate order ids returned!")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r["total"] for r in successful)
        print(f"\n📈 Average visit: {avg_time}s")
        print(f"   💰 Total: R$ {revenue:.2f}".replace(".", ","))

    if failed:
        print("\n⚠️  Failed checkouts (first 5):")
        for f in failed[:5]:
            print(f"   #{f['num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 NEXT: python scripts/verify.py  (after the Celery worker drains)")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


def main() -> None:
    global API_BASE_URL
    parser = argparse.ArgumentParser(description="Concurrent checkout simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS)
    parser.add_argument("--url", default=API_BASE_URL)
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    asyncio.run(run_simulation(args.orders))


if __name__ == "__main__":
    main()
