"""
Order Flow Simulation Script

Registers an establishment, activates its subscription through the mock
payment webhook, builds a small menu and fires concurrent customer orders
at the API. Requires the server in development mode (mock payments).

Run from project root: python scripts/simulate.py --orders 30
"""

import argparse
import asyncio
import random
import sys
import time
import uuid
from decimal import Decimal
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8080"
TOTAL_ORDERS = 30

# Sample data for random orders
FIRST_NAMES = ["Ana", "Bruno", "Carla", "Diego", "Elisa", "Fabio", "Gabriela", "Hugo", "Isabel", "Joao"]
LAST_NAMES = ["Silva", "Souza", "Oliveira", "Santos", "Lima", "Pereira", "Costa", "Almeida"]
STREETS = ["Rua das Flores", "Av. Paulista", "Rua Augusta", "Rua Oscar Freire", "Av. Brasil"]

MENU = {
    "Burgers": [
        {
            "name": "Classic Burger",
            "base_price": "20.00",
            "option_groups": [
                {
                    "name": "Size",
                    "kind": "single_select",
                    "items": [
                        {"label": "Regular", "extra_price": "0.00"},
                        {"label": "Large", "extra_price": "5.00"},
                    ],
                },
                {
                    "name": "Addons",
                    "kind": "multi_select",
                    "min_selections": 0,
                    "max_selections": 3,
                    "items": [
                        {"label": "Cheese", "extra_price": "3.00"},
                        {"label": "Bacon", "extra_price": "4.50"},
                    ],
                },
            ],
        },
        {"name": "Veggie Burger", "base_price": "24.90"},
    ],
    "Drinks": [
        {
            "name": "Soda",
            "base_price": "6.00",
            "option_groups": [
                {"name": "Ice", "kind": "quantity", "items": []},
            ],
        },
        {"name": "Orange Juice", "base_price": "9.50"},
    ],
}


# =============================================================================
# SETUP
# =============================================================================

async def setup_establishment(client: httpx.AsyncClient) -> tuple[int, list[dict]]:
    """Register, subscribe and publish a menu. Returns (id, products)."""
    response = await client.post(
        f"{API_BASE_URL}/api/establishments",
        json={
            "email": f"owner+{uuid.uuid4().hex[:8]}@burgerhouse.com",
            "name": "Burger House",
            "whatsapp_phone": "+55 11 91234-5678",
            "address": "Rua Augusta, 1500",
            "opening_hours": "Tue-Sun 18h-23h",
        },
    )
    response.raise_for_status()
    establishment_id = response.json()["id"]
    print(f"   ✅ Establishment #{establishment_id} registered")

    response = await client.post(
        f"{API_BASE_URL}/api/billing/checkout",
        json={"plan_id": "monthly", "establishment_id": establishment_id},
    )
    response.raise_for_status()
    print(f"   ✅ Checkout link: {response.json()['checkout_url']}")

    # Mock provider: the webhook body is taken at face value
    response = await client.post(
        f"{API_BASE_URL}/api/billing/webhook",
        json={"establishment_id": establishment_id, "status": "approved", "plan_id": "monthly"},
    )
    response.raise_for_status()
    print(f"   ✅ Subscription active: {response.json()['subscription_active']}")

    products = []
    base = f"{API_BASE_URL}/api/establishments/{establishment_id}"
    for sort_order, (category_name, items) in enumerate(MENU.items()):
        response = await client.post(
            f"{base}/categories",
            json={"name": category_name, "sort_order": sort_order},
        )
        response.raise_for_status()
        category_id = response.json()["id"]

        for item in items:
            response = await client.post(
                f"{base}/products",
                json={**item, "category_id": category_id},
            )
            response.raise_for_status()
            products.append(response.json())

    print(f"   ✅ Menu published: {len(products)} products in {len(MENU)} categories")
    return establishment_id, products


# =============================================================================
# ORDERS
# =============================================================================

def random_selections(product: dict) -> list[dict]:
    selections = []
    for group in product["option_groups"]:
        if group["kind"] == "quantity":
            selections.append({"group_name": group["name"], "value": random.choice(["no ice", "extra ice"])})
        elif group["items"]:
            selections.append({"group_name": group["name"], "value": random.choice(group["items"])["label"]})
    return selections


def generate_order_payload(establishment_id: int, products: list[dict]) -> dict[str, Any]:
    items = []
    for product in random.sample(products, k=random.randint(1, min(3, len(products)))):
        items.append({
            "product_id": product["id"],
            "quantity": random.randint(1, 3),
            "selected_options": random_selections(product),
        })

    return {
        "establishment_id": establishment_id,
        "customer_name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "customer_phone": f"11 9{random.randint(1000, 9999)}-{random.randint(1000, 9999)}",
        "customer_address": f"{random.choice(STREETS)}, {random.randint(1, 999)}",
        "notes": random.choice([None, "No onions", "Ring the bell", "Card on delivery"]),
        "items": items,
    }


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    establishment_id: int,
    products: list[dict],
) -> dict[str, Any]:
    payload = generate_order_payload(establishment_id, products)
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data["order"]["id"],
                "total": Decimal(data["order"]["total"]),
                "whatsapp_url": data["whatsapp_url"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("\n" + "=" * 70)
    print("🍔 DIGITAL MENU ORDER SIMULATION")
    print("=" * 70)

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(f"{API_BASE_URL}/health")
        print(f"\n🩺 Health: {response.json().get('status')}")

        print("\n🏗️  Setting up establishment...")
        establishment_id, products = await setup_establishment(client)

        print(f"\n🚀 Sending {num_orders} concurrent orders...")
        start = time.time()
        results = await asyncio.gather(*[
            send_order(client, i + 1, establishment_id, products)
            for i in range(num_orders)
        ])
        total_time = round(time.time() - start, 2)

        response = await client.get(f"{API_BASE_URL}/api/establishments/{establishment_id}/orders")
        stored = len(response.json()) if response.status_code == 200 else "?"

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 RESULTS")
    print("=" * 70)
    print(f"✅ Successful: {len(successful)}/{num_orders}")
    print(f"❌ Failed: {len(failed)}")
    print(f"🗄️  Orders stored: {stored}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r["total"] for r in successful)
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total: R$ {revenue:.2f}")
        print(f"\n📱 Sample WhatsApp link:\n   {successful[0]['whatsapp_url'][:120]}...")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order Flow Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.base_url.rstrip("/")
    summary = asyncio.run(run_simulation(args.orders))
    sys.exit(0 if summary["failed"] == 0 else 1)
