"""
Kitchen Rush Simulation Script

Places a burst of orders, then walks every order through the kitchen
workflow with concurrent admin status changes. Open the order tracking
page (or any WebSocket client subscribed to an order) while it runs to
watch the live updates arrive.

Run from project root against a running server:
    ADMIN_API_TOKEN=... python scripts/simulate.py --orders 20

Author: Khalil_Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:5000")
ADMIN_TOKEN = os.getenv("ADMIN_API_TOKEN", "")
TOTAL_ORDERS = 20

STATUS_PATH = ["confirmed", "preparing", "ready", "delivered"]

# Sample data for random orders
FIRST_NAMES = ["Maria", "Jose", "Ana", "Luis", "Sofia", "Carlos", "Elena", "Diego", "Lucia", "Pablo"]
LAST_NAMES = ["Lopez", "Garcia", "Martinez", "Hernandez", "Gonzalez", "Perez", "Sanchez", "Ramirez"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave", "Lexington Ave"]
VALID_ZIPS = ["10001", "10002", "10003", "10004", "10005"]
MENU_ITEMS = [
    {"id": 1, "name": "Carne Asada Burrito", "price": 11.50},
    {"id": 2, "name": "Chicken Tinga Tacos", "price": 9.75},
    {"id": 3, "name": "Carnitas Bowl", "price": 12.25},
    {"id": 4, "name": "Chips & Guacamole", "price": 6.50},
    {"id": 5, "name": "Churros", "price": 5.25},
    {"id": 6, "name": "Horchata", "price": 3.50},
]
TAX_RATE = 0.08875


def admin_headers() -> dict[str, str]:
    return {"X-Admin-Token": ADMIN_TOKEN} if ADMIN_TOKEN else {}


def generate_order_payload() -> dict[str, Any]:
    """Random cart with consistent totals."""
    items = []
    for menu_item in random.sample(MENU_ITEMS, random.randint(1, 4)):
        items.append({**menu_item, "quantity": random.randint(1, 3)})

    subtotal = round(sum(i["price"] * i["quantity"] for i in items), 2)
    tax = round(subtotal * TAX_RATE, 2)

    return {
        "customerName": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "customerPhone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
        "deliveryAddress": f"{random.randint(1, 999)} {random.choice(STREETS)}",
        "city": "New York",
        "zipCode": random.choice(VALID_ZIPS),
        "deliveryInstructions": random.choice([None, "Extra salsa", "No cilantro", "Call on arrival"]),
        "items": items,
        "subtotal": subtotal,
        "deliveryFee": 0.0,
        "tax": tax,
        "total": round(subtotal + tax, 2),
    }


# =============================================================================
# ORDER FLOW
# =============================================================================

async def place_order(client: httpx.AsyncClient) -> Optional[int]:
    response = await client.post(f"{API_BASE_URL}/api/orders", json=generate_order_payload())
    if response.status_code != 201:
        print(f"   ❌ Order rejected: {response.text[:100]}")
        return None
    return response.json()["id"]


async def walk_order(client: httpx.AsyncClient, order_id: int) -> dict[str, Any]:
    """Push one order through the kitchen workflow with random pauses."""
    start_time = time.time()
    path = STATUS_PATH[:]
    if random.random() < 0.1:
        path = path[:random.randint(0, 2)] + ["cancelled"]

    for status in path:
        await asyncio.sleep(random.uniform(0.05, 0.5))
        response = await client.patch(
            f"{API_BASE_URL}/api/orders/{order_id}/status",
            json={"status": status},
            headers=admin_headers(),
        )
        if response.status_code != 200:
            return {
                "order_id": order_id,
                "success": False,
                "error": f"{status}: {response.status_code} {response.text[:80]}",
                "time": round(time.time() - start_time, 3),
            }

    return {
        "order_id": order_id,
        "success": True,
        "final_status": path[-1],
        "time": round(time.time() - start_time, 3),
    }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def preflight(client: httpx.AsyncClient) -> bool:
    """Make sure the server is up and the admin token works."""
    print("\n1️⃣ Health Check...")
    response = await client.get(f"{API_BASE_URL}/health")
    if response.status_code != 200:
        print(f"   ❌ Failed: {response.text}")
        return False
    data = response.json()
    print(f"   ✅ Status: {data.get('status')}")
    print(f"   Order store: {data.get('order_store')}")
    print(f"   Live connections: {data['realtime']['subscribed_connections']}")

    print("\n2️⃣ Admin Access...")
    response = await client.get(f"{API_BASE_URL}/api/admin/orders", headers=admin_headers())
    if response.status_code != 200:
        print(f"   ❌ Admin API returned {response.status_code}; set ADMIN_API_TOKEN")
        return False
    print(f"   ✅ {response.json()['total']} existing orders")
    return True


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("🌮 KITCHEN RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient(timeout=30.0) as client:
        if not await preflight(client):
            print("\n❌ Pre-flight checks failed. Fix issues before running simulation.")
            sys.exit(1)

        print("\n🚀 Placing orders...\n")
        order_ids = [
            order_id
            for order_id in await asyncio.gather(*(place_order(client) for _ in range(num_orders)))
            if order_id is not None
        ]
        print(f"   ✅ Placed {len(order_ids)} orders: {order_ids}")

        print("\n👩‍🍳 Working the kitchen...\n")
        results = await asyncio.gather(*(walk_order(client, oid) for oid in order_ids))

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Completed Orders: {len(successful)}/{len(order_ids)}")
    print(f"❌ Failed Orders: {len(failed)}/{len(order_ids)}")
    print(f"⏱️  Total Time: {total_time}s")

    cancelled = [r for r in successful if r["final_status"] == "cancelled"]
    if cancelled:
        print(f"🚫 Cancelled along the way: {len(cancelled)}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_id']}: {f['error']}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Server log shows one broadcast per status change")
    print("2. SMS log (mock) or Twilio console shows confirmed/preparing/ready texts")
    print("3. A tracking page left open on any order showed each step live")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Kitchen Rush Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    args = parser.parse_args()

    asyncio.run(run_simulation(args.orders))
