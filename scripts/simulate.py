"""
Chaos Simulation Script

Fires concurrent orders and status updates at a running server to check
that no write is lost under load.
Run from project root: python scripts/simulate.py
"""

import asyncio
import sys
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:3000"
TOTAL_ORDERS = 50

# Sample data for random orders
FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Wilson", "Taylor"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave", "Lexington Ave", "Amsterdam Ave"]
MENU_ITEMS = [
    {"name": "Chicken Biryani", "price": 250},
    {"name": "Beef Burger", "price": 180},
    {"name": "Margherita Pizza", "price": 400},
    {"name": "Fries", "price": 90},
    {"name": "Club Sandwich", "price": 220},
    {"name": "Brownie", "price": 120},
    {"name": "Cola", "price": 60},
]
STATUS_PATH = ["preparing", "delivered"]


def generate_random_customer() -> dict[str, str]:
    """Generate random customer info."""
    first = random.choice(FIRST_NAMES)
    last = random.choice(LAST_NAMES)
    return {
        "name": f"{first} {last}",
        "phone": f"0300-{random.randint(1000000, 9999999)}",
        "address": f"{random.randint(1, 999)} {random.choice(STREETS)}",
    }


def generate_random_items() -> list[dict]:
    """Generate random order items."""
    items = []
    for _ in range(random.randint(1, 4)):
        item = random.choice(MENU_ITEMS).copy()
        item["qty"] = random.randint(1, 3)
        items.append(item)
    return items


def generate_order_payload() -> dict[str, Any]:
    """Generate payload for /api/orders endpoint."""
    return {
        "customer": generate_random_customer(),
        "items": generate_random_items(),
        "specialInstructions": random.choice([
            None, "Extra napkins", "Ring doorbell", "Leave at door", "Call on arrival"
        ]),
    }


async def send_order(client: httpx.AsyncClient, order_num: int) -> dict[str, Any]:
    """Place one order."""
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=generate_order_payload(),
            timeout=30.0
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data.get("orderId"),
                "total": data["order"]["total"],
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


async def advance_order(client: httpx.AsyncClient, order_id: str) -> bool:
    """Walk an order through preparing -> delivered."""
    for new_status in STATUS_PATH:
        response = await client.put(
            f"{API_BASE_URL}/api/orders/{order_id}/status",
            json={"status": new_status},
            timeout=30.0,
        )
        if response.status_code != 200:
            print(f"   ⚠️ {order_id} -> {new_status}: {response.text[:100]}")
            return False
    return True


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, advance: bool = True) -> dict[str, Any]:
    """
    Run the chaos simulation.

    Args:
        num_orders: Number of orders to place concurrently
        advance: Also move every placed order to delivered, concurrently
    """
    print("=" * 70)
    print("🔥 CHAOS SIMULATION - HIGH CONCURRENCY TEST")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        before = (await client.get(f"{API_BASE_URL}/api/stats")).json()

        print("\n🚀 Firing orders...\n")
        results = await asyncio.gather(*(send_order(client, i + 1) for i in range(num_orders)))

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        advanced = 0
        if advance and successful:
            print("🚚 Advancing orders to delivered...\n")
            outcomes = await asyncio.gather(*(advance_order(client, r["order_id"]) for r in successful))
            advanced = sum(outcomes)

        after = (await client.get(f"{API_BASE_URL}/api/stats")).json()

    total_time = round(time.time() - start_time, 2)
    order_ids = [r["order_id"] for r in successful]
    unique_ids = len(set(order_ids))
    stored = after["totalOrders"] - before["totalOrders"]

    # Print results
    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"🆔 Distinct Order IDs: {unique_ids}")
    print(f"💾 Orders Stored: {stored}")
    if advance:
        print(f"🚚 Delivered: {advanced}/{len(successful)}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r.get("total", 0) for r in successful)
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Revenue: {total_revenue:.2f}")

    if failed:
        print(f"\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    lost = unique_ids != len(successful) or stored != len(successful)
    print("\n" + "=" * 70)
    print("❌ LOST OR DUPLICATED WRITES DETECTED" if lost else "✅ NO LOST WRITES")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "stored": stored,
        "total_time": total_time,
        "lost_writes": lost,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Chaos Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--no-advance", action="store_true", help="Only place orders")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args.orders, advance=not args.no_advance))
    sys.exit(1 if summary["lost_writes"] else 0)
