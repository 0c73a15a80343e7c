"""
Service Rush Simulation Script

Simulates a busy evening against a running API: creates serving groups,
marks them arrived and fires concurrent serve taps from several "waiters".
Afterwards it compares the served counters with the number of taps that
returned 200, which exposes writes lost between floor clients.
Run from project root: python scripts/simulate.py
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_GROUPS = 10
WAITERS = 4

GROUP_NAMES = ["Đoàn Sông Hàn", "Đoàn Minh Long", "Đoàn Kỳ Hòa", "Đoàn Seoul", "Đoàn Lyon"]
GUEST_TYPES = ["pax Việt", "pax Hàn", "pax Âu"]
LOCATIONS = ["Tầng 1", "Tầng 2", "Sân vườn", "Phòng VIP"]
LAYOUTS = ["2x10, 1x6", "3 bàn 6", "4x4", "1x8 + 2x6", "5x10"]
MENU_ITEMS = [
    {"name": "Lẩu riêu cua", "total_quantity": 1, "unit": "Nồi"},
    {"name": "Súp gà ngô", "total_quantity": 1, "unit": "Bát"},
    {"name": "Cơm trắng", "total_quantity": 2, "unit": "Đĩa"},
    {"name": "Nem rán", "total_quantity": 3, "unit": "Đĩa"},
    {"name": "Gà nướng mật ong", "total_quantity": 2, "unit": "Con"},
    {"name": "Khoai tây chiên", "total_quantity": 2, "unit": "Đĩa"},
    {"name": "Cá nướng", "total_quantity": 2, "unit": "Con"},
]


def generate_group_payload() -> dict[str, Any]:
    """Generate a random manual-entry group."""
    return {
        "name": f"{random.choice(GROUP_NAMES)} {random.choice(GUEST_TYPES)}",
        "location": random.choice(LOCATIONS),
        "table_split": random.choice(LAYOUTS),
        "items": random.sample(MENU_ITEMS, k=random.randint(2, 5)),
        "apply_distribution": True,
    }


# =============================================================================
# FLOOR ACTIONS
# =============================================================================

async def create_group(client: httpx.AsyncClient) -> dict[str, Any] | None:
    response = await client.post(f"{API_BASE_URL}/api/groups", json=generate_group_payload())
    if response.status_code != 201:
        print(f"   ❌ Create failed: {response.text[:100]}")
        return None
    return response.json()


async def waiter(
    client: httpx.AsyncClient,
    waiter_num: int,
    groups: list[dict[str, Any]],
    taps: int,
) -> dict[str, Any]:
    """Tap random items as served; returns accepted taps per item."""
    accepted: dict[str, int] = {}
    errors = 0
    timings = []

    for _ in range(taps):
        group = random.choice(groups)
        item = random.choice(group["items"])
        start_time = time.time()
        try:
            response = await client.post(
                f"{API_BASE_URL}/api/groups/{group['id']}/items/{item['id']}/increment",
                timeout=30.0,
            )
        except httpx.HTTPError as e:
            errors += 1
            print(f"   ⚠️ Waiter {waiter_num}: {str(e)[:80]}")
            continue
        timings.append(time.time() - start_time)

        if response.status_code == 200:
            accepted[item["id"]] = accepted.get(item["id"], 0) + 1
        else:
            errors += 1

    return {"waiter": waiter_num, "accepted": accepted, "errors": errors, "timings": timings}


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_groups: int = TOTAL_GROUPS, waiters: int = WAITERS, taps: int = 25) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 SERVICE RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Groups: {num_groups}  Waiters: {waiters}  Taps each: {taps}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        print("\n🍽️ Seating groups...")
        created = await asyncio.gather(*[create_group(client) for _ in range(num_groups)])
        groups = [g for g in created if g and g["items"]]
        for group in groups:
            await client.post(f"{API_BASE_URL}/api/groups/{group['id']}/arrive")
        print(f"   ✅ {len(groups)} groups arrived")

        if not groups:
            print("\n❌ No groups to serve.")
            return {"groups": 0}

        print("\n🚀 Waiters serving...\n")
        results = await asyncio.gather(*[waiter(client, i + 1, groups, taps) for i in range(waiters)])

        # Let the floor settle before reading counters back.
        await asyncio.sleep(1.0)
        await client.post(f"{API_BASE_URL}/api/realtime/reload")
        response = await client.get(f"{API_BASE_URL}/api/groups")
        final = {g["id"]: g for g in response.json()}

        alerts = (await client.get(f"{API_BASE_URL}/api/alerts")).json()

    total_time = round(time.time() - start_time, 2)

    accepted: dict[str, int] = {}
    for result in results:
        for item_id, count in result["accepted"].items():
            accepted[item_id] = accepted.get(item_id, 0) + count

    lost = 0
    for group in groups:
        served = {i["id"]: i["served_quantity"] for i in final.get(group["id"], {}).get("items", [])}
        for item in group["items"]:
            lost += max(0, accepted.get(item["id"], 0) - served.get(item["id"], 0))

    timings = [t for r in results for t in r["timings"]]
    errors = sum(r["errors"] for r in results)

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Accepted taps: {sum(accepted.values())}")
    print(f"❌ Failed taps: {errors}")
    print(f"👻 Lost increments: {lost}")
    print(f"🚨 Active alerts: {len(alerts['alerts'])}")
    print(f"⏱️  Total Time: {total_time}s")

    if timings:
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {sum(timings) / len(timings):.3f}s")
        print(f"   Fastest: {min(timings):.3f}s")
        print(f"   Slowest: {max(timings):.3f}s")

    print("=" * 70)

    return {
        "groups": len(groups),
        "accepted": sum(accepted.values()),
        "errors": errors,
        "lost": lost,
        "total_time": total_time,
    }


async def preflight() -> bool:
    """Check the API is up and parses a layout before the rush."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"   ❌ API unreachable: {e}")
            return False
        data = response.json()
        print(f"\n1️⃣ Health: {data.get('status')} (store={data.get('store')}, feed={data.get('feed')})")

        response = await client.get(f"{API_BASE_URL}/api/layout/preview", params={"text": "2x10, 1x6"})
        data = response.json()
        print(f"2️⃣ Layout 2x10, 1x6: {data.get('total_tables')} tables, {data.get('total_guests')} guests")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Service Rush Simulation")
    parser.add_argument("--groups", type=int, default=TOTAL_GROUPS, help="Number of groups")
    parser.add_argument("--waiters", type=int, default=WAITERS, help="Concurrent waiters")
    parser.add_argument("--taps", type=int, default=25, help="Serve taps per waiter")
    args = parser.parse_args()

    if not asyncio.run(preflight()):
        print("\n❌ Pre-flight failed. Start the API first: uvicorn tableside.main:app --port 8001")
        sys.exit(1)

    asyncio.run(run_simulation(args.groups, args.waiters, args.taps))
