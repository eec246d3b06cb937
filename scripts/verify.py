"""
Data File Verification Script

Verifies the integrity of the JSON order file written by the file
storage backend.
Run from project root: python scripts/verify.py [data_dir]
"""

import json
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path

VALID_STATUSES = {"received", "preparing", "delivered", "cancelled"}


def verify_orders(data_dir: str = "data") -> bool:
    """Verify orders.json: unique ids, known statuses, totals add up."""
    orders_file = Path(data_dir) / "orders.json"

    print("=" * 60)
    print("🔍 ORDER FILE VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {orders_file}")
    print("=" * 60)

    if not orders_file.exists():
        print("\n❌ Order file not found!")
        print("   Start the server with STORAGE_BACKEND=file and place some orders.")
        return False

    try:
        orders = json.loads(orders_file.read_text(encoding="utf-8"))
        print(f"\n✅ File loaded successfully!")
    except (OSError, json.JSONDecodeError) as e:
        print(f"\n❌ Could not read order file: {e}")
        return False

    ok = True

    print(f"\n📊 STATISTICS:")
    print(f"   Total Orders: {len(orders)}")
    by_status = Counter(o.get("status") for o in orders)
    for status, count in sorted(by_status.items(), key=lambda kv: str(kv[0])):
        print(f"   {status}: {count}")

    duplicates = [oid for oid, n in Counter(o.get("id") for o in orders).items() if n > 1]
    if duplicates:
        ok = False
        print(f"\n⚠️ {len(duplicates)} duplicate order IDs found: {duplicates[:5]}")
    else:
        print(f"\n✅ No duplicate order IDs")

    unknown = [o.get("id") for o in orders if o.get("status") not in VALID_STATUSES]
    if unknown:
        ok = False
        print(f"⚠️ {len(unknown)} orders with unknown status: {unknown[:5]}")
    else:
        print(f"✅ All statuses valid")

    bad_totals = [
        o.get("id") for o in orders
        if round(o.get("subtotal", 0) + o.get("delivery_fee", 0), 2) != round(o.get("total", 0), 2)
    ]
    if bad_totals:
        ok = False
        print(f"⚠️ {len(bad_totals)} orders where total != subtotal + delivery fee: {bad_totals[:5]}")
    else:
        print(f"✅ All totals consistent")

    revenue = sum(o.get("total", 0) for o in orders if o.get("status") != "cancelled")
    print(f"\n💰 REVENUE (excluding cancelled): {revenue:.2f}")

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "❌ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_orders(*sys.argv[1:2]) else 1)
