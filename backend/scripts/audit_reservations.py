"""
Compare each item's reserved_stock with the quantities held by pending orders.

Prints every item where the two disagree (for example after a failed
compensation that asked to "check inventory manually"). Read only.

Run inside docker (recommended):
  docker exec -i dispensary-api sh -lc "cd /app && PYTHONPATH=/app uv run python scripts/audit_reservations.py"
"""

from __future__ import annotations

import asyncio

from sqlalchemy import select

from core.reports import reservation_drift
from db.database import async_session_maker
from db.order import Order
from db.inventory.item import InventoryItem


async def main() -> None:
    async with async_session_maker() as db:
        items = (await db.execute(select(InventoryItem))).scalars().all()
        pending = (await db.execute(select(Order).where(Order.status == "pending"))).scalars().all()

    drift = reservation_drift([it.to_schema for it in items], [o.to_schema for o in pending])
    if not drift:
        print(f"OK: {len(items)} items, {len(pending)} pending orders, no reservation drift")
        return

    for row in drift:
        print(
            f"{row['name']} ({row['item_id']}): reserved {row['reserved_stock']}, "
            f"pending orders hold {row['pending_quantity']} (drift {row['drift']:+d})"
        )
    print(f"{len(drift)} item(s) with reservation drift")


if __name__ == "__main__":
    asyncio.run(main())
