"""
Delete ALL orders from the database.

Pending orders hold reserved stock, so their reservations are released back
to available stock first. A pending order whose release fails is kept and
reported.

Run inside docker (recommended):
  docker exec -i dispensary-api sh -lc "cd /app && PYTHONPATH=/app uv run python scripts/reset_orders.py"
"""

from __future__ import annotations

import asyncio

from sqlalchemy import delete, select

from core.checkout import release_pending_orders
from db.database import async_session_maker
from db.order import Order
from db.inventory.store import SqlInventoryStore


async def main() -> None:
    async with async_session_maker() as db:
        store = SqlInventoryStore(db)

        res = await db.execute(select(Order.id, Order.items_json).where(Order.status == "pending"))
        kept, warnings = await release_pending_orders(store, res.all())
        for w in warnings:
            print(w)

        stmt = delete(Order)
        if kept:
            stmt = stmt.where(Order.id.notin_(kept))
        res_orders = await db.execute(stmt)
        await db.commit()

        orders_n = int(getattr(res_orders, "rowcount", 0) or 0)
        print(f"Deleted orders: {orders_n}, kept: {len(kept)}")


if __name__ == "__main__":
    asyncio.run(main())
