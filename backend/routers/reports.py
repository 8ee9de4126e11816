from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional

from core.auth import current_active_superuser
from core.config import settings
from core.reports import build_sales_report
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from db.member import Member as MemberModel
from db.order import Order as OrderModel
from db.transaction import Transaction as TransactionModel
from db.users import User
from routers.transactions import date_window

router = APIRouter()


@router.get("/sales", response_model=Dict[str, Any])
async def sales_report(
    start: Optional[date] = None,
    end: Optional[date] = None,
    top_n: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    """
    Sales report for transactions and orders dated within [start, end].

    Low stock and member tiers are computed over the current inventory and
    member list, not the date range.
    """
    if start and end and start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must not be after end")

    lo, hi = date_window(start, end)
    tx_stmt = select(TransactionModel)
    order_stmt = select(OrderModel)
    if lo is not None:
        tx_stmt = tx_stmt.where(TransactionModel.transaction_date >= lo)
        order_stmt = order_stmt.where(OrderModel.order_date >= lo)
    if hi is not None:
        tx_stmt = tx_stmt.where(TransactionModel.transaction_date < hi)
        order_stmt = order_stmt.where(OrderModel.order_date < hi)

    transactions = [t.to_schema for t in (await db.execute(tx_stmt)).scalars().all()]
    orders = [o.to_schema for o in (await db.execute(order_stmt)).scalars().all()]
    inventory = [it.to_schema for it in (await db.execute(select(InventoryItemModel))).scalars().all()]
    members = [m.to_schema for m in (await db.execute(select(MemberModel))).scalars().all()]

    report = build_sales_report(
        transactions,
        inventory,
        members,
        orders,
        low_stock_threshold=settings.low_stock_threshold,
        top_n=top_n,
    )
    report["range"] = {
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
    }
    return report
