import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select
from typing import List, Optional
from uuid import UUID

from core.auth import current_active_superuser, current_active_user
from core.checkout import (
    CheckoutError,
    cancel_order,
    compute_totals,
    delete_order,
    place_order,
    price_lines,
    release_pending_orders,
    stock_lines,
)
from core.stock import StockError
from db.database import get_async_session
from db.member import Member as MemberModel
from db.order import Order as OrderModel
from db.inventory.store import SqlInventoryStore
from db.users import User
from routers.inventory import get_inventory_store, load_items_by_id, stock_error_to_http
from schemas.orders import OrderActionOut, OrderCreate, OrderRead

logger = logging.getLogger(__name__)

router = APIRouter()


def checkout_error_to_http(e: CheckoutError) -> HTTPException:
    cause = e.__cause__
    if isinstance(cause, StockError):
        return HTTPException(status_code=stock_error_to_http(cause).status_code, detail=e.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)


def order_stock_lines(order: OrderModel):
    return stock_lines(order.items_json or [])


async def _get_order_or_404(db: AsyncSession, order_id: UUID) -> OrderModel:
    res = await db.execute(select(OrderModel).where(OrderModel.id == order_id))
    o = res.scalar_one_or_none()
    if not o:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return o


async def _commit_or_rollback(db: AsyncSession):
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise


@router.get("/", response_model=List[OrderRead])
async def list_orders(
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(pending|fulfilled|cancelled)$"),
    member_uid: Optional[str] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    stmt = select(OrderModel).order_by(OrderModel.order_date.desc())
    if status_filter:
        stmt = stmt.where(OrderModel.status == status_filter)
    if member_uid:
        stmt = stmt.where(OrderModel.member_uid == member_uid.strip())
    res = await db.execute(stmt)
    return [o.to_schema for o in res.scalars().all()]


@router.post("/", response_model=OrderActionOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    db: AsyncSession = Depends(get_async_session),
    store: SqlInventoryStore = Depends(get_inventory_store),
    user: User = Depends(current_active_user),
):
    """Place a pickup order: reserve its stock, then save it."""
    mres = await db.execute(select(MemberModel).where(MemberModel.uid == payload.member_uid))
    member = mres.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    if member.status != "Active":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Member is {member.status}")

    items_by_id = await load_items_by_id(db, [line.item_id for line in payload.items])
    try:
        priced = price_lines(payload.items, items_by_id)
    except CheckoutError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    totals = compute_totals(
        [(p["price"], p["quantity"]) for p in priced], tier=None, tax_rate=0, discount_rates={}
    )

    async def save_order():
        order = OrderModel(
            id=uuid.uuid4(),
            member_uid=payload.member_uid,
            items_json=priced,
            total_price=totals.subtotal,
            comment=payload.comment,
            status="pending",
        )
        db.add(order)
        await _commit_or_rollback(db)
        await db.refresh(order)
        return order

    try:
        order, outcome = await place_order(store, stock_lines(priced), save_order)
    except StockError as e:
        raise stock_error_to_http(e)
    except CheckoutError as e:
        raise checkout_error_to_http(e)
    return {"order": order.to_schema, "message": outcome.message, "warnings": outcome.warnings}


@router.post("/{order_id}/cancel", response_model=OrderActionOut)
async def cancel_pending_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    store: SqlInventoryStore = Depends(get_inventory_store),
    user: User = Depends(current_active_user),
):
    """Cancel a pending order and return its reserved stock to available."""
    order = await _get_order_or_404(db, order_id)
    if order.status != "pending":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Order is already {order.status}")

    async def mark_cancelled():
        o = await _get_order_or_404(db, order_id)
        o.status = "cancelled"
        await _commit_or_rollback(db)
        return o

    try:
        order, outcome = await cancel_order(store, order_stock_lines(order), mark_cancelled)
    except CheckoutError as e:
        raise checkout_error_to_http(e)
    return {"order": order.to_schema, "message": outcome.message, "warnings": outcome.warnings}


@router.delete("/clear", response_model=OrderActionOut)
async def clear_orders(
    db: AsyncSession = Depends(get_async_session),
    store: SqlInventoryStore = Depends(get_inventory_store),
    user: User = Depends(current_active_superuser),
):
    """
    Delete every order.

    Pending orders give their reservation back first; a pending order whose
    release fails is kept and reported.
    """
    res = await db.execute(select(OrderModel.id, OrderModel.items_json).where(OrderModel.status == "pending"))
    kept, warnings = await release_pending_orders(store, res.all())

    stmt = delete(OrderModel)
    if kept:
        stmt = stmt.where(OrderModel.id.notin_(kept))
    out = await db.execute(stmt)
    await db.commit()

    n = int(getattr(out, "rowcount", 0) or 0)
    return {"message": f"Deleted {n} order(s).", "warnings": warnings}


@router.delete("/{order_id}", response_model=OrderActionOut)
async def delete_order_record(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    store: SqlInventoryStore = Depends(get_inventory_store),
    user: User = Depends(current_active_superuser),
):
    """Delete an order. A pending order's reservation goes back to available stock."""
    order = await _get_order_or_404(db, order_id)
    lines = order_stock_lines(order)
    holds_reservation = order.status == "pending"

    async def remove_order():
        await db.delete(order)
        await _commit_or_rollback(db)

    try:
        outcome = await delete_order(store, lines, remove_order, holds_reservation=holds_reservation)
    except Exception as e:
        logger.exception("delete_order_record failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to delete order: {e}")
    return {"message": outcome.message, "warnings": outcome.warnings}
