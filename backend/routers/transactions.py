import logging
import uuid
from datetime import date, datetime, time, timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional
from uuid import UUID

from core.auth import current_active_superuser, current_active_user
from core.checkout import CheckoutError, checkout, compute_totals, price_lines, stock_lines
from core.config import settings
from db.database import get_async_session
from db.member import Member as MemberModel
from db.order import Order as OrderModel
from db.transaction import Transaction as TransactionModel
from db.inventory.store import SqlInventoryStore
from db.users import User
from routers.inventory import get_inventory_store, load_items_by_id
from routers.orders import checkout_error_to_http
from schemas.transactions import TransactionCreate, TransactionOut, TransactionRead, TransactionRecord

logger = logging.getLogger(__name__)

router = APIRouter()


def date_window(start: Optional[date], end: Optional[date]):
    """[start 00:00, day after end 00:00) as naive datetimes; either side may be open."""
    lo = datetime.combine(start, time.min) if start else None
    hi = datetime.combine(end + timedelta(days=1), time.min) if end else None
    return lo, hi


@router.get("/", response_model=List[TransactionRead])
async def list_transactions(
    start: Optional[date] = None,
    end: Optional[date] = None,
    member_uid: Optional[str] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    stmt = select(TransactionModel).order_by(TransactionModel.transaction_date.desc())
    lo, hi = date_window(start, end)
    if lo is not None:
        stmt = stmt.where(TransactionModel.transaction_date >= lo)
    if hi is not None:
        stmt = stmt.where(TransactionModel.transaction_date < hi)
    if member_uid:
        stmt = stmt.where(TransactionModel.member_uid == member_uid.strip())
    res = await db.execute(stmt)
    return [t.to_schema for t in res.scalars().all()]


@router.post("/", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    db: AsyncSession = Depends(get_async_session),
    store: SqlInventoryStore = Depends(get_inventory_store),
    user: User = Depends(current_active_user),
):
    """
    Checkout.

    - with order_id: sells the pending order's lines out of reserved stock and
      marks the order fulfilled
    - without: sells `items` straight from available stock
    """
    order: Optional[OrderModel] = None
    if payload.order_id is not None:
        res = await db.execute(select(OrderModel).where(OrderModel.id == payload.order_id))
        order = res.scalar_one_or_none()
        if not order:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
        if order.status != "pending":
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Order is already {order.status}")
        priced = list(order.items_json or [])
        member_uid = payload.member_uid or order.member_uid
    else:
        items_by_id = await load_items_by_id(db, [line.item_id for line in payload.items])
        try:
            priced = price_lines(payload.items, items_by_id)
        except CheckoutError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
        member_uid = payload.member_uid

    member: Optional[MemberModel] = None
    if member_uid:
        mres = await db.execute(select(MemberModel).where(MemberModel.uid == member_uid))
        member = mres.scalar_one_or_none()
        if not member:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    totals = compute_totals(
        [(p["price"], p["quantity"]) for p in priced],
        tier=member.tier if member else None,
        tax_rate=settings.tax_rate,
        discount_rates=settings.tier_discount_rates,
    )
    transaction_id = uuid.uuid4()

    async def record_transaction():
        t = TransactionModel(
            id=transaction_id,
            items_json=[
                {
                    "itemId": p["itemId"],
                    "name": p.get("name"),
                    "quantity": int(p["quantity"]),
                    "price": p["price"],
                    "selectedOptionId": p.get("selectedOptionId"),
                }
                for p in priced
            ],
            subtotal=totals.subtotal,
            discount_rate=totals.discount_rate,
            discount_amount=totals.discount_amount,
            tax_amount=totals.tax_amount,
            final_total=totals.final_total,
            member_uid=member_uid,
            payment_method=payload.payment_method,
            order_id=order.id if order else None,
        )
        db.add(t)
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        await db.refresh(t)
        return t

    async def complete_order():
        await db.execute(
            update(OrderModel)
            .where(OrderModel.id == payload.order_id)
            .values(status="fulfilled", transaction_id=transaction_id)
        )
        await db.commit()

    async def credit_member():
        await db.execute(
            update(MemberModel)
            .where(MemberModel.id == member.id)
            .values(total_purchases=MemberModel.total_purchases + totals.final_total)
        )
        await db.commit()

    try:
        t, outcome = await checkout(
            store,
            stock_lines(priced),
            record_transaction,
            fulfilling_order=order is not None,
            complete_order=complete_order if order is not None else None,
            credit_member=credit_member if member is not None else None,
        )
    except CheckoutError as e:
        raise checkout_error_to_http(e)
    for w in outcome.warnings:
        logger.warning("transaction %s: %s", transaction_id, w)
    return {"transaction": t.to_schema, "message": outcome.message, "warnings": outcome.warnings}


@router.put("/", response_model=List[TransactionRead])
async def import_transactions(
    payload: List[TransactionRecord],
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    """Insert or replace transaction rows keyed by id. Stock is not touched."""
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An array of transactions is required.",
        )
    tbl = TransactionModel.__table__
    out = []
    try:
        for record in payload:
            values = record.model_dump()
            stmt = (
                insert(tbl)
                .values(**values)
                .on_conflict_do_update(
                    index_elements=[tbl.c.id],
                    set_={k: v for k, v in values.items() if k != "id"},
                )
                .returning(*tbl.c)
            )
            row = (await db.execute(stmt)).mappings().first()
            out.append(dict(row))
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.exception("import_transactions failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to import transactions: {e}"
        )
    return out


@router.delete("/{transaction_id}", response_model=Dict)
async def delete_transaction(
    transaction_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    """Remove a transaction record. Stock and member totals are left as they are."""
    res = await db.execute(select(TransactionModel).where(TransactionModel.id == transaction_id))
    t = res.scalar_one_or_none()
    if not t:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    await db.delete(t)
    await db.commit()
    return {"message": "Transaction deleted successfully"}
