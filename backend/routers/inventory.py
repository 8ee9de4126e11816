import logging
import uuid
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_superuser, current_active_user
from core.stock import (
    OPERATIONS,
    InsufficientStock,
    StockError,
    StockItemNotFound,
    StockLine,
    run_stock_operation,
    update_stock,
)
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from db.order import Order as OrderModel
from db.inventory.store import SqlInventoryStore
from db.users import User
from schemas.inventory import (
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    InventoryItemUpsert,
    StockOperationName,
    StockOperationOut,
    StockOperationRequest,
    StockRecordOut,
    StockTotalsOut,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_inventory_store(db: AsyncSession = Depends(get_async_session)) -> SqlInventoryStore:
    return SqlInventoryStore(db)


def stock_error_to_http(e: StockError) -> HTTPException:
    if isinstance(e, StockItemNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, InsufficientStock):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


async def load_items_by_id(db: AsyncSession, item_ids) -> Dict[str, dict]:
    ids = {i if isinstance(i, UUID) else UUID(str(i)) for i in item_ids}
    if not ids:
        return {}
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id.in_(ids)))
    return {str(it.id): it.to_schema for it in res.scalars().all()}


def pending_orders_holding(item_id: UUID):
    """Pending orders with a line for the item (JSONB containment on items_json)."""
    return (
        select(OrderModel.id, OrderModel.member_uid)
        .where(OrderModel.status == "pending")
        .where(OrderModel.items_json.contains([{"itemId": str(item_id)}]))
        .order_by(OrderModel.order_date.asc())
    )


@router.get("/items", response_model=List[InventoryItemOut])
async def list_inventory_items(
    category: Optional[str] = None,
    q: Optional[str] = None,
    in_stock: bool = False,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    List inventory items.

    - category: exact category name
    - q: case-insensitive name search
    - in_stock: only items with available_stock > 0
    """
    stmt = select(InventoryItemModel)
    if category:
        stmt = stmt.where(InventoryItemModel.category == category)
    if q:
        qq = f"%{q.strip().lower()}%"
        stmt = stmt.where(func.lower(InventoryItemModel.name).like(qq))
    if in_stock:
        stmt = stmt.where(InventoryItemModel.available_stock > 0)

    res = await db.execute(stmt.order_by(func.lower(InventoryItemModel.name).asc()))
    return [it.to_schema for it in res.scalars().all()]


@router.get("/items/{item_id}", response_model=InventoryItemOut)
async def get_inventory_item(
    item_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    it = res.scalar_one_or_none()
    if not it:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return it.to_schema


@router.post("/items", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryItemCreate,
    user: User = Depends(current_active_superuser),
    db: AsyncSession = Depends(get_async_session),
):
    model = InventoryItemModel(
        id=uuid.uuid4(),
        name=payload.name,
        description=payload.description,
        category=payload.category,
        pricing_options=[o.model_dump() for o in payload.pricing_options],
        available_stock=payload.available_stock,
        reserved_stock=payload.reserved_stock,
    )
    db.add(model)
    try:
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.exception("create_inventory_item failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to create item: {e}")
    await db.refresh(model)
    return model.to_schema


@router.patch("/items/{item_id}", response_model=InventoryItemOut)
async def update_inventory_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    user: User = Depends(current_active_superuser),
    db: AsyncSession = Depends(get_async_session),
):
    """Edit descriptive fields. Stock counters only change through the stock endpoints."""
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")

    if payload.name is not None:
        model.name = payload.name
    if payload.description is not None:
        model.description = payload.description
    if payload.category is not None:
        model.category = payload.category
    if payload.pricing_options is not None:
        model.pricing_options = [o.model_dump() for o in payload.pricing_options]

    await db.commit()
    await db.refresh(model)
    return model.to_schema


@router.put("/items", response_model=List[InventoryItemOut])
async def upsert_inventory_items(
    payload: List[InventoryItemUpsert],
    user: User = Depends(current_active_superuser),
    store: SqlInventoryStore = Depends(get_inventory_store),
):
    """
    Insert or replace inventory rows keyed by id (bulk edit / import).

    Counters are written as given; the table's CHECK constraints still reject
    negative values.
    """
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An array of inventory items is required.",
        )
    rows = []
    for item in payload:
        row = item.model_dump()
        row["pricing_options"] = [o.model_dump() for o in item.pricing_options]
        rows.append(row)
    try:
        result = await update_stock(store, rows)
    except StockError as e:
        raise stock_error_to_http(e)
    return result.items


@router.delete("/items/{item_id}", response_model=Dict)
async def delete_inventory_item(
    item_id: UUID,
    user: User = Depends(current_active_superuser),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")

    reserved = int(model.reserved_stock or 0)
    holding = (await db.execute(pending_orders_holding(item_id))).all()
    await db.delete(model)
    await db.commit()
    if reserved or holding:
        logger.warning(
            "deleted item %s with %d reserved unit(s) held by %d pending order(s)", item_id, reserved, len(holding)
        )
    return {
        "message": "Item deleted successfully",
        "reserved_stock_cleared": reserved,
        # these orders can no longer be cancelled or checked out, only deleted
        "pending_orders": [{"id": str(oid), "member_uid": uid} for oid, uid in holding],
    }


@router.get("/stock/totals", response_model=StockTotalsOut)
async def get_stock_totals(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        select(
            func.count(InventoryItemModel.id),
            func.coalesce(func.sum(InventoryItemModel.available_stock), 0),
            func.coalesce(func.sum(InventoryItemModel.reserved_stock), 0),
        )
    )
    count, available, reserved = res.one()
    return {"items": int(count), "total_available": int(available), "total_reserved": int(reserved)}


@router.post("/stock/{operation}", response_model=StockOperationOut)
async def apply_stock_operation(
    payload: StockOperationRequest,
    operation: StockOperationName = Path(...),
    user: User = Depends(current_active_user),
    store: SqlInventoryStore = Depends(get_inventory_store),
):
    """
    Run one stock operation on a batch of (item_id, quantity) lines.

    - reserve: available -> reserved
    - fulfill: reserved -> sold
    - release: reserved -> available
    - deduct: available -> sold

    The whole batch is applied or nothing is.
    """
    lines = [StockLine(item_id=line.item_id, quantity=line.quantity) for line in payload.items]
    try:
        result = await run_stock_operation(OPERATIONS[operation], store, lines)
    except StockError as e:
        raise stock_error_to_http(e)
    return {
        "success": result.success,
        "message": result.message,
        "items": [
            StockRecordOut(
                id=r.id, name=r.name, available_stock=r.available_stock, reserved_stock=r.reserved_stock
            )
            for r in result.items
        ],
    }
