from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List
from uuid import UUID

from core.auth import current_active_superuser, current_active_user
from db.database import get_async_session
from db.category import Category as CategoryModel
from db.users import User
from schemas.categories import CategoryCreate, CategoryRead, CategoryReorder

router = APIRouter()

DEFAULT_ICON = "CircleDashed"


@router.get("/", response_model=List[CategoryRead])
async def list_categories(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    res = await db.execute(
        select(CategoryModel).order_by(CategoryModel.sort_order.asc(), func.lower(CategoryModel.name).asc())
    )
    return [c.to_schema for c in res.scalars().all()]


@router.post("/", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    existing = await db.execute(select(CategoryModel).where(func.lower(CategoryModel.name) == payload.name.lower()))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists")

    max_order = (await db.execute(select(func.max(CategoryModel.sort_order)))).scalar()
    c = CategoryModel(
        name=payload.name,
        icon_name=(payload.icon_name or "").strip() or DEFAULT_ICON,
        sort_order=int(max_order or 0) + 1,
    )
    db.add(c)
    await db.commit()
    await db.refresh(c)
    return c.to_schema


@router.put("/order", response_model=List[CategoryRead])
async def reorder_categories(
    payload: CategoryReorder,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    """Persist a new display order. Categories not listed keep their relative order after the listed ones."""
    res = await db.execute(select(CategoryModel).order_by(CategoryModel.sort_order.asc()))
    cats = res.scalars().all()
    by_id = {c.id: c for c in cats}

    unknown = [str(cid) for cid in payload.category_ids if cid not in by_id]
    if unknown:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown categories: {', '.join(unknown)}")

    listed = list(dict.fromkeys(payload.category_ids))
    ordered = [by_id[cid] for cid in listed] + [c for c in cats if c.id not in set(listed)]
    for i, c in enumerate(ordered):
        c.sort_order = i
    await db.commit()
    return [c.to_schema for c in ordered]


@router.delete("/{category_id}", response_model=Dict)
async def delete_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    res = await db.execute(select(CategoryModel).where(CategoryModel.id == category_id))
    c = res.scalar_one_or_none()
    if not c:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    await db.delete(c)
    await db.commit()
    return {"message": "Category deleted successfully"}
