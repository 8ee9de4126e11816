from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List
from uuid import UUID

from core.auth import current_active_superuser, current_active_user
from core.reports import top_members
from db.database import get_async_session
from db.member import Member as MemberModel
from db.users import User
from schemas.members import MemberCreate, MemberRead, MemberUpdate, MemberUpsert

router = APIRouter()


async def _get_member_or_404(db: AsyncSession, member_id: UUID) -> MemberModel:
    res = await db.execute(select(MemberModel).where(MemberModel.id == member_id))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    return m


@router.get("/", response_model=List[MemberRead])
async def list_members(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    res = await db.execute(select(MemberModel).order_by(func.lower(MemberModel.name).asc()))
    return [m.to_schema for m in res.scalars().all()]


@router.get("/top", response_model=List[MemberRead])
async def list_top_members(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    res = await db.execute(select(MemberModel))
    return top_members([m.to_schema for m in res.scalars().all()], limit=limit)


@router.get("/by-uid/{uid}", response_model=MemberRead)
async def get_member_by_uid(
    uid: str,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Card scan lookup at the register."""
    res = await db.execute(select(MemberModel).where(MemberModel.uid == uid.strip()))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    if m.status != "Active":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Member is {m.status}")
    return m.to_schema


@router.post("/", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
async def create_member(
    payload: MemberCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    existing = await db.execute(select(MemberModel).where(MemberModel.uid == payload.uid))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A member with this UID already exists")

    data = payload.model_dump()
    data["total_purchases"] = data.get("total_purchases") or 0
    m = MemberModel(**data)
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return m.to_schema


@router.put("/", response_model=List[MemberRead])
async def upsert_members(
    payload: List[MemberUpsert],
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    """Insert or replace members keyed by id (bulk edit / import)."""
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An array of members is required.",
        )
    tbl = MemberModel.__table__
    out = []
    try:
        for member in payload:
            values = member.model_dump()
            values["total_purchases"] = values.get("total_purchases") or 0
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
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to upsert members: {e}")
    return out


@router.patch("/{member_id}", response_model=MemberRead)
async def update_member(
    member_id: UUID,
    payload: MemberUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    m = await _get_member_or_404(db, member_id)

    data = payload.model_dump(exclude_unset=True)
    if "uid" in data and data["uid"] is not None:
        uid = data["uid"].strip()
        clash = await db.execute(select(MemberModel).where(MemberModel.uid == uid, MemberModel.id != member_id))
        if clash.scalar_one_or_none():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A member with this UID already exists")
        m.uid = uid
    for field in ("name", "tier", "status"):
        if data.get(field) is not None:
            setattr(m, field, data[field])
    # nullable contact fields can be cleared
    for field in ("card_number", "phone", "email"):
        if field in data:
            setattr(m, field, data[field])

    await db.commit()
    await db.refresh(m)
    return m.to_schema


@router.delete("/{member_id}", response_model=Dict)
async def delete_member(
    member_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    m = await _get_member_or_404(db, member_id)
    await db.delete(m)
    await db.commit()
    return {"message": "Member deleted successfully"}
