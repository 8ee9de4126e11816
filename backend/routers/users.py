from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List

from core.auth import current_active_superuser, current_active_user
from db.database import get_async_session
from db.users import User

router = APIRouter()

# Account routes (register, login, /users/{id}) come from fastapi-users in main.py.


@router.get("/me", response_model=Dict)
async def get_operator(user: User = Depends(current_active_user)):
    """The logged-in operator with their PoS role."""
    return user.to_schema


@router.get("/", response_model=List[Dict])
async def list_operators(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    res = await db.execute(select(User).order_by(func.lower(User.email).asc()))
    return [u.to_schema for u in res.scalars().all()]
