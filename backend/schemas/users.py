# Pydantic schemas for user-related requests/responses
# fastapi-users provides the base schemas; these add the PoS login fields

from uuid import UUID
from fastapi_users import schemas
from typing import Optional


class UserRead(schemas.BaseUser[UUID]):
    username: Optional[str] = None
    card_uid: Optional[str] = None


class UserCreate(schemas.BaseUserCreate):
    username: Optional[str] = None
    card_uid: Optional[str] = None


class UserUpdate(schemas.BaseUserUpdate):
    username: Optional[str] = None
    card_uid: Optional[str] = None
