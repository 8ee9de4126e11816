from datetime import datetime
from pydantic import BaseModel, field_validator
from typing import Literal, Optional
from uuid import UUID


MemberTier = Literal["Basic", "Gold", "Supreme"]
MemberStatus = Literal["Active", "Inactive", "Suspended"]


class MemberRead(BaseModel):
    id: UUID
    uid: str
    card_number: Optional[int] = None
    name: str
    tier: MemberTier
    phone: Optional[str] = None
    email: Optional[str] = None
    status: MemberStatus
    total_purchases: float = 0.0
    created_at: Optional[datetime] = None


class MemberCreate(BaseModel):
    uid: str
    card_number: Optional[int] = None
    name: str
    tier: MemberTier = "Basic"
    phone: Optional[str] = None
    email: Optional[str] = None
    status: MemberStatus = "Active"
    total_purchases: Optional[float] = None

    @field_validator("uid", "name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class MemberUpsert(MemberCreate):
    id: UUID


class MemberUpdate(BaseModel):
    uid: Optional[str] = None
    card_number: Optional[int] = None
    name: Optional[str] = None
    tier: Optional[MemberTier] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[MemberStatus] = None
