from pydantic import BaseModel, field_validator
from typing import List, Optional
from uuid import UUID


class CategoryRead(BaseModel):
    id: UUID
    name: str
    icon_name: str
    sort_order: int


class CategoryCreate(BaseModel):
    name: str
    icon_name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Category name is required")
        return v


class CategoryReorder(BaseModel):
    category_ids: List[UUID]
