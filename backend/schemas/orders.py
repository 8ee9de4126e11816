from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID


OrderStatus = Literal["pending", "fulfilled", "cancelled"]


class SaleLineIn(BaseModel):
    """One cart line: which item, which pricing option, how many."""
    model_config = ConfigDict(populate_by_name=True)

    item_id: UUID = Field(alias="itemId")
    quantity: int
    selected_option_id: Optional[str] = Field(default=None, alias="selectedOptionId")

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v


class OrderCreate(BaseModel):
    member_uid: str
    items: List[SaleLineIn]
    comment: Optional[str] = None

    @field_validator("member_uid")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("member_uid is required")
        return v

    @field_validator("items")
    @classmethod
    def _not_empty(cls, v: List[SaleLineIn]) -> List[SaleLineIn]:
        if not v:
            raise ValueError("at least one item is required")
        return v


class OrderRead(BaseModel):
    id: UUID
    member_uid: str
    items_json: List[Dict[str, Any]]
    total_price: float
    comment: Optional[str] = None
    status: OrderStatus
    transaction_id: Optional[UUID] = None
    order_date: Optional[datetime] = None


class OrderActionOut(BaseModel):
    order: Optional[OrderRead] = None
    message: str
    warnings: List[str] = []
