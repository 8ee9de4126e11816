from datetime import datetime
from pydantic import BaseModel, model_validator, field_validator
from typing import Any, Dict, List, Optional
from uuid import UUID

from schemas.orders import SaleLineIn


class TransactionCreate(BaseModel):
    """
    Checkout request.

    - order_id set: the order's own lines are sold and its reservation fulfilled.
    - otherwise: `items` are sold straight from available stock.
    """
    items: Optional[List[SaleLineIn]] = None
    member_uid: Optional[str] = None
    payment_method: str
    order_id: Optional[UUID] = None

    @field_validator("payment_method")
    @classmethod
    def _method(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("payment_method is required")
        return v

    @field_validator("member_uid")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _lines_or_order(self):
        if self.order_id is None and not self.items:
            raise ValueError("items are required when no order_id is given")
        return self


class TransactionRecord(BaseModel):
    """Full transaction row, used for imports. Does not touch stock."""
    id: UUID
    transaction_date: datetime
    items_json: List[Dict[str, Any]]
    subtotal: float
    discount_rate: float = 0.0
    discount_amount: float = 0.0
    tax_amount: float = 0.0
    final_total: float
    member_uid: Optional[str] = None
    payment_method: str
    order_id: Optional[UUID] = None


class TransactionRead(TransactionRecord):
    pass


class TransactionOut(BaseModel):
    transaction: TransactionRead
    message: str
    warnings: List[str] = []
