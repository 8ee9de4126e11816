from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator


StockOperationName = Literal["reserve", "fulfill", "release", "deduct"]


class PricingOption(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    price: float
    unit: str

    @field_validator("name", "unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("price")
    @classmethod
    def _price_positive(cls, v: float) -> float:
        if v is None or v <= 0:
            raise ValueError("price must be > 0")
        return v


def _require_options(v: Optional[List[PricingOption]]) -> Optional[List[PricingOption]]:
    if v is not None and len(v) == 0:
        raise ValueError("at least one pricing option is required")
    return v


class InventoryItemCreate(BaseModel):
    name: str
    description: Optional[str] = None
    category: str = "Other"
    pricing_options: List[PricingOption]
    available_stock: int = 0
    reserved_stock: int = 0

    @field_validator("name", "category")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("pricing_options")
    @classmethod
    def _options(cls, v: List[PricingOption]) -> List[PricingOption]:
        return _require_options(v)

    @field_validator("available_stock", "reserved_stock")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("stock cannot be negative")
        return v


class InventoryItemUpsert(InventoryItemCreate):
    """Row for the bulk upsert: the id decides insert vs replace."""
    id: UUID


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    pricing_options: Optional[List[PricingOption]] = None

    @field_validator("name", "category")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = (v or "").strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("pricing_options")
    @classmethod
    def _options(cls, v: Optional[List[PricingOption]]) -> Optional[List[PricingOption]]:
        return _require_options(v)


class InventoryItemOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    category: str
    pricing_options: List[PricingOption]
    available_stock: int
    reserved_stock: int
    created_at: Optional[datetime] = None


class StockLineIn(BaseModel):
    item_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v


class StockOperationRequest(BaseModel):
    items: List[StockLineIn]

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.items:
            raise ValueError("at least one item is required")
        return self


class StockRecordOut(BaseModel):
    id: UUID
    name: str
    available_stock: int
    reserved_stock: int


class StockOperationOut(BaseModel):
    success: bool
    message: str
    items: List[StockRecordOut]


class StockTotalsOut(BaseModel):
    items: int
    total_available: int
    total_reserved: int
