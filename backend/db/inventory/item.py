import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func

from ..database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("available_stock >= 0", name="ck_inventory_available_non_negative"),
        CheckConstraint("reserved_stock >= 0", name="ck_inventory_reserved_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, default="Other", index=True)

    # [{id, name, price, unit}] e.g. "Per Gram" / "Half Ounce"
    pricing_options = Column(JSONB, nullable=False, default=list)

    # Sellable units
    available_stock = Column(Integer, nullable=False, default=0)
    # Units held against pending orders
    reserved_stock = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "pricing_options": list(self.pricing_options or []),
            "available_stock": int(self.available_stock or 0),
            "reserved_stock": int(self.reserved_stock or 0),
            "created_at": self.created_at,
        }
