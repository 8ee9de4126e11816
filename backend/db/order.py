import uuid
from sqlalchemy import CheckConstraint, Column, DateTime, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func
from .database import Base


class Order(Base):
    """Pickup order. While pending, its lines hold reserved stock."""
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'fulfilled', 'cancelled')", name="ck_orders_status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_uid = Column(String, nullable=False, index=True)
    # [{itemId, name, quantity, price, unit, category, selectedOptionId}]
    items_json = Column(JSONB, nullable=False, default=list)
    total_price = Column(Numeric(12, 2), nullable=False)
    comment = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending", index=True)  # pending|fulfilled|cancelled
    transaction_id = Column(UUID(as_uuid=True), nullable=True)
    order_date = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "member_uid": self.member_uid,
            "items_json": list(self.items_json or []),
            "total_price": float(self.total_price or 0),
            "comment": self.comment,
            "status": self.status,
            "transaction_id": self.transaction_id,
            "order_date": self.order_date,
        }
