import uuid
from sqlalchemy import Column, DateTime, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func
from .database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transaction_date = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    # [{itemId, quantity, price, selectedOptionId}]
    items_json = Column(JSONB, nullable=False, default=list)
    subtotal = Column(Numeric(12, 2), nullable=False)
    discount_rate = Column(Numeric(5, 4), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    final_total = Column(Numeric(12, 2), nullable=False)
    member_uid = Column(String, nullable=True, index=True)
    payment_method = Column(Text, nullable=False)
    order_id = Column(UUID(as_uuid=True), nullable=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "transaction_date": self.transaction_date,
            "items_json": list(self.items_json or []),
            "subtotal": float(self.subtotal or 0),
            "discount_rate": float(self.discount_rate or 0),
            "discount_amount": float(self.discount_amount or 0),
            "tax_amount": float(self.tax_amount or 0),
            "final_total": float(self.final_total or 0),
            "member_uid": self.member_uid,
            "payment_method": self.payment_method,
            "order_id": self.order_id,
        }
