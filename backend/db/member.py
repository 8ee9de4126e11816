import uuid
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from .database import Base


class Member(Base):
    __tablename__ = "members"
    __table_args__ = (
        CheckConstraint("tier IN ('Basic', 'Gold', 'Supreme')", name="ck_members_tier"),
        CheckConstraint("status IN ('Active', 'Inactive', 'Suspended')", name="ck_members_status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    uid = Column(String, nullable=False, unique=True, index=True)  # NFC card uid
    card_number = Column(Integer, nullable=True)
    name = Column(String, nullable=False)
    tier = Column(Text, nullable=False, default="Basic")  # Basic|Gold|Supreme
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    status = Column(Text, nullable=False, default="Active")  # Active|Inactive|Suspended
    total_purchases = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "uid": self.uid,
            "card_number": self.card_number,
            "name": self.name,
            "tier": self.tier,
            "phone": self.phone,
            "email": self.email,
            "status": self.status,
            "total_purchases": float(self.total_purchases or 0),
            "created_at": self.created_at,
        }
