import uuid
from sqlalchemy import Column, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from .database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    icon_name = Column(String, nullable=False, default="CircleDashed")
    sort_order = Column(Integer, nullable=False, default=0)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "icon_name": self.icon_name,
            "sort_order": int(self.sort_order or 0),
        }
