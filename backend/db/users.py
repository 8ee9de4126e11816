from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy import Column, String
from .database import Base


class User(SQLAlchemyBaseUserTableUUID, Base):
    """Point of sale operator. Superusers are admins, everyone else is staff."""
    __tablename__ = "users"

    username = Column(String, nullable=True, unique=True, index=True)
    # NFC card uid for badge login on the terminal
    card_uid = Column(String, nullable=True, unique=True, index=True)

    @property
    def role(self) -> str:
        return "admin" if self.is_superuser else "staff"

    @property
    def to_schema(self):
        """Convert User model to schema dictionary format"""
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "role": self.role,
        }
