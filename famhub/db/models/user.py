"""
FamHub - User Model
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum
import enum

from famhub.db.database import Base


class UserRole(str, enum.Enum):
    """Account role."""
    ADMIN = "admin"
    USER = "user"


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)

    role = Column(
        SQLEnum(UserRole, name="user_role", values_callable=lambda enum_cls: [m.value for m in enum_cls]),
        default=UserRole.USER,
        nullable=False,
    )
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<User {self.username}>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
