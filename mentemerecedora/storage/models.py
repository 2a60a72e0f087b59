"""
Database models for Mente Merecedora.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, Text, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserStatus(str, Enum):
    """Account lifecycle: pending -> approved | deactivated."""
    PENDING = "pending"
    APPROVED = "approved"
    DEACTIVATED = "deactivated"


DEFAULT_PROFILE_IMAGE = "default-profile.jpg"


class User(Base):
    """User model for authentication."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(10), nullable=False, default=UserRole.USER.value)
    status = Column(String(12), nullable=False, default=UserStatus.PENDING.value, index=True)
    profile_image = Column(String(500), default=DEFAULT_PROFILE_IMAGE)
    bio = Column(Text, default="")

    # Password reset (sha256 of the raw token)
    reset_password_token = Column(String(64), index=True)
    reset_password_expire = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_users_created", "created_at"),
    )
