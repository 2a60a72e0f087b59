"""
User Repository for Mente Merecedora

Account storage and the admin-approval lifecycle:
- Registration in "pending" state
- Approval / deactivation by admins
- Password-reset token bookkeeping
- Filtering and pagination for the back-office
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import func, or_

from .database import Database
from .models import User, UserRole, UserStatus, DEFAULT_PROFILE_IMAGE


@dataclass
class StoredUser:
    """Data class for user data transfer (never carries the raw password)."""

    id: str
    name: str
    email: str
    hashed_password: str
    role: str = UserRole.USER.value
    status: str = UserStatus.PENDING.value
    profile_image: str = DEFAULT_PROFILE_IMAGE
    bio: str = ""
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_approved(self) -> bool:
        return self.status == UserStatus.APPROVED.value

    @classmethod
    def from_model(cls, model: User) -> "StoredUser":
        """Create from SQLAlchemy model."""
        return cls(
            id=model.id,
            name=model.name,
            email=model.email,
            hashed_password=model.hashed_password,
            role=model.role,
            status=model.status,
            profile_image=model.profile_image or DEFAULT_PROFILE_IMAGE,
            bio=model.bio or "",
            created_at=model.created_at,
        )


class UserRepository:
    """
    Repository for user CRUD operations.

    Usage:
        repo = UserRepository(database)
        user = repo.create(name="Ana", email="ana@example.com", hashed_password=...)
        repo.set_status(user.id, UserStatus.APPROVED)
    """

    def __init__(self, database: Database):
        self.db = database

    def create(
        self,
        name: str,
        email: str,
        hashed_password: str,
        role: str = UserRole.USER.value,
        status: str = UserStatus.PENDING.value,
        bio: str = "",
    ) -> StoredUser:
        with self.db.get_session() as session:
            user = User(
                id=str(uuid.uuid4()),
                name=name.strip(),
                email=email.strip().lower(),
                hashed_password=hashed_password,
                role=role,
                status=status,
                bio=bio or "",
            )
            session.add(user)
            session.commit()
            session.refresh(user)

            logger.info(f"User created: {user.email} ({user.role}, {user.status})")
            return StoredUser.from_model(user)

    def get(self, user_id: str) -> Optional[StoredUser]:
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            return StoredUser.from_model(user) if user else None

    def get_by_email(self, email: str) -> Optional[StoredUser]:
        with self.db.get_session() as session:
            user = session.query(User).filter(
                User.email == email.strip().lower(),
            ).first()
            return StoredUser.from_model(user) if user else None

    def email_exists(self, email: str, exclude_id: Optional[str] = None) -> bool:
        with self.db.get_session() as session:
            query = session.query(User.id).filter(User.email == email.strip().lower())
            if exclude_id:
                query = query.filter(User.id != exclude_id)
            return query.first() is not None

    def update(self, user_id: str, **updates) -> Optional[StoredUser]:
        """
        Update user fields.

        Unknown keys are ignored; ``email`` is normalised to lower case.
        """
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if not user:
                return None

            for key, value in updates.items():
                if value is None or not hasattr(user, key):
                    continue
                if key == "email":
                    value = value.strip().lower()
                setattr(user, key, value)

            session.commit()
            session.refresh(user)
            return StoredUser.from_model(user)

    def set_status(self, user_id: str, status: UserStatus) -> Optional[StoredUser]:
        logger.info(f"Setting user {user_id} status to {status.value}")
        return self.update(user_id, status=status.value)

    def delete(self, user_id: str) -> bool:
        """Delete a user; owned records go with it (ON DELETE CASCADE)."""
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if not user:
                return False
            session.delete(user)
            session.commit()
            logger.info(f"User deleted: {user_id}")
            return True

    # -------------------------------------------------------------------------
    # Password reset
    # -------------------------------------------------------------------------

    def set_reset_token(self, user_id: str, token_hash: str, expires_at: datetime) -> None:
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if user:
                user.reset_password_token = token_hash
                user.reset_password_expire = expires_at
                session.commit()

    def get_by_reset_token(self, token_hash: str, now: Optional[datetime] = None) -> Optional[StoredUser]:
        """Find the user owning an unexpired reset token."""
        now = now or datetime.utcnow()
        with self.db.get_session() as session:
            user = session.query(User).filter(
                User.reset_password_token == token_hash,
                User.reset_password_expire > now,
            ).first()
            return StoredUser.from_model(user) if user else None

    def reset_password(self, user_id: str, hashed_password: str) -> Optional[StoredUser]:
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if not user:
                return None
            user.hashed_password = hashed_password
            user.reset_password_token = None
            user.reset_password_expire = None
            session.commit()
            session.refresh(user)
            return StoredUser.from_model(user)

    # -------------------------------------------------------------------------
    # Listing & stats
    # -------------------------------------------------------------------------

    def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[StoredUser], int]:
        """
        List users with filtering and pagination.

        Returns:
            (List of StoredUsers, total_count)
        """
        offset = (page - 1) * limit

        with self.db.get_session() as session:
            query = session.query(User)

            if status:
                query = query.filter(User.status == status)
            if role:
                query = query.filter(User.role == role)
            if search:
                pattern = f"%{search}%"
                query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

            total = query.count()
            users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()

            return [StoredUser.from_model(u) for u in users], total

    def count(self, status: Optional[str] = None) -> int:
        with self.db.get_session() as session:
            query = session.query(func.count(User.id))
            if status:
                query = query.filter(User.status == status)
            return query.scalar() or 0

    def count_by_status(self) -> dict[str, int]:
        with self.db.get_session() as session:
            rows = session.query(User.status, func.count(User.id)).group_by(User.status).all()
            return {status: count for status, count in rows}

    def names_by_id(self, user_ids: list[str]) -> dict[str, str]:
        if not user_ids:
            return {}
        with self.db.get_session() as session:
            rows = session.query(User.id, User.name).filter(User.id.in_(user_ids)).all()
            return {user_id: name for user_id, name in rows}

    def recent(self, limit: int = 10) -> list[StoredUser]:
        with self.db.get_session() as session:
            users = session.query(User).order_by(User.created_at.desc()).limit(limit).all()
            return [StoredUser.from_model(u) for u in users]

    def created_between(self, start: datetime, end: datetime) -> list[datetime]:
        """Registration timestamps in a window (for usage buckets)."""
        with self.db.get_session() as session:
            rows = session.query(User.created_at).filter(
                User.created_at >= start,
                User.created_at <= end,
            ).all()
            return [row[0] for row in rows]
