"""
Diary Repository for Mente Merecedora

Storage for the "Diário Quântico" journal:
- One entry per user per calendar day
- Owner-scoped listing with date window and pagination
- Raw series (dates, ratings) for streak and progress insights
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from loguru import logger
from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    Date,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    func,
)

from .database import Database
from .models import Base


class DiaryEntryModel(Base):
    """SQLAlchemy model for diary entries."""

    __tablename__ = "diary_entries"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Calendar day the entry belongs to
    date = Column(Date, nullable=False)

    emotional_state = Column(String(100), nullable=False)
    predominant_thoughts = Column(Text, nullable=False)
    small_wins = Column(Text, nullable=False)
    next_day_goals = Column(Text, nullable=False)
    gratitude = Column(Text, default="")
    insights = Column(Text, default="")

    # 1 (low) .. 5 (high)
    emotional_rating = Column(Integer, nullable=False, default=3)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_diary_user_date"),
        Index("idx_diary_user_date", "user_id", "date"),
    )


@dataclass
class StoredDiaryEntry:
    """Data class for diary entry transfer."""

    id: str
    user_id: str
    date: date
    emotional_state: str
    predominant_thoughts: str
    small_wins: str
    next_day_goals: str
    gratitude: str = ""
    insights: str = ""
    emotional_rating: int = 3
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: DiaryEntryModel) -> "StoredDiaryEntry":
        return cls(
            id=model.id,
            user_id=model.user_id,
            date=model.date,
            emotional_state=model.emotional_state,
            predominant_thoughts=model.predominant_thoughts,
            small_wins=model.small_wins,
            next_day_goals=model.next_day_goals,
            gratitude=model.gratitude or "",
            insights=model.insights or "",
            emotional_rating=model.emotional_rating,
            created_at=model.created_at,
        )


class DiaryRepository:
    """Repository for diary entries."""

    def __init__(self, database: Database):
        self.db = database

    def create(self, user_id: str, entry_date: date, **fields) -> StoredDiaryEntry:
        with self.db.get_session() as session:
            entry = DiaryEntryModel(
                id=str(uuid.uuid4()),
                user_id=user_id,
                date=entry_date,
                **fields,
            )
            session.add(entry)
            session.commit()
            session.refresh(entry)

            logger.info(f"Diary entry created for user {user_id} on {entry_date}")
            return StoredDiaryEntry.from_model(entry)

    def get(self, entry_id: str) -> Optional[StoredDiaryEntry]:
        with self.db.get_session() as session:
            entry = session.get(DiaryEntryModel, entry_id)
            return StoredDiaryEntry.from_model(entry) if entry else None

    def get_by_date(self, user_id: str, entry_date: date) -> Optional[StoredDiaryEntry]:
        with self.db.get_session() as session:
            entry = session.query(DiaryEntryModel).filter(
                DiaryEntryModel.user_id == user_id,
                DiaryEntryModel.date == entry_date,
            ).first()
            return StoredDiaryEntry.from_model(entry) if entry else None

    def update(self, entry_id: str, **updates) -> Optional[StoredDiaryEntry]:
        with self.db.get_session() as session:
            entry = session.get(DiaryEntryModel, entry_id)
            if not entry:
                return None

            for key, value in updates.items():
                if key in ("id", "user_id") or not hasattr(entry, key):
                    continue
                setattr(entry, key, value)

            session.commit()
            session.refresh(entry)
            return StoredDiaryEntry.from_model(entry)

    def delete(self, entry_id: str) -> bool:
        with self.db.get_session() as session:
            entry = session.get(DiaryEntryModel, entry_id)
            if not entry:
                return False
            session.delete(entry)
            session.commit()
            return True

    def list_entries(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = 30,
    ) -> tuple[list[StoredDiaryEntry], int]:
        """
        List a user's entries, most recent day first.

        Returns:
            (entries for the page, total matching entries)
        """
        offset = (page - 1) * limit

        with self.db.get_session() as session:
            query = session.query(DiaryEntryModel).filter(DiaryEntryModel.user_id == user_id)

            if start_date:
                query = query.filter(DiaryEntryModel.date >= start_date)
            if end_date:
                query = query.filter(DiaryEntryModel.date <= end_date)

            total = query.count()
            entries = (
                query.order_by(DiaryEntryModel.date.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [StoredDiaryEntry.from_model(e) for e in entries], total

    def recent(self, user_id: str, limit: int = 10) -> list[StoredDiaryEntry]:
        """Most recently written entries (by creation time)."""
        with self.db.get_session() as session:
            entries = (
                session.query(DiaryEntryModel)
                .filter(DiaryEntryModel.user_id == user_id)
                .order_by(DiaryEntryModel.created_at.desc())
                .limit(limit)
                .all()
            )
            return [StoredDiaryEntry.from_model(e) for e in entries]

    def entry_dates(self, user_id: str) -> list[date]:
        """All entry days for a user, most recent first."""
        with self.db.get_session() as session:
            rows = (
                session.query(DiaryEntryModel.date)
                .filter(DiaryEntryModel.user_id == user_id)
                .order_by(DiaryEntryModel.date.desc())
                .all()
            )
            return [row[0] for row in rows]

    def recent_ratings(self, user_id: str, limit: int = 6) -> list[int]:
        """Emotional ratings of the latest entries, most recent first."""
        with self.db.get_session() as session:
            rows = (
                session.query(DiaryEntryModel.emotional_rating)
                .filter(DiaryEntryModel.user_id == user_id)
                .order_by(DiaryEntryModel.date.desc())
                .limit(limit)
                .all()
            )
            return [row[0] for row in rows]

    def count(
        self,
        user_id: Optional[str] = None,
        since: Optional[date] = None,
    ) -> int:
        with self.db.get_session() as session:
            query = session.query(func.count(DiaryEntryModel.id))
            if user_id:
                query = query.filter(DiaryEntryModel.user_id == user_id)
            if since:
                query = query.filter(DiaryEntryModel.date >= since)
            return query.scalar() or 0

    def created_between(
        self,
        start: datetime,
        end: datetime,
        user_id: Optional[str] = None,
    ) -> list[datetime]:
        with self.db.get_session() as session:
            query = session.query(DiaryEntryModel.created_at).filter(
                DiaryEntryModel.created_at >= start,
                DiaryEntryModel.created_at <= end,
            )
            if user_id:
                query = query.filter(DiaryEntryModel.user_id == user_id)
            return [row[0] for row in query.all()]

    def first_created(self, user_id: str, n: int = 1) -> list[datetime]:
        """Creation times of a user's first ``n`` entries, oldest first."""
        with self.db.get_session() as session:
            rows = (
                session.query(DiaryEntryModel.created_at)
                .filter(DiaryEntryModel.user_id == user_id)
                .order_by(DiaryEntryModel.created_at.asc())
                .limit(n)
                .all()
            )
            return [row[0] for row in rows]

    def recent_all(self, limit: int = 10) -> list[StoredDiaryEntry]:
        """Latest entries across all users (admin activity feed)."""
        with self.db.get_session() as session:
            entries = (
                session.query(DiaryEntryModel)
                .order_by(DiaryEntryModel.created_at.desc())
                .limit(limit)
                .all()
            )
            return [StoredDiaryEntry.from_model(e) for e in entries]
