"""
Practice Repository for Mente Merecedora

Admin-curated guided practices and per-user interaction data:
- Practice catalogue (category, featured flag, ordering, activation)
- Practice records: "start" and "completion" events with durations
- Per-user favorites
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from loguru import logger
from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    Boolean,
    ForeignKey,
    Index,
    func,
    or_,
)

from .database import Database
from .models import Base


class PracticeCategory(str, Enum):
    """Practice categories."""
    MEDITACAO = "meditacao"
    VISUALIZACAO = "visualizacao"
    REPROGRAMACAO = "reprogramacao"
    CUBO = "cubo"
    ESCADA = "escada"
    ANIMAIS = "animais"
    ZOOMOUT = "zoomout"
    ALPHA = "alpha"
    OUTRO = "outro"


class PracticeEvent(str, Enum):
    START = "start"
    COMPLETION = "completion"


DEFAULT_COVER_IMAGE = "praticas/default-cover.jpg"


class PracticeModel(Base):
    """SQLAlchemy model for practices."""

    __tablename__ = "practices"

    id = Column(String(36), primary_key=True)
    title = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    category = Column(String(20), nullable=False, default=PracticeCategory.OUTRO.value, index=True)

    # Media (object names in the media store)
    audio_object = Column(String(500))
    cover_image = Column(String(500), default=DEFAULT_COVER_IMAGE)

    # Seconds
    duration = Column(Integer, default=0)

    featured = Column(Boolean, default=False)
    sort_order = Column(Integer, default=0)
    active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_practices_order", "sort_order", "created_at"),
    )


class PracticeRecordModel(Base):
    """A start or completion event of a practice by a user."""

    __tablename__ = "practice_records"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    practice_id = Column(String(36), ForeignKey("practices.id", ondelete="CASCADE"), nullable=False)
    event = Column(String(12), nullable=False)
    duration = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_records_user_created", "user_id", "created_at"),
        Index("idx_records_user_event", "user_id", "event"),
    )


class PracticeFavoriteModel(Base):
    __tablename__ = "practice_favorites"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    practice_id = Column(String(36), ForeignKey("practices.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow)


@dataclass
class StoredPractice:
    """Data class for practice transfer."""

    id: str
    title: str
    description: str
    category: str = PracticeCategory.OUTRO.value
    audio_object: Optional[str] = None
    cover_image: str = DEFAULT_COVER_IMAGE
    duration: int = 0
    featured: bool = False
    sort_order: int = 0
    active: bool = True
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: PracticeModel) -> "StoredPractice":
        return cls(
            id=model.id,
            title=model.title,
            description=model.description,
            category=model.category,
            audio_object=model.audio_object,
            cover_image=model.cover_image or DEFAULT_COVER_IMAGE,
            duration=model.duration or 0,
            featured=bool(model.featured),
            sort_order=model.sort_order or 0,
            active=bool(model.active),
            created_at=model.created_at,
        )


@dataclass
class StoredPracticeRecord:
    """Practice record joined with the practice's title and category."""

    id: str
    user_id: str
    practice_id: str
    event: str
    duration: int
    created_at: datetime
    practice_title: Optional[str] = None
    practice_category: Optional[str] = None


class PracticeRepository:
    """Repository for practices, practice records and favorites."""

    def __init__(self, database: Database):
        self.db = database

    # -------------------------------------------------------------------------
    # Catalogue
    # -------------------------------------------------------------------------

    def create(self, title: str, description: str, **fields) -> StoredPractice:
        with self.db.get_session() as session:
            practice = PracticeModel(
                id=str(uuid.uuid4()),
                title=title,
                description=description,
                **{k: v for k, v in fields.items() if v is not None and hasattr(PracticeModel, k)},
            )
            session.add(practice)
            session.commit()
            session.refresh(practice)

            logger.info(f"Practice created: '{title}' ({practice.category})")
            return StoredPractice.from_model(practice)

    def get(self, practice_id: str) -> Optional[StoredPractice]:
        with self.db.get_session() as session:
            practice = session.get(PracticeModel, practice_id)
            return StoredPractice.from_model(practice) if practice else None

    def update(self, practice_id: str, **updates) -> Optional[StoredPractice]:
        with self.db.get_session() as session:
            practice = session.get(PracticeModel, practice_id)
            if not practice:
                return None

            for key, value in updates.items():
                if value is None or key == "id" or not hasattr(practice, key):
                    continue
                setattr(practice, key, value)

            session.commit()
            session.refresh(practice)
            return StoredPractice.from_model(practice)

    def delete(self, practice_id: str) -> Optional[StoredPractice]:
        """Delete a practice, returning its last state so media can be removed."""
        with self.db.get_session() as session:
            practice = session.get(PracticeModel, practice_id)
            if not practice:
                return None
            stored = StoredPractice.from_model(practice)
            session.delete(practice)
            session.commit()
            logger.info(f"Practice deleted: {practice_id}")
            return stored

    def toggle_active(self, practice_id: str) -> Optional[StoredPractice]:
        with self.db.get_session() as session:
            practice = session.get(PracticeModel, practice_id)
            if not practice:
                return None
            practice.active = not practice.active
            session.commit()
            session.refresh(practice)
            return StoredPractice.from_model(practice)

    def set_media(
        self,
        practice_id: str,
        field_name: str,
        object_name: str,
    ) -> Optional[tuple[StoredPractice, Optional[str]]]:
        """
        Replace ``audio_object`` or ``cover_image``.

        Returns:
            (updated practice, previous object name)
        """
        with self.db.get_session() as session:
            practice = session.get(PracticeModel, practice_id)
            if not practice:
                return None
            previous = getattr(practice, field_name)
            setattr(practice, field_name, object_name)
            session.commit()
            session.refresh(practice)
            return StoredPractice.from_model(practice), previous

    def list_practices(
        self,
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        search: Optional[str] = None,
        active_only: bool = True,
    ) -> tuple[list[StoredPractice], int]:
        """
        List practices ordered by ``sort_order`` then newest.

        Returns:
            (List of StoredPractices, total_count)
        """
        offset = (page - 1) * limit

        with self.db.get_session() as session:
            query = session.query(PracticeModel)

            if active_only:
                query = query.filter(PracticeModel.active == True)  # noqa: E712
            if category:
                query = query.filter(PracticeModel.category == category)
            if featured is not None:
                query = query.filter(PracticeModel.featured == featured)
            if search:
                pattern = f"%{search}%"
                query = query.filter(
                    or_(PracticeModel.title.ilike(pattern), PracticeModel.description.ilike(pattern))
                )

            total = query.count()
            practices = (
                query.order_by(PracticeModel.sort_order.asc(), PracticeModel.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [StoredPractice.from_model(p) for p in practices], total

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def add_record(
        self,
        user_id: str,
        practice_id: str,
        event: PracticeEvent,
        duration: int = 0,
    ) -> StoredPracticeRecord:
        with self.db.get_session() as session:
            record = PracticeRecordModel(
                id=str(uuid.uuid4()),
                user_id=user_id,
                practice_id=practice_id,
                event=event.value,
                duration=duration or 0,
            )
            session.add(record)
            session.commit()
            session.refresh(record)

            logger.info(f"Practice {event.value} recorded: user={user_id} practice={practice_id}")
            return StoredPracticeRecord(
                id=record.id,
                user_id=record.user_id,
                practice_id=record.practice_id,
                event=record.event,
                duration=record.duration,
                created_at=record.created_at,
            )

    def _joined_records(self, session):
        return session.query(
            PracticeRecordModel,
            PracticeModel.title,
            PracticeModel.category,
        ).join(PracticeModel, PracticeModel.id == PracticeRecordModel.practice_id)

    @staticmethod
    def _to_stored(row) -> StoredPracticeRecord:
        record, title, category = row
        return StoredPracticeRecord(
            id=record.id,
            user_id=record.user_id,
            practice_id=record.practice_id,
            event=record.event,
            duration=record.duration or 0,
            created_at=record.created_at,
            practice_title=title,
            practice_category=category,
        )

    def list_records(
        self,
        user_id: Optional[str] = None,
        page: int = 1,
        limit: int = 30,
        event: Optional[PracticeEvent] = None,
    ) -> tuple[list[StoredPracticeRecord], int]:
        """Records newest first, optionally for one user and event type."""
        offset = (page - 1) * limit
        with self.db.get_session() as session:
            query = self._joined_records(session)
            if user_id:
                query = query.filter(PracticeRecordModel.user_id == user_id)
            if event:
                query = query.filter(PracticeRecordModel.event == event.value)

            total = query.count()
            rows = (
                query.order_by(PracticeRecordModel.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [self._to_stored(r) for r in rows], total

    def completions(self, user_id: str) -> list[StoredPracticeRecord]:
        """Every completion of a user, newest first."""
        records, _ = self.list_records(
            user_id=user_id, page=1, limit=1_000_000, event=PracticeEvent.COMPLETION
        )
        return records

    def count_records(
        self,
        user_id: Optional[str] = None,
        event: Optional[PracticeEvent] = None,
    ) -> int:
        with self.db.get_session() as session:
            query = session.query(func.count(PracticeRecordModel.id))
            if user_id:
                query = query.filter(PracticeRecordModel.user_id == user_id)
            if event:
                query = query.filter(PracticeRecordModel.event == event.value)
            return query.scalar() or 0

    def total_duration(self, user_id: str, event: PracticeEvent = PracticeEvent.COMPLETION) -> int:
        """Summed seconds over a user's records of one event type."""
        with self.db.get_session() as session:
            total = session.query(func.sum(PracticeRecordModel.duration)).filter(
                PracticeRecordModel.user_id == user_id,
                PracticeRecordModel.event == event.value,
            ).scalar()
            return int(total or 0)

    def first_records(
        self,
        user_id: str,
        n: int = 1,
        event: PracticeEvent = PracticeEvent.COMPLETION,
    ) -> list[datetime]:
        with self.db.get_session() as session:
            rows = (
                session.query(PracticeRecordModel.created_at)
                .filter(
                    PracticeRecordModel.user_id == user_id,
                    PracticeRecordModel.event == event.value,
                )
                .order_by(PracticeRecordModel.created_at.asc())
                .limit(n)
                .all()
            )
            return [row[0] for row in rows]

    def records_between(
        self,
        start: datetime,
        end: datetime,
        user_id: Optional[str] = None,
        event: PracticeEvent = PracticeEvent.COMPLETION,
    ) -> list[tuple[datetime, int]]:
        """(created_at, duration) pairs in a window."""
        with self.db.get_session() as session:
            query = session.query(PracticeRecordModel.created_at, PracticeRecordModel.duration).filter(
                PracticeRecordModel.created_at >= start,
                PracticeRecordModel.created_at <= end,
                PracticeRecordModel.event == event.value,
            )
            if user_id:
                query = query.filter(PracticeRecordModel.user_id == user_id)
            return [(created_at, duration or 0) for created_at, duration in query.all()]

    def active_users_since(self, since: datetime) -> int:
        """Distinct users with any practice record since ``since``."""
        with self.db.get_session() as session:
            return session.query(func.count(func.distinct(PracticeRecordModel.user_id))).filter(
                PracticeRecordModel.created_at >= since,
            ).scalar() or 0

    def completed_practice_ids(self, user_id: str, practice_ids: list[str]) -> set[str]:
        if not practice_ids:
            return set()
        with self.db.get_session() as session:
            rows = session.query(PracticeRecordModel.practice_id).filter(
                PracticeRecordModel.user_id == user_id,
                PracticeRecordModel.event == PracticeEvent.COMPLETION.value,
                PracticeRecordModel.practice_id.in_(practice_ids),
            ).distinct().all()
            return {row[0] for row in rows}

    # -------------------------------------------------------------------------
    # Favorites
    # -------------------------------------------------------------------------

    def toggle_favorite(self, user_id: str, practice_id: str) -> bool:
        """Flip the favorite flag; returns the new state."""
        with self.db.get_session() as session:
            favorite = session.get(PracticeFavoriteModel, (user_id, practice_id))
            if favorite:
                session.delete(favorite)
                session.commit()
                return False

            session.add(PracticeFavoriteModel(user_id=user_id, practice_id=practice_id))
            session.commit()
            return True

    def favorite_practice_ids(self, user_id: str, practice_ids: list[str]) -> set[str]:
        if not practice_ids:
            return set()
        with self.db.get_session() as session:
            rows = session.query(PracticeFavoriteModel.practice_id).filter(
                PracticeFavoriteModel.user_id == user_id,
                PracticeFavoriteModel.practice_id.in_(practice_ids),
            ).all()
            return {row[0] for row in rows}
