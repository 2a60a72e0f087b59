"""
Content Repository for Mente Merecedora

Curated library items (articles, videos, ebooks, galleries) managed by
admins and browsed by everyone.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from loguru import logger
from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    Boolean,
    JSON,
    ForeignKey,
    Index,
)

from .database import Database
from .models import Base


class ContentType(str, Enum):
    ARTICLE = "article"
    VIDEO = "video"
    EBOOK = "ebook"
    GALLERY = "gallery"


class ContentCategory(str, Enum):
    MANIFESTACAO = "manifestacao"
    PRATICAS = "praticas"
    DIARIO = "diario"
    DESENVOLVIMENTO = "desenvolvimento"


class ContentStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ContentModel(Base):
    """SQLAlchemy model for library content."""

    __tablename__ = "contents"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))

    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=False)
    type = Column(String(20), nullable=False)
    category = Column(String(30), nullable=False)
    image_url = Column(String(500), nullable=False)
    content_url = Column(String(500), default="")
    featured = Column(Boolean, default=False)
    tags = Column(JSON, default=list)
    status = Column(String(12), default=ContentStatus.PUBLISHED.value)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_contents_filters", "category", "type", "featured", "status"),
    )


@dataclass
class StoredContent:
    id: str
    title: str
    description: str
    type: str
    category: str
    image_url: str
    content_url: str = ""
    featured: bool = False
    tags: list[str] = field(default_factory=list)
    status: str = ContentStatus.PUBLISHED.value
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: ContentModel) -> "StoredContent":
        return cls(
            id=model.id,
            title=model.title,
            description=model.description,
            type=model.type,
            category=model.category,
            image_url=model.image_url,
            content_url=model.content_url or "",
            featured=bool(model.featured),
            tags=list(model.tags or []),
            status=model.status,
            user_id=model.user_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class ContentRepository:
    """Repository for library content."""

    def __init__(self, database: Database):
        self.db = database

    def create(self, user_id: str, **fields) -> StoredContent:
        with self.db.get_session() as session:
            content = ContentModel(
                id=str(uuid.uuid4()),
                user_id=user_id,
                **{k: v for k, v in fields.items() if v is not None and hasattr(ContentModel, k)},
            )
            session.add(content)
            session.commit()
            session.refresh(content)
            logger.info(f"Content created: '{content.title}' ({content.type})")
            return StoredContent.from_model(content)

    def get(self, content_id: str) -> Optional[StoredContent]:
        with self.db.get_session() as session:
            content = session.get(ContentModel, content_id)
            return StoredContent.from_model(content) if content else None

    def update(self, content_id: str, **updates) -> Optional[StoredContent]:
        with self.db.get_session() as session:
            content = session.get(ContentModel, content_id)
            if not content:
                return None
            for key, value in updates.items():
                if value is None or key in ("id", "user_id") or not hasattr(content, key):
                    continue
                setattr(content, key, value)
            content.updated_at = datetime.utcnow()
            session.commit()
            session.refresh(content)
            return StoredContent.from_model(content)

    def delete(self, content_id: str) -> bool:
        with self.db.get_session() as session:
            content = session.get(ContentModel, content_id)
            if not content:
                return False
            session.delete(content)
            session.commit()
            return True

    def list_contents(
        self,
        page: int = 1,
        limit: int = 20,
        category: Optional[str] = None,
        type: Optional[str] = None,
        featured: Optional[bool] = None,
        status: Optional[str] = ContentStatus.PUBLISHED.value,
        search: Optional[str] = None,
    ) -> tuple[list[StoredContent], int]:
        """
        List content, newest first.

        ``search`` matches title, description and tags.
        """
        offset = (page - 1) * limit

        with self.db.get_session() as session:
            query = session.query(ContentModel)

            if status:
                query = query.filter(ContentModel.status == status)
            if category:
                query = query.filter(ContentModel.category == category)
            if type:
                query = query.filter(ContentModel.type == type)
            if featured is not None:
                query = query.filter(ContentModel.featured == featured)

            contents = query.order_by(ContentModel.created_at.desc()).all()

            if search:
                terms = [t for t in search.lower().split() if t]
                contents = [c for c in contents if _matches(c, terms)]

            total = len(contents)
            page_items = contents[offset:offset + limit]
            return [StoredContent.from_model(c) for c in page_items], total


def _matches(content: ContentModel, terms: list[str]) -> bool:
    haystack = " ".join(
        [content.title or "", content.description or "", " ".join(content.tags or [])]
    ).lower()
    return any(term in haystack for term in terms)
