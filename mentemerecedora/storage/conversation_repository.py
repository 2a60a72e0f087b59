"""
Conversation Repository for Mente Merecedora

Persistence for LUZ IA chat sessions:
- At most one active conversation per user
- Ordered, role-tagged messages with the prompt type used
- Aggregates for the admin assistant dashboard
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
    Integer,
    Text,
    DateTime,
    Boolean,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import relationship, selectinload

from .database import Database
from .models import Base


class MessageRole(str, Enum):
    """Role in conversation."""
    USER = "user"
    ASSISTANT = "assistant"


DEFAULT_PROMPT_TYPE = "default"


def default_conversation_title(now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    return f"Conversa {now.strftime('%d/%m/%Y')}"


class ConversationModel(Base):
    """SQLAlchemy model for conversations."""

    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    messages = relationship(
        "MessageModel",
        cascade="all, delete-orphan",
        order_by="MessageModel.position",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_conversations_user_active", "user_id", "active"),
    )


class MessageModel(Base):
    __tablename__ = "conversation_messages"

    id = Column(String(36), primary_key=True)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(String(10), nullable=False)
    content = Column(Text, nullable=False)
    prompt_type = Column(String(50), default=DEFAULT_PROMPT_TYPE)
    timestamp = Column(DateTime, default=datetime.utcnow)
    position = Column(Integer, default=0)


@dataclass
class StoredMessage:
    id: str
    role: str
    content: str
    prompt_type: str = DEFAULT_PROMPT_TYPE
    timestamp: Optional[datetime] = None


@dataclass
class StoredConversation:
    """Data class for conversation transfer."""

    id: str
    user_id: str
    title: str
    active: bool
    messages: list[StoredMessage] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def history(self, max_turns: int = 10) -> list[tuple[str, str]]:
        """Last messages as (role, content) tuples for prompt building."""
        return [(m.role, m.content) for m in self.messages[-max_turns:]]

    @classmethod
    def from_model(cls, model: ConversationModel) -> "StoredConversation":
        return cls(
            id=model.id,
            user_id=model.user_id,
            title=model.title,
            active=bool(model.active),
            messages=[
                StoredMessage(
                    id=m.id,
                    role=m.role,
                    content=m.content,
                    prompt_type=m.prompt_type or DEFAULT_PROMPT_TYPE,
                    timestamp=m.timestamp,
                )
                for m in model.messages
            ],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass
class ConversationSummary:
    """Admin list row."""

    id: str
    user_id: str
    user_name: Optional[str]
    created_at: datetime
    message_count: int
    topic: Optional[str]
    preview: Optional[str]


class ConversationRepository:
    """Repository for conversations and messages."""

    def __init__(self, database: Database):
        self.db = database

    def _load(self, session, conversation_id: str) -> Optional[ConversationModel]:
        return (
            session.query(ConversationModel)
            .options(selectinload(ConversationModel.messages))
            .filter(ConversationModel.id == conversation_id)
            .first()
        )

    def create(
        self,
        user_id: str,
        title: Optional[str] = None,
        deactivate_others: bool = True,
    ) -> StoredConversation:
        """
        Create a new active conversation.

        Args:
            user_id: Owner
            title: Title (defaults to "Conversa dd/mm/yyyy")
            deactivate_others: End the user's other conversations first
        """
        with self.db.get_session() as session:
            if deactivate_others:
                session.query(ConversationModel).filter(
                    ConversationModel.user_id == user_id,
                    ConversationModel.active == True,  # noqa: E712
                ).update({ConversationModel.active: False}, synchronize_session=False)

            conversation = ConversationModel(
                id=str(uuid.uuid4()),
                user_id=user_id,
                title=title or default_conversation_title(),
                active=True,
            )
            session.add(conversation)
            session.commit()

            logger.info(f"Conversation created for user {user_id}: {conversation.id}")
            return StoredConversation.from_model(self._load(session, conversation.id))

    def get(self, conversation_id: str) -> Optional[StoredConversation]:
        with self.db.get_session() as session:
            model = self._load(session, conversation_id)
            return StoredConversation.from_model(model) if model else None

    def get_active(self, user_id: str) -> Optional[StoredConversation]:
        with self.db.get_session() as session:
            model = (
                session.query(ConversationModel)
                .options(selectinload(ConversationModel.messages))
                .filter(
                    ConversationModel.user_id == user_id,
                    ConversationModel.active == True,  # noqa: E712
                )
                .order_by(ConversationModel.updated_at.desc())
                .first()
            )
            return StoredConversation.from_model(model) if model else None

    def end_active(self, user_id: str) -> Optional[StoredConversation]:
        """Deactivate the user's active conversation, if any."""
        with self.db.get_session() as session:
            model = (
                session.query(ConversationModel)
                .filter(
                    ConversationModel.user_id == user_id,
                    ConversationModel.active == True,  # noqa: E712
                )
                .order_by(ConversationModel.updated_at.desc())
                .first()
            )
            if not model:
                return None
            model.active = False
            session.commit()
            return StoredConversation.from_model(self._load(session, model.id))

    def list_for_user(self, user_id: str) -> list[StoredConversation]:
        """A user's conversations, newest first."""
        with self.db.get_session() as session:
            models = (
                session.query(ConversationModel)
                .options(selectinload(ConversationModel.messages))
                .filter(ConversationModel.user_id == user_id)
                .order_by(ConversationModel.created_at.desc())
                .all()
            )
            return [StoredConversation.from_model(m) for m in models]

    def delete(self, conversation_id: str) -> bool:
        with self.db.get_session() as session:
            model = self._load(session, conversation_id)
            if not model:
                return False
            session.delete(model)
            session.commit()
            return True

    def add_messages(
        self,
        conversation_id: str,
        messages: list[dict],
    ) -> Optional[StoredConversation]:
        """
        Append messages atomically.

        Args:
            messages: [{role, content, prompt_type?, timestamp?}]
        """
        with self.db.get_session() as session:
            model = self._load(session, conversation_id)
            if not model:
                return None

            position = len(model.messages)
            for message in messages:
                role = message["role"]
                model.messages.append(
                    MessageModel(
                        id=str(uuid.uuid4()),
                        role=role.value if isinstance(role, MessageRole) else role,
                        content=message["content"],
                        prompt_type=message.get("prompt_type") or DEFAULT_PROMPT_TYPE,
                        timestamp=message.get("timestamp") or datetime.utcnow(),
                        position=position,
                    )
                )
                position += 1

            model.updated_at = datetime.utcnow()
            session.commit()
            session.expire(model)
            return StoredConversation.from_model(self._load(session, conversation_id))

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    def count(self, user_id: Optional[str] = None) -> int:
        with self.db.get_session() as session:
            query = session.query(func.count(ConversationModel.id))
            if user_id:
                query = query.filter(ConversationModel.user_id == user_id)
            return query.scalar() or 0

    def count_messages(self) -> int:
        with self.db.get_session() as session:
            return session.query(func.count(MessageModel.id)).scalar() or 0

    def prompt_type_counts(self) -> dict[str, int]:
        with self.db.get_session() as session:
            rows = (
                session.query(MessageModel.prompt_type, func.count(MessageModel.id))
                .filter(MessageModel.prompt_type.isnot(None))
                .group_by(MessageModel.prompt_type)
                .all()
            )
            return {prompt_type: count for prompt_type, count in rows}

    def top_users(self, limit: int = 3) -> list[tuple[str, int]]:
        """(user_id, conversation count) for the most active users."""
        with self.db.get_session() as session:
            count_col = func.count(ConversationModel.id)
            rows = (
                session.query(ConversationModel.user_id, count_col)
                .group_by(ConversationModel.user_id)
                .order_by(count_col.desc())
                .limit(limit)
                .all()
            )
            return [(user_id, count) for user_id, count in rows]

    def recent_summaries(self, limit: int = 20) -> list[ConversationSummary]:
        """Latest conversations across users with a preview of the first question."""
        from .models import User

        with self.db.get_session() as session:
            rows = (
                session.query(ConversationModel, User.name)
                .options(selectinload(ConversationModel.messages))
                .outerjoin(User, User.id == ConversationModel.user_id)
                .order_by(ConversationModel.created_at.desc())
                .limit(limit)
                .all()
            )

            summaries = []
            for model, user_name in rows:
                first_user_message = next(
                    (m for m in model.messages if m.role == MessageRole.USER.value), None
                )
                topic = next((m.prompt_type for m in model.messages if m.prompt_type), None)
                preview = None
                if first_user_message:
                    preview = first_user_message.content[:50] + "..."

                summaries.append(
                    ConversationSummary(
                        id=model.id,
                        user_id=model.user_id,
                        user_name=user_name,
                        created_at=model.created_at,
                        message_count=len(model.messages),
                        topic=topic,
                        preview=preview,
                    )
                )
            return summaries

    def recent(self, user_id: str, limit: int = 10) -> list[StoredConversation]:
        """A user's conversations by last update."""
        with self.db.get_session() as session:
            models = (
                session.query(ConversationModel)
                .filter(ConversationModel.user_id == user_id)
                .order_by(ConversationModel.updated_at.desc())
                .limit(limit)
                .all()
            )
            return [
                StoredConversation(
                    id=m.id,
                    user_id=m.user_id,
                    title=m.title,
                    active=bool(m.active),
                    created_at=m.created_at,
                    updated_at=m.updated_at,
                )
                for m in models
            ]

    def first_created(self, user_id: str, n: int = 1) -> list[datetime]:
        with self.db.get_session() as session:
            rows = (
                session.query(ConversationModel.created_at)
                .filter(ConversationModel.user_id == user_id)
                .order_by(ConversationModel.created_at.asc())
                .limit(n)
                .all()
            )
            return [row[0] for row in rows]

    def created_between(
        self,
        start: datetime,
        end: datetime,
        user_id: Optional[str] = None,
    ) -> list[datetime]:
        with self.db.get_session() as session:
            query = session.query(ConversationModel.created_at).filter(
                ConversationModel.created_at >= start,
                ConversationModel.created_at <= end,
            )
            if user_id:
                query = query.filter(ConversationModel.user_id == user_id)
            return [row[0] for row in query.all()]
