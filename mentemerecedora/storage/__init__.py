"""
Storage Module for Mente Merecedora

Persistent storage for the portal:
- SQLAlchemy models and repositories (users, diary, manifestation,
  practices, conversations, content)
- Local-disk media store for uploaded images and audio
"""

from mentemerecedora.storage.database import Database
from mentemerecedora.storage.models import Base, User, UserRole, UserStatus
from mentemerecedora.storage.user_repository import UserRepository, StoredUser
from mentemerecedora.storage.diary_repository import DiaryRepository, StoredDiaryEntry
from mentemerecedora.storage.manifestation_repository import (
    ManifestationRepository,
    ManifestationType,
    StoredManifestation,
)
from mentemerecedora.storage.practice_repository import (
    PracticeRepository,
    PracticeCategory,
    PracticeEvent,
    StoredPractice,
    StoredPracticeRecord,
)
from mentemerecedora.storage.conversation_repository import (
    ConversationRepository,
    MessageRole,
    StoredConversation,
    StoredMessage,
)
from mentemerecedora.storage.content_repository import ContentRepository, StoredContent
from mentemerecedora.storage.media_store import MediaStore, StoredObject

__all__ = [
    # Database
    "Database",
    "Base",
    "User",
    "UserRole",
    "UserStatus",
    # Repositories
    "UserRepository",
    "StoredUser",
    "DiaryRepository",
    "StoredDiaryEntry",
    "ManifestationRepository",
    "ManifestationType",
    "StoredManifestation",
    "PracticeRepository",
    "PracticeCategory",
    "PracticeEvent",
    "StoredPractice",
    "StoredPracticeRecord",
    "ConversationRepository",
    "MessageRole",
    "StoredConversation",
    "StoredMessage",
    "ContentRepository",
    "StoredContent",
    # Media
    "MediaStore",
    "StoredObject",
]
