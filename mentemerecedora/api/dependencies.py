"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Database and repositories
- Media store and the LUZ IA service
- Authentication (current user, admin)
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from loguru import logger

from ..security import decode_access_token
from ..storage.database import Database
from ..storage.models import UserStatus
from ..storage.user_repository import StoredUser
from .middleware import ForbiddenError, UnauthorizedError


# =============================================================================
# Configuration
# =============================================================================

DEV_JWT_SECRET = "mente-merecedora-dev-secret-change-me"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./mentemerecedora.db"
    database_echo: bool = False

    # Auth
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 30

    # Storage
    media_root: str = "./data/media"
    knowledge_base_path: str = "./data/transcricoes"

    # LLM
    llm_provider: str = "openai"  # openai, anthropic, google, mock
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2000
    llm_max_retries: int = 2
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    google_api_key: Optional[str] = None

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_requests_per_minute: int = 120

    # File uploads
    max_upload_size_mb: int = 10
    max_audio_size_mb: int = 25
    max_profile_image_mb: int = 5

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def llm_api_key(self) -> Optional[str]:
        """API key for the configured provider."""
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
        }.get(self.llm_provider)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=_env_bool("DATABASE_ECHO", "false"),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            jwt_expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", cls.jwt_expire_minutes)),
            media_root=os.getenv("MEDIA_ROOT", cls.media_root),
            knowledge_base_path=os.getenv("KNOWLEDGE_BASE_PATH", cls.knowledge_base_path),
            llm_provider=os.getenv("LLM_PROVIDER", cls.llm_provider).lower(),
            llm_model=os.getenv("LLM_MODEL", cls.llm_model),
            llm_temperature=float(os.getenv("LLM_TEMPERATURE", cls.llm_temperature)),
            llm_max_tokens=int(os.getenv("LLM_MAX_TOKENS", cls.llm_max_tokens)),
            llm_max_retries=int(os.getenv("LLM_MAX_RETRIES", cls.llm_max_retries)),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            google_api_key=os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"),
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", "true"),
            rate_limit_requests_per_minute=int(os.getenv("RATE_LIMIT_RPM", cls.rate_limit_requests_per_minute)),
            max_upload_size_mb=int(os.getenv("MAX_UPLOAD_SIZE_MB", cls.max_upload_size_mb)),
            max_audio_size_mb=int(os.getenv("MAX_AUDIO_SIZE_MB", cls.max_audio_size_mb)),
            max_profile_image_mb=int(os.getenv("MAX_PROFILE_IMAGE_MB", cls.max_profile_image_mb)),
            environment=os.getenv("MENTE_ENV", cls.environment),
            debug=_env_bool("DEBUG", "true"),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Container
# =============================================================================

class ServiceContainer:
    """
    Container for lazily created repositories and services.

    One container per application, stored on ``app.state.services``.
    """

    def __init__(self, settings: Settings, database: Optional[Database] = None):
        self.settings = settings
        self.database = database or Database(settings.database_url, echo=settings.database_echo)
        self._user_repository = None
        self._diary_repository = None
        self._manifestation_repository = None
        self._practice_repository = None
        self._conversation_repository = None
        self._content_repository = None
        self._media_store = None
        self._prompts = None
        self._knowledge_base = None
        self._assistant = None

    def startup(self) -> None:
        """Create tables and index the knowledge base."""
        self.database.create_tables()
        self.knowledge_base.reload()
        if self.settings.jwt_secret == DEV_JWT_SECRET and self.settings.is_production:
            logger.warning("JWT_SECRET is using the development default in production")

    def shutdown(self) -> None:
        self.database.dispose()

    @property
    def user_repository(self):
        if self._user_repository is None:
            from ..storage.user_repository import UserRepository
            self._user_repository = UserRepository(self.database)
        return self._user_repository

    @property
    def diary_repository(self):
        if self._diary_repository is None:
            from ..storage.diary_repository import DiaryRepository
            self._diary_repository = DiaryRepository(self.database)
        return self._diary_repository

    @property
    def manifestation_repository(self):
        if self._manifestation_repository is None:
            from ..storage.manifestation_repository import ManifestationRepository
            self._manifestation_repository = ManifestationRepository(self.database)
        return self._manifestation_repository

    @property
    def practice_repository(self):
        if self._practice_repository is None:
            from ..storage.practice_repository import PracticeRepository
            self._practice_repository = PracticeRepository(self.database)
        return self._practice_repository

    @property
    def conversation_repository(self):
        if self._conversation_repository is None:
            from ..storage.conversation_repository import ConversationRepository
            self._conversation_repository = ConversationRepository(self.database)
        return self._conversation_repository

    @property
    def content_repository(self):
        if self._content_repository is None:
            from ..storage.content_repository import ContentRepository
            self._content_repository = ContentRepository(self.database)
        return self._content_repository

    @property
    def media_store(self):
        if self._media_store is None:
            from ..storage.media_store import MediaStore
            self._media_store = MediaStore(self.settings.media_root)
        return self._media_store

    @property
    def prompts(self):
        if self._prompts is None:
            from ..assistant.prompts import PromptTemplates
            self._prompts = PromptTemplates()
        return self._prompts

    @property
    def knowledge_base(self):
        if self._knowledge_base is None:
            from ..assistant.knowledge import KnowledgeBase
            self._knowledge_base = KnowledgeBase(self.settings.knowledge_base_path)
        return self._knowledge_base

    @property
    def assistant(self):
        """Get LUZ IA service instance."""
        if self._assistant is None:
            from ..assistant.service import AssistantSettings, LuzIAService

            assistant_settings = AssistantSettings(
                provider=self.settings.llm_provider,
                model=self.settings.llm_model,
                max_tokens=self.settings.llm_max_tokens,
                temperature=self.settings.llm_temperature,
                api_key=self.settings.llm_api_key,
            )
            self._assistant = LuzIAService(
                settings=assistant_settings,
                prompts=self.prompts,
                knowledge_base=self.knowledge_base,
                conversations=self.conversation_repository,
                max_retries=self.settings.llm_max_retries,
            )
        return self._assistant


def init_services(settings: Settings) -> ServiceContainer:
    """Create the service container for an application."""
    return ServiceContainer(settings)


def get_service_container(request: Request) -> ServiceContainer:
    """Service container of the running application."""
    return request.app.state.services


# =============================================================================
# Individual Service Dependencies
# =============================================================================

def get_app_settings(container: ServiceContainer = Depends(get_service_container)) -> Settings:
    return container.settings


def get_user_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.user_repository


def get_diary_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.diary_repository


def get_manifestation_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.manifestation_repository


def get_practice_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.practice_repository


def get_conversation_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.conversation_repository


def get_content_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.content_repository


def get_media_store(container: ServiceContainer = Depends(get_service_container)):
    return container.media_store


def get_knowledge_base(container: ServiceContainer = Depends(get_service_container)):
    return container.knowledge_base


def get_assistant(container: ServiceContainer = Depends(get_service_container)):
    """Dependency for the LUZ IA service."""
    return container.assistant


# =============================================================================
# Authentication Dependencies
# =============================================================================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    container: ServiceContainer = Depends(get_service_container),
) -> StoredUser:
    """
    Authenticated, approved user for the bearer token.

    Raises:
        UnauthorizedError: Missing, invalid or expired token, or unknown user
        ForbiddenError: Account not approved
    """
    if not token:
        raise UnauthorizedError()

    settings = container.settings
    payload = decode_access_token(token, settings.jwt_secret, settings.jwt_algorithm)
    if not payload or payload.get("scope") == "media" or not payload.get("sub"):
        raise UnauthorizedError("Token inválido ou expirado")

    user = container.user_repository.get(payload["sub"])
    if user is None:
        raise UnauthorizedError("Usuário não encontrado")

    if user.status == UserStatus.PENDING.value:
        raise ForbiddenError("Sua conta está aguardando aprovação do administrador")
    if user.status != UserStatus.APPROVED.value:
        raise ForbiddenError("Sua conta está desativada")

    return user


def require_admin(current_user: StoredUser = Depends(get_current_user)) -> StoredUser:
    """Require an admin account."""
    if not current_user.is_admin:
        raise ForbiddenError(f"O perfil {current_user.role} não tem permissão para acessar esta rota")
    return current_user
