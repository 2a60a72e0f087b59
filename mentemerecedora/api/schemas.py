"""
API Schemas for Mente Merecedora

Pydantic models for request validation and response serialization:
- Envelope models (success flag, data, pagination)
- Auth and user models
- Diary, manifestation and practice models
- LUZ IA and admin models
- Content models
"""

import json
import datetime as dt
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from ..storage.content_repository import ContentCategory, ContentStatus, ContentType
from ..storage.conversation_repository import MessageRole
from ..storage.manifestation_repository import ManifestationType
from ..storage.media_store import PUBLIC_PREFIX
from ..storage.models import DEFAULT_PROFILE_IMAGE, UserRole, UserStatus
from ..storage.practice_repository import PracticeCategory

T = TypeVar("T")


# =============================================================================
# Envelopes
# =============================================================================

class Pagination(BaseModel):
    page: int
    limit: int
    pages: int
    next: Optional[int] = None
    prev: Optional[int] = None

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        pages = max(1, -(-total // limit)) if limit else 1
        return cls(
            page=page,
            limit=limit,
            pages=pages,
            next=page + 1 if page * limit < total else None,
            prev=page - 1 if page > 1 else None,
        )


class DataResponse(BaseModel, Generic[T]):
    """Single payload envelope."""

    success: bool = True
    message: Optional[str] = None
    data: T


class ListResponse(BaseModel, Generic[T]):
    """List payload envelope."""

    success: bool = True
    count: int
    total: Optional[int] = None
    pagination: Optional[Pagination] = None
    data: list[T]


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    data: Optional[dict] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, str]


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def media_url(object_name: Optional[str]) -> Optional[str]:
    """Public URL of a stored object; absolute URLs pass through."""
    if not object_name:
        return None
    if object_name.startswith(("http://", "https://", "/")):
        return object_name
    return f"{PUBLIC_PREFIX}/{object_name}"


# =============================================================================
# Auth / Users
# =============================================================================

class RegisterRequest(BaseModel):
    """Account registration request."""

    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)

    _strip_name = field_validator("name", mode="before")(_strip)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Maria Souza",
                "email": "maria@example.com",
                "password": "segredo123",
            }
        }
    )


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UpdateDetailsRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    bio: Optional[str] = Field(None, max_length=500)


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=6)


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)


class UserResponse(BaseModel):
    """Public user representation."""

    id: str
    name: str
    email: str
    role: UserRole
    status: UserStatus
    profile_image: str = DEFAULT_PROFILE_IMAGE
    bio: str = ""
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def profile_image_url(self) -> Optional[str]:
        if self.profile_image == DEFAULT_PROFILE_IMAGE:
            return None
        return media_url(self.profile_image)


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserResponse


class TokenResponse(BaseModel):
    """OAuth2 token response."""

    access_token: str
    token_type: str = "bearer"


class AdminUserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.APPROVED
    bio: str = Field("", max_length=500)


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    bio: Optional[str] = Field(None, max_length=500)
    password: Optional[str] = Field(None, min_length=6)


# =============================================================================
# Diary
# =============================================================================

def _to_day(value: Any) -> Any:
    """Accept dates, datetimes and ISO datetime strings as a calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        return value[:10]
    return value


class DiaryEntryCreate(BaseModel):
    """Diary entry creation request."""

    date: Optional[dt.date] = None
    emotional_state: str = Field(..., min_length=1)
    predominant_thoughts: str = Field(..., min_length=1)
    small_wins: str = Field(..., min_length=1)
    next_day_goals: str = Field(..., min_length=1)
    gratitude: str = ""
    insights: str = ""
    emotional_rating: int = Field(3, ge=1, le=5)

    _normalize_date = field_validator("date", mode="before")(_to_day)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "date": "2024-05-10",
                "emotional_state": "Tranquila e confiante",
                "predominant_thoughts": "Estou no caminho certo",
                "small_wins": "Meditei 20 minutos",
                "next_day_goals": "Praticar a visualização",
                "gratitude": "Pela minha família",
                "emotional_rating": 4,
            }
        }
    )


class DiaryEntryUpdate(BaseModel):
    date: Optional[dt.date] = None
    emotional_state: Optional[str] = Field(None, min_length=1)
    predominant_thoughts: Optional[str] = Field(None, min_length=1)
    small_wins: Optional[str] = Field(None, min_length=1)
    next_day_goals: Optional[str] = Field(None, min_length=1)
    gratitude: Optional[str] = None
    insights: Optional[str] = None
    emotional_rating: Optional[int] = Field(None, ge=1, le=5)

    _normalize_date = field_validator("date", mode="before")(_to_day)


class DiaryEntryResponse(BaseModel):
    id: str
    user_id: str
    date: dt.date
    emotional_state: str
    predominant_thoughts: str
    small_wins: str
    next_day_goals: str
    gratitude: str = ""
    insights: str = ""
    emotional_rating: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DiaryStatsResponse(BaseModel):
    total_entries: int
    current_streak: int
    emotional_progress: int
    entries_last_30_days: int
    consistency_rate: int


# =============================================================================
# Manifestation
# =============================================================================

def normalize_keywords(value: Any) -> list[str]:
    """
    Normalize symbol keywords to a trimmed, de-duplicated list.

    Accepts a list, a JSON-encoded list or a comma-separated string.
    """
    if value is None:
        return []

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        items: Any = None
        if text.startswith("["):
            try:
                items = json.loads(text)
            except json.JSONDecodeError:
                items = None
        if not isinstance(items, list):
            items = text.strip("[]").split(",")
        value = items

    if not isinstance(value, (list, tuple, set)):
        raise ValueError("keywords must be a list or a comma-separated string")

    seen: list[str] = []
    for item in value:
        keyword = str(item).strip().strip('"').strip()
        if keyword and keyword not in seen:
            seen.append(keyword)
    return seen


class AffirmationIn(BaseModel):
    text: str = Field(..., min_length=1)
    highlighted: bool = False

    _strip_text = field_validator("text", mode="before")(_strip)


class StepIn(BaseModel):
    description: str = Field(..., min_length=1)
    completed: bool = False
    due_date: Optional[datetime] = None


class _ManifestationFields(BaseModel):
    """Fields shared by create and update."""

    description: Optional[str] = Field(None, max_length=500)
    goal: Optional[str] = None
    emotions: Optional[list[str]] = None
    manifestation_date: Optional[datetime] = None
    completed: Optional[bool] = None

    affirmations: Optional[list[AffirmationIn]] = None
    affirmation: Optional[str] = None
    steps: Optional[list[StepIn]] = None

    name: Optional[str] = Field(None, max_length=100)
    meaning: Optional[str] = None
    color: Optional[str] = Field(None, max_length=30)
    keywords: Optional[list[str]] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def _normalize_keywords(cls, value: Any) -> Optional[list[str]]:
        if value is None:
            return None
        return normalize_keywords(value)

    @model_validator(mode="after")
    def _single_affirmation(self):
        # A lone affirmation string becomes one highlighted affirmation
        if self.affirmation and self.affirmation.strip() and not self.affirmations:
            self.affirmations = [AffirmationIn(text=self.affirmation.strip(), highlighted=True)]
        return self

    def storage_fields(self) -> dict:
        """Scalar fields that were explicitly supplied."""
        return self.model_dump(
            exclude_unset=True,
            exclude={"affirmations", "affirmation", "steps", "tipo", "title"},
        )


class ManifestationCreate(_ManifestationFields):
    """Manifestation item creation request."""

    tipo: ManifestationType
    title: str = Field(..., min_length=1, max_length=100)

    @model_validator(mode="before")
    @classmethod
    def _symbol_title(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("title") and data.get("name"):
            data = {**data, "title": data["name"]}
        return data

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "tipo": "simbolo",
                "title": "Chave Dourada",
                "meaning": "Abertura de novos caminhos",
                "color": "#D4AF37",
                "keywords": "abundância, merecimento",
            }
        }
    )


class ManifestationUpdate(_ManifestationFields):
    title: Optional[str] = Field(None, min_length=1, max_length=100)

    def storage_fields(self) -> dict:
        fields = super().storage_fields()
        if self.title is not None:
            fields["title"] = self.title
        return fields


class AffirmationCreate(AffirmationIn):
    pass


class StepCreate(BaseModel):
    description: str = Field(..., min_length=1)
    due_date: Optional[datetime] = None


class StepUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1)
    completed: Optional[bool] = None
    due_date: Optional[datetime] = None


class ImageResponse(BaseModel):
    id: str
    path: str
    description: str = ""

    model_config = ConfigDict(from_attributes=True)


class AffirmationResponse(BaseModel):
    id: str
    text: str
    highlighted: bool

    model_config = ConfigDict(from_attributes=True)


class StepResponse(BaseModel):
    id: str
    description: str
    completed: bool
    due_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ManifestationResponse(BaseModel):
    id: str
    user_id: str
    tipo: ManifestationType
    title: str
    description: str = ""
    goal: str = ""
    emotions: list[str] = Field(default_factory=list)
    manifestation_date: Optional[datetime] = None
    completed: bool = False

    images: list[ImageResponse] = Field(default_factory=list)
    affirmations: list[AffirmationResponse] = Field(default_factory=list)
    steps: list[StepResponse] = Field(default_factory=list)

    name: Optional[str] = None
    meaning: Optional[str] = None
    color: Optional[str] = None
    keywords: list[str] = Field(default_factory=list)
    symbol_path: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Practices
# =============================================================================

class PracticeCreate(BaseModel):
    """Practice creation request (admin)."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    category: PracticeCategory = PracticeCategory.OUTRO
    duration: int = Field(0, ge=0)
    featured: bool = False
    sort_order: int = 0
    active: bool = True

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Meditação do Estado Alpha",
                "description": "Relaxamento guiado para acessar o estado Alpha",
                "category": "alpha",
                "duration": 900,
                "featured": True,
            }
        }
    )


class PracticeUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[PracticeCategory] = None
    duration: Optional[int] = Field(None, ge=0)
    featured: Optional[bool] = None
    sort_order: Optional[int] = None
    active: Optional[bool] = None


class PracticeResponse(BaseModel):
    id: str
    title: str
    description: str
    category: PracticeCategory
    duration: int
    featured: bool
    sort_order: int
    active: bool
    has_audio: bool = False
    cover_image: str
    cover_image_url: Optional[str] = None
    favorite: bool = False
    completed: bool = False
    created_at: Optional[datetime] = None


class CompletePracticeRequest(BaseModel):
    duration: Optional[int] = Field(None, ge=0)


class PracticeRecordResponse(BaseModel):
    id: str
    practice_id: str
    practice_title: Optional[str] = None
    practice_category: Optional[str] = None
    event: str
    duration: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AudioUrlResponse(BaseModel):
    url: str
    expires_in: int


# =============================================================================
# LUZ IA
# =============================================================================

class ChatRequest(BaseModel):
    """LUZ IA chat request."""

    question: str = Field(..., min_length=1, max_length=4000)
    prompt_type: str = "default"

    _strip_question = field_validator("question", mode="before")(_strip)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "question": "Como posso elevar minha vibração financeira?",
                "prompt_type": "financeiro",
            }
        }
    )


class ChatResponse(BaseModel):
    response: str
    conversation_id: str
    prompt_type: str


class ConversationMessageResponse(BaseModel):
    id: str
    role: MessageRole
    content: str
    prompt_type: str
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ConversationResponse(BaseModel):
    id: str
    title: str
    active: bool
    messages: list[ConversationMessageResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ConversationCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)


class IncomingMessage(BaseModel):
    type: MessageRole
    content: str = Field(..., min_length=1)
    timestamp: Optional[datetime] = None
    prompt_type: Optional[str] = None


class AppendMessageRequest(BaseModel):
    message: IncomingMessage


class PromptResponse(BaseModel):
    name: str
    template: str


class PromptUpdate(BaseModel):
    template: str = Field(..., min_length=1)


class LuzIASettingsUpdate(BaseModel):
    model: str = Field(..., min_length=1)
    max_tokens: int = Field(..., ge=1, le=32000)
    temperature: float = Field(..., ge=0, le=2)
    personality_level: str = Field(..., min_length=1)
    api_key: Optional[str] = None


# =============================================================================
# Content
# =============================================================================

class ContentCreate(BaseModel):
    """Library content creation request (admin)."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    type: ContentType
    category: ContentCategory
    image_url: str = Field(..., min_length=1)
    content_url: str = ""
    featured: bool = False
    tags: list[str] = Field(default_factory=list)
    status: ContentStatus = ContentStatus.PUBLISHED


class ContentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    type: Optional[ContentType] = None
    category: Optional[ContentCategory] = None
    image_url: Optional[str] = None
    content_url: Optional[str] = None
    featured: Optional[bool] = None
    tags: Optional[list[str]] = None
    status: Optional[ContentStatus] = None


class ContentResponse(BaseModel):
    id: str
    title: str
    description: str
    type: ContentType
    category: ContentCategory
    image_url: str
    content_url: str = ""
    featured: bool = False
    tags: list[str] = Field(default_factory=list)
    status: ContentStatus
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
