"""
Admin API Routes

Back-office for account approval and user management, platform stats,
the activity feed and LUZ IA administration (prompts, settings,
knowledge base, conversations and metrics).
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from loguru import logger

from mentemerecedora.api.dependencies import (
    ServiceContainer,
    Settings,
    get_app_settings,
    get_assistant,
    get_knowledge_base,
    get_service_container,
    get_user_repository,
    require_admin,
)
from mentemerecedora.api.middleware import (
    DuplicateError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from mentemerecedora.api.schemas import (
    AdminUserCreate,
    AdminUserUpdate,
    DataResponse,
    ListResponse,
    LuzIASettingsUpdate,
    MessageResponse,
    Pagination,
    PromptResponse,
    PromptUpdate,
    UserResponse,
)
from mentemerecedora.api.uploads import TEXT_EXTENSIONS, read_upload
from mentemerecedora.assistant.service import MASKED_API_KEY, PERSONALITY_LEVELS
from mentemerecedora.security import get_password_hash
from mentemerecedora.storage.models import DEFAULT_PROFILE_IMAGE, UserStatus
from mentemerecedora.storage.practice_repository import PracticeEvent
from mentemerecedora.storage.user_repository import StoredUser


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

DEFAULT_TOPICS = ("Manifestação", "Práticas Guiadas", "Diário Quântico")
UNKNOWN_USER = "Usuário desconhecido"


def get_user_or_404(user_id: str, repo) -> StoredUser:
    user = repo.get(user_id)
    if not user:
        raise NotFoundError("Usuário", user_id)
    return user


# =============================================================================
# Users
# =============================================================================

@router.get("/users", response_model=ListResponse[UserResponse])
def list_users(
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    repo=Depends(get_user_repository),
):
    users, total = repo.list_users(
        page=page,
        limit=limit,
        status=status_filter.value if status_filter else None,
        role=role,
        search=search,
    )
    return {
        "count": len(users),
        "total": total,
        "pagination": Pagination.build(page, limit, total),
        "data": users,
    }


@router.get("/users/pending", response_model=ListResponse[UserResponse])
def list_pending_users(repo=Depends(get_user_repository)):
    users, total = repo.list_users(page=1, limit=1000, status=UserStatus.PENDING.value)
    return {"count": len(users), "total": total, "data": users}


@router.get("/users/check-email", response_model=DataResponse[dict])
def check_email(
    email: str = Query(..., min_length=1),
    exclude_id: Optional[str] = Query(None),
    repo=Depends(get_user_repository),
):
    return {"data": {"email": email, "exists": repo.email_exists(email, exclude_id=exclude_id)}}


@router.post("/users", response_model=DataResponse[UserResponse], status_code=status.HTTP_201_CREATED)
def create_user(
    payload: AdminUserCreate,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_user_repository),
):
    """Create an account directly; approved unless another status is given."""
    if repo.email_exists(payload.email):
        raise DuplicateError("Este email já está cadastrado")

    user = repo.create(
        name=payload.name,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        role=payload.role.value,
        status=payload.status.value,
        bio=payload.bio,
    )
    logger.info(f"User {user.email} created by admin {admin.id}")
    return {"data": user}


@router.get("/users/{user_id}", response_model=DataResponse[UserResponse])
def get_user(user_id: str, repo=Depends(get_user_repository)):
    return {"data": get_user_or_404(user_id, repo)}


@router.put("/users/{user_id}", response_model=DataResponse[UserResponse])
def update_user(
    user_id: str,
    payload: AdminUserUpdate,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_user_repository),
):
    get_user_or_404(user_id, repo)
    updates = payload.model_dump(mode="json", exclude_unset=True, exclude_none=True)

    if user_id == admin.id and (
        updates.get("status", UserStatus.APPROVED.value) != UserStatus.APPROVED.value
        or updates.get("role", admin.role) != admin.role
    ):
        raise ForbiddenError("Você não pode alterar o status ou o perfil da sua própria conta")

    if "email" in updates and repo.email_exists(updates["email"], exclude_id=user_id):
        raise DuplicateError("Este email já está em uso")

    password = updates.pop("password", None)
    if password:
        updates["hashed_password"] = get_password_hash(password)

    user = repo.update(user_id, **updates)
    logger.info(f"User {user_id} updated by admin {admin.id}")
    return {"data": user}


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_user_repository),
    services: ServiceContainer = Depends(get_service_container),
):
    """Delete an account with its records and stored media."""
    if user_id == admin.id:
        raise ForbiddenError("Você não pode excluir sua própria conta")
    user = get_user_or_404(user_id, repo)

    # Rows cascade in the database; files have to be collected first
    object_names = [
        name
        for item in services.manifestation_repository.list_items(user_id)
        for name in item.object_names
    ]
    if user.profile_image and user.profile_image != DEFAULT_PROFILE_IMAGE:
        object_names.append(user.profile_image)

    repo.delete(user_id)
    removed = services.media_store.delete_many(object_names)
    logger.info(f"User {user_id} deleted by admin {admin.id} with {removed} media objects")
    return MessageResponse(message="Usuário removido com sucesso", data={})


@router.put("/users/{user_id}/approve", response_model=DataResponse[UserResponse])
def approve_user(
    user_id: str,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_user_repository),
):
    get_user_or_404(user_id, repo)
    user = repo.set_status(user_id, UserStatus.APPROVED)
    logger.info(f"User {user.email} approved by admin {admin.id}")
    return {"data": user, "message": "Usuário aprovado com sucesso"}


@router.put("/users/{user_id}/deactivate", response_model=DataResponse[UserResponse])
def deactivate_user(
    user_id: str,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_user_repository),
):
    if user_id == admin.id:
        raise ForbiddenError("Você não pode desativar sua própria conta")
    get_user_or_404(user_id, repo)
    user = repo.set_status(user_id, UserStatus.DEACTIVATED)
    logger.info(f"User {user.email} deactivated by admin {admin.id}")
    return {"data": user, "message": "Usuário desativado com sucesso"}


# =============================================================================
# Platform overview
# =============================================================================

@router.get("/stats", response_model=DataResponse[dict])
def platform_stats(services: ServiceContainer = Depends(get_service_container)):
    users = services.user_repository
    return {
        "data": {
            "total_users": users.count(),
            "pending_users": users.count(UserStatus.PENDING.value),
            "completed_practices": services.practice_repository.count_records(
                event=PracticeEvent.COMPLETION
            ),
            "manifestations": services.manifestation_repository.count(),
            "diary_entries": services.diary_repository.count(),
            "luzia_interactions": services.conversation_repository.count_messages(),
            "users_by_status": users.count_by_status(),
        }
    }


@router.get("/recent-activities", response_model=DataResponse[list[dict]])
def recent_activities(
    limit: int = Query(10, ge=1, le=50),
    services: ServiceContainer = Depends(get_service_container),
):
    """Registrations, diary entries, manifestations and completed practices."""
    activities = []

    for user in services.user_repository.recent(limit):
        activities.append({
            "type": "usuario",
            "user_id": user.id,
            "description": f"Novo cadastro: {user.name}",
            "status": user.status,
            "date": user.created_at,
        })

    diary_entries = services.diary_repository.recent_all(limit)
    manifestations = services.manifestation_repository.recent_all(limit)
    records, _ = services.practice_repository.list_records(
        page=1, limit=limit, event=PracticeEvent.COMPLETION
    )

    names = services.user_repository.names_by_id(list({
        *(e.user_id for e in diary_entries),
        *(m.user_id for m in manifestations),
        *(r.user_id for r in records),
    }))

    for entry in diary_entries:
        activities.append({
            "type": "diario",
            "user_id": entry.user_id,
            "description": f"{names.get(entry.user_id, UNKNOWN_USER)} escreveu no Diário Quântico",
            "date": entry.created_at,
        })
    for item in manifestations:
        activities.append({
            "type": "manifestacao",
            "user_id": item.user_id,
            "description": f"{names.get(item.user_id, UNKNOWN_USER)} criou \"{item.title}\"",
            "date": item.created_at,
        })
    for record in records:
        activities.append({
            "type": "pratica",
            "user_id": record.user_id,
            "description": f"{names.get(record.user_id, UNKNOWN_USER)} concluiu {record.practice_title}",
            "date": record.created_at,
        })

    activities.sort(key=lambda a: a["date"] or datetime.min, reverse=True)
    return {"data": activities[:limit]}


# =============================================================================
# LUZ IA administration
# =============================================================================

@router.get("/luzia/prompts", response_model=DataResponse[list[PromptResponse]])
def list_prompts(assistant=Depends(get_assistant)):
    return {"data": assistant.prompts.items()}


@router.put("/luzia/prompts/{name}", response_model=DataResponse[PromptResponse])
def update_prompt(
    name: str,
    payload: PromptUpdate,
    assistant=Depends(get_assistant),
):
    try:
        assistant.prompts.update_prompt(name, payload.template)
    except ValueError as e:
        raise ValidationError(str(e))
    return {"data": {"name": name, "template": payload.template}, "message": "Prompt atualizado"}


@router.get("/luzia/settings", response_model=DataResponse[dict])
def get_luzia_settings(assistant=Depends(get_assistant)):
    return {"data": assistant.settings.public_dict()}


@router.put("/luzia/settings", response_model=DataResponse[dict])
def update_luzia_settings(
    payload: LuzIASettingsUpdate,
    assistant=Depends(get_assistant),
):
    if payload.personality_level not in PERSONALITY_LEVELS:
        raise ValidationError(
            f"Nível de personalidade inválido: {payload.personality_level}",
            detail={"allowed": list(PERSONALITY_LEVELS)},
        )

    # The masked placeholder sent back by the client keeps the current key
    api_key = payload.api_key if payload.api_key and payload.api_key != MASKED_API_KEY else None
    settings = assistant.configure(
        model=payload.model,
        max_tokens=payload.max_tokens,
        temperature=payload.temperature,
        personality_level=payload.personality_level,
        api_key=api_key,
    )
    return {"data": settings.public_dict(), "message": "Configurações atualizadas"}


@router.get("/luzia/knowledgebase", response_model=DataResponse[dict])
def list_knowledge_files(knowledge_base=Depends(get_knowledge_base)):
    return {
        "data": {
            "files": [f.to_dict() for f in knowledge_base.list_files()],
            "chunks": knowledge_base.chunk_count,
            "using_fallback": knowledge_base.using_fallback,
        }
    }


@router.post(
    "/luzia/knowledgebase",
    response_model=DataResponse[dict],
    status_code=status.HTTP_201_CREATED,
)
async def upload_knowledge_file(
    file: UploadFile = File(..., description="Transcript (.txt or .md)"),
    knowledge_base=Depends(get_knowledge_base),
    settings: Settings = Depends(get_app_settings),
):
    content = await read_upload(file, TEXT_EXTENSIONS, settings.max_upload_size_mb)
    try:
        stored = knowledge_base.add_file(file.filename, content)
    except ValueError as e:
        raise ValidationError(str(e))

    chunks = knowledge_base.reload()
    return {
        "data": {**stored.to_dict(), "chunks": chunks},
        "message": "Arquivo adicionado à base de conhecimento",
    }


@router.delete("/luzia/knowledgebase/{name}", response_model=DataResponse[dict])
def delete_knowledge_file(name: str, knowledge_base=Depends(get_knowledge_base)):
    if not knowledge_base.remove_file(name):
        raise NotFoundError("Arquivo", name)
    chunks = knowledge_base.reload()
    return {"data": {"name": name, "chunks": chunks}, "message": "Arquivo removido"}


@router.post("/luzia/knowledgebase/reset", response_model=DataResponse[dict])
def reset_knowledge_base(knowledge_base=Depends(get_knowledge_base)):
    chunks = knowledge_base.reload()
    logger.info(f"Knowledge base re-indexed: {chunks} chunks")
    return {
        "data": {"chunks": chunks, "using_fallback": knowledge_base.using_fallback},
        "message": "Base de conhecimento reindexada",
    }


@router.get("/luzia/conversations", response_model=DataResponse[list[dict]])
def recent_conversations(services: ServiceContainer = Depends(get_service_container)):
    """Latest 20 conversations with the first question as preview."""
    summaries = services.conversation_repository.recent_summaries(limit=20)
    return {
        "data": [
            {
                "id": s.id,
                "user_id": s.user_id,
                "user": s.user_name or UNKNOWN_USER,
                "date": s.created_at,
                "messages": s.message_count,
                "topic": s.topic or "Geral",
                "preview": s.preview or "Sem mensagens",
            }
            for s in summaries
        ]
    }


@router.get("/luzia/metrics", response_model=DataResponse[dict])
def luzia_metrics(services: ServiceContainer = Depends(get_service_container)):
    conversations = services.conversation_repository
    total_conversations = conversations.count()
    total_messages = conversations.count_messages()

    top_users = conversations.top_users(limit=3)
    names = services.user_repository.names_by_id([user_id for user_id, _ in top_users])

    topic_counts = sorted(
        conversations.prompt_type_counts().items(), key=lambda item: item[1], reverse=True
    )[:3]
    top_topics = [{"topic": topic, "count": count} for topic, count in topic_counts]
    if not top_topics:
        top_topics = [{"topic": topic, "count": 0} for topic in DEFAULT_TOPICS]

    return {
        "data": {
            "total_conversations": total_conversations,
            "total_messages": total_messages,
            "average_messages": round(total_messages / total_conversations) if total_conversations else 0,
            "top_users": [
                {"user_id": user_id, "name": names.get(user_id, UNKNOWN_USER), "conversations": count}
                for user_id, count in top_users
            ],
            "top_topics": top_topics,
        }
    }
