"""
Practice API Routes

Guided practice catalogue, admin management of practices and their media,
and per-user favorites, completions, history and statistics.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from loguru import logger

from mentemerecedora.api.dependencies import (
    Settings,
    get_app_settings,
    get_current_user,
    get_media_store,
    get_practice_repository,
    require_admin,
)
from mentemerecedora.api.middleware import ForbiddenError, NotFoundError
from mentemerecedora.api.schemas import (
    AudioUrlResponse,
    CompletePracticeRequest,
    DataResponse,
    ListResponse,
    MessageResponse,
    Pagination,
    PracticeCreate,
    PracticeRecordResponse,
    PracticeResponse,
    PracticeUpdate,
    media_url,
)
from mentemerecedora.api.uploads import AUDIO_EXTENSIONS, COVER_EXTENSIONS, read_upload
from mentemerecedora.insights import consecutive_days
from mentemerecedora.security import MEDIA_TOKEN_EXPIRE_SECONDS, create_media_token
from mentemerecedora.storage.media_store import PUBLIC_PREFIX
from mentemerecedora.storage.practice_repository import (
    DEFAULT_COVER_IMAGE,
    PracticeEvent,
    StoredPractice,
)
from mentemerecedora.storage.user_repository import StoredUser


router = APIRouter(prefix="/praticas", tags=["practices"])

ALL_CATEGORIES = "todas"


def to_response(
    practice: StoredPractice,
    favorite: bool = False,
    completed: bool = False,
) -> PracticeResponse:
    return PracticeResponse(
        id=practice.id,
        title=practice.title,
        description=practice.description,
        category=practice.category,
        duration=practice.duration,
        featured=practice.featured,
        sort_order=practice.sort_order,
        active=practice.active,
        has_audio=bool(practice.audio_object),
        cover_image=practice.cover_image,
        cover_image_url=media_url(practice.cover_image),
        favorite=favorite,
        completed=completed,
        created_at=practice.created_at,
    )


def get_visible_practice(practice_id: str, user: StoredUser, repo) -> StoredPractice:
    """Practice by id; inactive practices are hidden from non-admins."""
    practice = repo.get(practice_id)
    if not practice:
        raise NotFoundError("Prática", practice_id)
    if not practice.active and not user.is_admin:
        raise ForbiddenError("Esta prática não está disponível")
    return practice


# =============================================================================
# Catalogue
# =============================================================================

@router.get("", response_model=ListResponse[PracticeResponse])
def list_practices(
    categoria: Optional[str] = Query(None, description="Category, or 'todas'"),
    destaque: Optional[bool] = Query(None, description="Only featured practices"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    include_all: bool = Query(False, alias="all", description="Include inactive practices (admin only)"),
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_practice_repository),
):
    category = None if not categoria or categoria == ALL_CATEGORIES else categoria
    practices, total = repo.list_practices(
        page=page,
        limit=limit,
        category=category,
        featured=destaque,
        search=search,
        active_only=not (include_all and current_user.is_admin),
    )

    ids = [p.id for p in practices]
    favorites = repo.favorite_practice_ids(current_user.id, ids)
    completed = repo.completed_practice_ids(current_user.id, ids)

    return {
        "count": len(practices),
        "total": total,
        "pagination": Pagination.build(page, limit, total),
        "data": [to_response(p, p.id in favorites, p.id in completed) for p in practices],
    }


@router.get("/historico", response_model=ListResponse[PracticeRecordResponse])
def practice_history(
    page: int = Query(1, ge=1),
    limit: int = Query(30, ge=1, le=100),
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_practice_repository),
):
    records, total = repo.list_records(user_id=current_user.id, page=page, limit=limit)
    return {
        "count": len(records),
        "total": total,
        "pagination": Pagination.build(page, limit, total),
        "data": records,
    }


@router.get("/stats", response_model=DataResponse[dict])
def practice_stats(
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_practice_repository),
):
    """Completion totals per category, first/last practice and day streak."""
    completions = repo.completions(current_user.id)

    by_category: dict[str, dict] = {}
    for record in completions:
        stats = by_category.setdefault(
            record.practice_category,
            {"total": 0, "total_duration": 0, "last_practice": None},
        )
        stats["total"] += 1
        stats["total_duration"] += record.duration
        # Newest first, so the first record seen is the latest
        if stats["last_practice"] is None:
            stats["last_practice"] = record.created_at

    return {
        "data": {
            "categories": by_category,
            "total_practices": len(completions),
            "first_practice": completions[-1].created_at if completions else None,
            "last_practice": completions[0].created_at if completions else None,
            "streak": consecutive_days(
                [r.created_at.date() for r in completions],
                today=datetime.utcnow().date(),
                require_recent=True,
            ),
        }
    }


@router.get("/{practice_id}", response_model=DataResponse[PracticeResponse])
def get_practice(
    practice_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_practice_repository),
):
    practice = get_visible_practice(practice_id, current_user, repo)
    favorite = practice.id in repo.favorite_practice_ids(current_user.id, [practice.id])
    completed = practice.id in repo.completed_practice_ids(current_user.id, [practice.id])
    return {"data": to_response(practice, favorite, completed)}


# =============================================================================
# Admin management
# =============================================================================

@router.post("", response_model=DataResponse[PracticeResponse], status_code=status.HTTP_201_CREATED)
def create_practice(
    payload: PracticeCreate,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_practice_repository),
):
    practice = repo.create(**payload.model_dump(mode="json"))
    logger.info(f"Practice {practice.id} created by admin {admin.id}")
    return {"data": to_response(practice)}


@router.put("/{practice_id}", response_model=DataResponse[PracticeResponse])
def update_practice(
    practice_id: str,
    payload: PracticeUpdate,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_practice_repository),
):
    practice = repo.update(practice_id, **payload.model_dump(mode="json", exclude_unset=True))
    if not practice:
        raise NotFoundError("Prática", practice_id)
    return {"data": to_response(practice)}


@router.delete("/{practice_id}", response_model=MessageResponse)
def delete_practice(
    practice_id: str,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_practice_repository),
    media=Depends(get_media_store),
):
    practice = repo.delete(practice_id)
    if not practice:
        raise NotFoundError("Prática", practice_id)

    media.delete(practice.audio_object)
    if practice.cover_image != DEFAULT_COVER_IMAGE:
        media.delete(practice.cover_image)
    return MessageResponse(message="Prática removida com sucesso", data={})


@router.put("/{practice_id}/toggle", response_model=DataResponse[PracticeResponse])
def toggle_practice(
    practice_id: str,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_practice_repository),
):
    practice = repo.toggle_active(practice_id)
    if not practice:
        raise NotFoundError("Prática", practice_id)
    logger.info(f"Practice {practice_id} active={practice.active}")
    return {"data": to_response(practice)}


@router.put("/{practice_id}/audio", response_model=DataResponse[PracticeResponse])
async def upload_audio(
    practice_id: str,
    file: UploadFile = File(..., description="Audio file (mp3, wav, ogg, m4a)"),
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_practice_repository),
    media=Depends(get_media_store),
    settings: Settings = Depends(get_app_settings),
):
    if not repo.get(practice_id):
        raise NotFoundError("Prática", practice_id)
    content = await read_upload(file, AUDIO_EXTENSIONS, settings.max_audio_size_mb)

    stored = media.save("praticas/audio", file.filename, content)
    practice, previous = repo.set_media(practice_id, "audio_object", stored.object_name)
    media.delete(previous)
    return {"data": to_response(practice), "message": "Áudio atualizado"}


@router.put("/{practice_id}/imagem", response_model=DataResponse[PracticeResponse])
async def upload_cover(
    practice_id: str,
    file: UploadFile = File(..., description="Cover image (jpg, jpeg, png, webp)"),
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_practice_repository),
    media=Depends(get_media_store),
    settings: Settings = Depends(get_app_settings),
):
    if not repo.get(practice_id):
        raise NotFoundError("Prática", practice_id)
    content = await read_upload(file, COVER_EXTENSIONS, settings.max_upload_size_mb)

    stored = media.save("praticas/imagens", file.filename, content)
    practice, previous = repo.set_media(practice_id, "cover_image", stored.object_name)
    if previous != DEFAULT_COVER_IMAGE:
        media.delete(previous)
    return {"data": to_response(practice), "message": "Imagem atualizada"}


# =============================================================================
# User interactions
# =============================================================================

@router.get("/{practice_id}/audio-url", response_model=DataResponse[AudioUrlResponse])
def get_audio_url(
    practice_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_practice_repository),
    settings: Settings = Depends(get_app_settings),
):
    """Signed, time-limited audio URL; counts as starting the practice."""
    practice = get_visible_practice(practice_id, current_user, repo)
    if not practice.audio_object:
        raise NotFoundError("Áudio da prática", practice_id)

    token = create_media_token(
        practice.audio_object,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_seconds=MEDIA_TOKEN_EXPIRE_SECONDS,
    )
    repo.add_record(current_user.id, practice.id, PracticeEvent.START)

    return {
        "data": AudioUrlResponse(
            url=f"{PUBLIC_PREFIX}/{practice.audio_object}?token={token}",
            expires_in=MEDIA_TOKEN_EXPIRE_SECONDS,
        )
    }


@router.post("/{practice_id}/concluir", response_model=DataResponse[PracticeRecordResponse])
def complete_practice(
    practice_id: str,
    payload: Optional[CompletePracticeRequest] = None,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_practice_repository),
):
    practice = get_visible_practice(practice_id, current_user, repo)
    duration = payload.duration if payload and payload.duration is not None else practice.duration

    record = repo.add_record(current_user.id, practice.id, PracticeEvent.COMPLETION, duration)
    record.practice_title = practice.title
    record.practice_category = practice.category
    return {"data": record, "message": "Prática concluída"}


@router.post("/{practice_id}/favoritar", response_model=DataResponse[dict])
def toggle_favorite(
    practice_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_practice_repository),
):
    practice = get_visible_practice(practice_id, current_user, repo)
    favorite = repo.toggle_favorite(current_user.id, practice.id)
    message = "Prática adicionada aos favoritos" if favorite else "Prática removida dos favoritos"
    return {"data": {"practice_id": practice.id, "favorite": favorite}, "message": message}
