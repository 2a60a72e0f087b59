"""
Content API Routes

Public content library (articles, videos, ebooks, galleries) and admin
curation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from mentemerecedora.api.dependencies import get_content_repository, require_admin
from mentemerecedora.api.middleware import NotFoundError, ValidationError
from mentemerecedora.api.schemas import (
    ContentCreate,
    ContentResponse,
    ContentUpdate,
    DataResponse,
    ListResponse,
    MessageResponse,
    Pagination,
)
from mentemerecedora.storage.content_repository import (
    ContentCategory,
    ContentStatus,
    ContentType,
)
from mentemerecedora.storage.user_repository import StoredUser


router = APIRouter(prefix="/contents", tags=["content"])


# =============================================================================
# Public
# =============================================================================

@router.get("", response_model=ListResponse[ContentResponse])
def list_contents(
    category: Optional[ContentCategory] = Query(None),
    type: Optional[ContentType] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    repo=Depends(get_content_repository),
):
    contents, total = repo.list_contents(
        page=page,
        limit=limit,
        category=category.value if category else None,
        type=type.value if type else None,
    )
    return {
        "count": len(contents),
        "total": total,
        "pagination": Pagination.build(page, limit, total),
        "data": contents,
    }


@router.get("/featured", response_model=ListResponse[ContentResponse])
def featured_contents(
    category: Optional[ContentCategory] = Query(None),
    type: Optional[ContentType] = Query(None),
    limit: int = Query(5, ge=1, le=50),
    repo=Depends(get_content_repository),
):
    contents, _ = repo.list_contents(
        page=1,
        limit=limit,
        category=category.value if category else None,
        type=type.value if type else None,
        featured=True,
    )
    return {"count": len(contents), "data": contents}


@router.get("/search", response_model=ListResponse[ContentResponse])
def search_contents(
    q: Optional[str] = Query(None, description="Search terms"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    repo=Depends(get_content_repository),
):
    if not q or not q.strip():
        raise ValidationError("Informe um termo de busca")

    contents, total = repo.list_contents(page=page, limit=limit, search=q.strip())
    return {
        "count": len(contents),
        "total": total,
        "pagination": Pagination.build(page, limit, total),
        "data": contents,
    }


@router.get("/{content_id}", response_model=DataResponse[ContentResponse])
def get_content(
    content_id: str,
    repo=Depends(get_content_repository),
):
    content = repo.get(content_id)
    if not content or content.status != ContentStatus.PUBLISHED.value:
        raise NotFoundError("Conteúdo", content_id)
    return {"data": content}


# =============================================================================
# Admin
# =============================================================================

@router.post("", response_model=DataResponse[ContentResponse], status_code=status.HTTP_201_CREATED)
def create_content(
    payload: ContentCreate,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_content_repository),
):
    content = repo.create(admin.id, **payload.model_dump(mode="json"))
    return {"data": content}


@router.put("/{content_id}", response_model=DataResponse[ContentResponse])
def update_content(
    content_id: str,
    payload: ContentUpdate,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_content_repository),
):
    content = repo.update(content_id, **payload.model_dump(mode="json", exclude_unset=True))
    if not content:
        raise NotFoundError("Conteúdo", content_id)
    logger.info(f"Content {content_id} updated by admin {admin.id}")
    return {"data": content}


@router.delete("/{content_id}", response_model=MessageResponse)
def delete_content(
    content_id: str,
    admin: StoredUser = Depends(require_admin),
    repo=Depends(get_content_repository),
):
    if not repo.delete(content_id):
        raise NotFoundError("Conteúdo", content_id)
    logger.info(f"Content {content_id} deleted by admin {admin.id}")
    return MessageResponse(message="Conteúdo removido com sucesso", data={})
