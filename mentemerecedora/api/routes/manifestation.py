"""
Manifestation API Routes

Vision boards (quadro), checklists (checklist) and personal symbols
(simbolo), each scoped to its owner.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from loguru import logger

from mentemerecedora.api.dependencies import (
    Settings,
    get_app_settings,
    get_current_user,
    get_manifestation_repository,
    get_media_store,
)
from mentemerecedora.api.middleware import NotFoundError, UnauthorizedError, ValidationError
from mentemerecedora.api.schemas import (
    AffirmationCreate,
    DataResponse,
    ListResponse,
    ManifestationCreate,
    ManifestationResponse,
    ManifestationUpdate,
    MessageResponse,
    StepCreate,
    StepUpdate,
)
from mentemerecedora.api.uploads import IMAGE_EXTENSIONS, read_upload
from mentemerecedora.storage.manifestation_repository import ManifestationType
from mentemerecedora.storage.user_repository import StoredUser


router = APIRouter(prefix="/manifestacao", tags=["manifestation"])

RESOURCE = "Item de manifestação"


def get_owned_item(item_id: str, user: StoredUser, repo, tipo: Optional[ManifestationType] = None):
    """
    Item owned by ``user``.

    Raises:
        NotFoundError: Unknown item
        UnauthorizedError: Item belongs to another user
        ValidationError: Item is not of the required ``tipo``
    """
    item = repo.get(item_id)
    if not item:
        raise NotFoundError(RESOURCE, item_id)
    if item.user_id != user.id:
        logger.warning(f"User {user.id} tried to access manifestation {item_id}")
        raise UnauthorizedError("Não autorizado a acessar este item")
    if tipo and item.tipo != tipo.value:
        raise ValidationError(f"Operação disponível apenas para itens do tipo {tipo.value}")
    return item


# =============================================================================
# Items
# =============================================================================

@router.get("", response_model=ListResponse[ManifestationResponse])
def list_items(
    tipo: Optional[ManifestationType] = Query(None),
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
):
    items = repo.list_items(current_user.id, tipo.value if tipo else None)
    return {"count": len(items), "data": items}


@router.post("", response_model=DataResponse[ManifestationResponse], status_code=status.HTTP_201_CREATED)
def create_item(
    payload: ManifestationCreate,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
):
    item = repo.create(
        current_user.id,
        payload.tipo.value,
        payload.title,
        affirmations=[a.model_dump() for a in payload.affirmations or []],
        steps=[s.model_dump() for s in payload.steps or []],
        **payload.storage_fields(),
    )
    return {"data": item}


@router.get("/{item_id}", response_model=DataResponse[ManifestationResponse])
def get_item(
    item_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
):
    return {"data": get_owned_item(item_id, current_user, repo)}


@router.put("/{item_id}", response_model=DataResponse[ManifestationResponse])
def update_item(
    item_id: str,
    payload: ManifestationUpdate,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
):
    get_owned_item(item_id, current_user, repo)

    affirmations = None
    if payload.affirmations is not None:
        affirmations = [a.model_dump() for a in payload.affirmations]
    steps = None
    if payload.steps is not None:
        steps = [s.model_dump() for s in payload.steps]

    item = repo.update(item_id, affirmations=affirmations, steps=steps, **payload.storage_fields())
    logger.info(f"Manifestation updated: {item_id}")
    return {"data": item}


@router.delete("/{item_id}", response_model=MessageResponse)
def delete_item(
    item_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
    media=Depends(get_media_store),
):
    get_owned_item(item_id, current_user, repo)
    deleted = repo.delete(item_id)
    removed = media.delete_many(deleted.object_names) if deleted else 0
    logger.info(f"Manifestation {item_id} deleted with {removed} media objects")
    return MessageResponse(message="Item removido com sucesso", data={})


# =============================================================================
# Vision board
# =============================================================================

@router.post("/{item_id}/imagem", response_model=DataResponse[ManifestationResponse])
async def add_image(
    item_id: str,
    file: UploadFile = File(...),
    description: str = Form(""),
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
    media=Depends(get_media_store),
    settings: Settings = Depends(get_app_settings),
):
    get_owned_item(item_id, current_user, repo, ManifestationType.QUADRO)
    content = await read_upload(file, IMAGE_EXTENSIONS, settings.max_upload_size_mb)

    stored = media.save("manifestacao/quadro", file.filename, content)
    item = repo.add_image(item_id, path=stored.url, object_name=stored.object_name, description=description)
    return {"data": item, "message": "Imagem adicionada"}


@router.delete("/{item_id}/imagem/{image_id}", response_model=DataResponse[ManifestationResponse])
def remove_image(
    item_id: str,
    image_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
    media=Depends(get_media_store),
):
    get_owned_item(item_id, current_user, repo)
    result = repo.remove_image(item_id, image_id)
    if result is None:
        raise NotFoundError("Imagem", image_id)

    item, object_name = result
    media.delete(object_name)
    return {"data": item, "message": "Imagem removida"}


@router.post("/{item_id}/afirmacao", response_model=DataResponse[ManifestationResponse])
def add_affirmation(
    item_id: str,
    payload: AffirmationCreate,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
):
    get_owned_item(item_id, current_user, repo)
    item = repo.add_affirmation(item_id, payload.text, payload.highlighted)
    return {"data": item}


@router.delete("/{item_id}/afirmacao/{affirmation_id}", response_model=DataResponse[ManifestationResponse])
def remove_affirmation(
    item_id: str,
    affirmation_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
):
    get_owned_item(item_id, current_user, repo)
    item = repo.remove_affirmation(item_id, affirmation_id)
    if item is None:
        raise NotFoundError("Afirmação", affirmation_id)
    return {"data": item}


# =============================================================================
# Checklist
# =============================================================================

@router.post("/{item_id}/passo", response_model=DataResponse[ManifestationResponse])
def add_step(
    item_id: str,
    payload: StepCreate,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
):
    get_owned_item(item_id, current_user, repo, ManifestationType.CHECKLIST)
    item = repo.add_step(item_id, payload.description, payload.due_date)
    return {"data": item}


@router.put("/{item_id}/passo/{step_id}", response_model=DataResponse[ManifestationResponse])
def update_step(
    item_id: str,
    step_id: str,
    payload: StepUpdate,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
):
    """Persist a step change and return the whole item."""
    get_owned_item(item_id, current_user, repo)
    item = repo.update_step(item_id, step_id, **payload.model_dump(exclude_unset=True))
    if item is None:
        raise NotFoundError("Passo", step_id)
    return {"data": item}


@router.delete("/{item_id}/passo/{step_id}", response_model=DataResponse[ManifestationResponse])
def remove_step(
    item_id: str,
    step_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
):
    get_owned_item(item_id, current_user, repo)
    item = repo.remove_step(item_id, step_id)
    if item is None:
        raise NotFoundError("Passo", step_id)
    return {"data": item}


# =============================================================================
# Symbol
# =============================================================================

@router.post("/{item_id}/simbolo", response_model=DataResponse[ManifestationResponse])
async def upload_symbol_image(
    item_id: str,
    file: UploadFile = File(...),
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_manifestation_repository),
    media=Depends(get_media_store),
    settings: Settings = Depends(get_app_settings),
):
    get_owned_item(item_id, current_user, repo, ManifestationType.SIMBOLO)
    content = await read_upload(file, IMAGE_EXTENSIONS, settings.max_upload_size_mb)

    stored = media.save("manifestacao/simbolo", file.filename, content)
    item, previous = repo.set_symbol_image(item_id, stored.url, stored.object_name)
    if previous:
        media.delete(previous)
    return {"data": item, "message": "Imagem do símbolo atualizada"}
