"""
Profile API Routes

Name/bio edits and profile photo upload.
"""

from fastapi import APIRouter, Depends, File, UploadFile
from loguru import logger

from mentemerecedora.api.dependencies import (
    Settings,
    get_app_settings,
    get_current_user,
    get_media_store,
    get_user_repository,
)
from mentemerecedora.api.schemas import DataResponse, ProfileUpdateRequest, UserResponse
from mentemerecedora.api.uploads import IMAGE_EXTENSIONS, read_upload
from mentemerecedora.storage.models import DEFAULT_PROFILE_IMAGE
from mentemerecedora.storage.user_repository import StoredUser


router = APIRouter(prefix="/perfil", tags=["profile"])


@router.put("", response_model=DataResponse[UserResponse])
def update_profile(
    payload: ProfileUpdateRequest,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_user_repository),
):
    user = repo.update(current_user.id, **payload.model_dump(exclude_unset=True))
    logger.info(f"Profile updated: {user.id}")
    return {"data": user, "message": "Perfil atualizado com sucesso"}


@router.put("/foto", response_model=DataResponse[UserResponse])
async def upload_profile_photo(
    file: UploadFile = File(..., description="Profile image (jpeg, png, webp, gif)"),
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_user_repository),
    media=Depends(get_media_store),
    settings: Settings = Depends(get_app_settings),
):
    """Store a new profile photo and drop the previous one."""
    content = await read_upload(file, IMAGE_EXTENSIONS, settings.max_profile_image_mb)
    stored = media.save("perfil", file.filename, content)

    user = repo.update(current_user.id, profile_image=stored.object_name)

    previous = current_user.profile_image
    if previous and previous != DEFAULT_PROFILE_IMAGE:
        media.delete(previous)

    logger.info(f"Profile photo updated for {user.id}: {stored.object_name}")
    return {"data": user, "message": "Foto de perfil atualizada"}
