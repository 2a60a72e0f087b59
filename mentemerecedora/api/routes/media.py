"""
Media proxy route.

Serves stored objects; practice audio needs a signed token.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from loguru import logger

from mentemerecedora.api.dependencies import Settings, get_app_settings, get_media_store
from mentemerecedora.api.middleware import NotFoundError, UnauthorizedError
from mentemerecedora.security import verify_media_token


router = APIRouter(prefix="/proxy/media", tags=["media"])

PROTECTED_PREFIXES = ("praticas/audio/",)


@router.get("/{object_name:path}")
def get_media(
    object_name: str,
    token: Optional[str] = Query(None, description="Signed media token"),
    media=Depends(get_media_store),
    settings: Settings = Depends(get_app_settings),
):
    # Names like "praticas//audio/x" must not reach the prefix check
    if not media.is_canonical(object_name):
        raise NotFoundError("Arquivo", object_name)

    if object_name.startswith(PROTECTED_PREFIXES):
        if not token or not verify_media_token(
            token, object_name, settings.jwt_secret, settings.jwt_algorithm
        ):
            logger.warning(f"Rejected media request for {object_name}")
            raise UnauthorizedError("Link de mídia inválido ou expirado")

    path = media.resolve(object_name)
    if path is None:
        raise NotFoundError("Arquivo", object_name)

    return FileResponse(path, media_type=media.content_type(object_name))
