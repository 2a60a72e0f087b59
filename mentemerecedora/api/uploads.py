"""
Multipart upload validation shared by the profile, manifestation, practice
and knowledge base routes.
"""

import os

from fastapi import UploadFile
from loguru import logger

from .middleware import PayloadTooLargeError, ValidationError

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
COVER_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
AUDIO_EXTENSIONS = {".mp3", ".wav", ".ogg", ".m4a"}
TEXT_EXTENSIONS = {".txt", ".md"}


async def read_upload(
    file: UploadFile,
    allowed_extensions: set[str],
    max_size_mb: int,
) -> bytes:
    """
    Read an uploaded file after checking its extension and size.

    Raises:
        ValidationError: Missing file, empty file or unsupported extension
        PayloadTooLargeError: File larger than ``max_size_mb``
    """
    if file is None or not file.filename:
        raise ValidationError("Por favor, envie um arquivo")

    extension = os.path.splitext(file.filename)[1].lower()
    if extension not in allowed_extensions:
        allowed = ", ".join(sorted(allowed_extensions))
        raise ValidationError(
            f"Formato de arquivo não suportado: {extension or file.filename}. Use: {allowed}",
            detail={"allowed": sorted(allowed_extensions)},
        )

    content = await file.read()
    if len(content) > max_size_mb * 1024 * 1024:
        raise PayloadTooLargeError(max_size_mb)
    if not content:
        raise ValidationError("Arquivo vazio")

    logger.info(f"Upload received: {file.filename} ({len(content) // 1024}KB)")
    return content
