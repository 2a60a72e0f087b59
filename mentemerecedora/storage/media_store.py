"""
Media Store

Local-disk object storage for uploaded images and audio. Objects are
addressed by names such as ``praticas/audio/<uuid>.mp3`` and served
through the media proxy route.
"""

import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger

PUBLIC_PREFIX = "/api/proxy/media"


@dataclass
class StoredObject:
    """Result of a successful upload."""

    object_name: str
    url: str
    size: int
    content_type: str


class MediaStore:
    """
    Filesystem-backed object store.

    Usage:
        store = MediaStore("./data/media")
        obj = store.save("manifestacao/quadro", "photo.jpg", data)
        store.url_for(obj.object_name)  # /api/proxy/media/manifestacao/quadro/<uuid>.jpg
    """

    def __init__(self, root: str | Path, public_prefix: str = PUBLIC_PREFIX):
        self.root = Path(root).resolve()
        self.public_prefix = public_prefix.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def is_canonical(object_name: str) -> bool:
        """True when the name has no empty, ``.`` or ``..`` segments."""
        return all(part not in ("", ".", "..") for part in object_name.split("/"))

    def _path(self, object_name: str) -> Optional[Path]:
        """Absolute path for an object, or None if it is not canonical or escapes the root."""
        if not self.is_canonical(object_name):
            return None
        candidate = (self.root / object_name).resolve()
        if candidate == self.root or self.root not in candidate.parents:
            return None
        return candidate

    def save(self, folder: str, original_filename: str, data: bytes) -> StoredObject:
        """
        Store bytes under ``folder`` with a fresh unique name.

        Args:
            folder: Logical folder (e.g. "praticas/audio")
            original_filename: Client filename; only its extension is kept
            data: File content
        """
        extension = Path(original_filename or "").suffix.lower()
        object_name = f"{folder.strip('/')}/{uuid.uuid4().hex}{extension}"

        path = self._path(object_name)
        if path is None:
            raise ValueError(f"Invalid object name: {object_name}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

        logger.info(f"Stored media object {object_name} ({len(data) // 1024}KB)")
        return StoredObject(
            object_name=object_name,
            url=self.url_for(object_name),
            size=len(data),
            content_type=self.content_type(object_name),
        )

    def delete(self, object_name: Optional[str]) -> bool:
        if not object_name:
            return False
        path = self._path(object_name)
        if path is None or not path.is_file():
            return False
        path.unlink()
        logger.info(f"Deleted media object {object_name}")
        return True

    def delete_many(self, object_names: list[str]) -> int:
        return sum(1 for name in object_names if self.delete(name))

    def resolve(self, object_name: str) -> Optional[Path]:
        """Path of an existing object, else None."""
        path = self._path(object_name)
        if path is None or not path.is_file():
            return None
        return path

    def url_for(self, object_name: Optional[str]) -> Optional[str]:
        if not object_name:
            return None
        return f"{self.public_prefix}/{object_name}"

    @staticmethod
    def content_type(object_name: str) -> str:
        guessed, _ = mimetypes.guess_type(object_name)
        if guessed:
            return guessed
        if object_name.endswith(".m4a"):
            return "audio/mp4"
        return "application/octet-stream"
