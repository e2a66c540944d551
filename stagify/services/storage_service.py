"""
Object Storage

ObjectStorage accepts a byte payload, a content type and a key, and returns a
retrievable URL. LocalObjectStorage keeps objects under a directory served at
STORAGE_PUBLIC_URL. Keys follow "<category>/<timestamp-ms>-<discriminator>.<ext>".

Room photos are validated before they are stored: allowed image type, size
limit, and a payload Pillow can decode.
"""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from stagify.exceptions import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": [".jpg", ".jpeg"],
    "image/png": [".png"],
    "image/webp": [".webp"],
}


def generate_file_key(category: str, filename: str, timestamp_ms: int | None = None) -> str:
    """Build a collision-resistant object key for an uploaded file."""
    timestamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    discriminator = uuid.uuid4().hex[:6]
    extension = Path(filename).suffix.lstrip(".").lower() or "bin"
    return f"{category.strip('/')}/{timestamp}-{discriminator}.{extension}"


def validate_image_upload(data: bytes, content_type: str | None, filename: str, max_bytes: int) -> tuple[int, int]:
    """
    Validate an uploaded room photo.

    Returns:
        (width, height) of the decoded image

    Raises:
        ValidationError: wrong type, empty, too large or not decodable
    """
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            f"File type '{content_type}' is not allowed",
            field="file",
            details={"allowed_types": list(ALLOWED_IMAGE_TYPES)},
        )
    extension = Path(filename).suffix.lower()
    if extension and extension not in ALLOWED_IMAGE_TYPES[content_type]:
        raise ValidationError(f"File extension '{extension}' does not match {content_type}", field="file")
    if not data:
        raise ValidationError("Uploaded file is empty", field="file")
    if len(data) > max_bytes:
        raise ValidationError(
            f"File exceeds the {max_bytes} byte upload limit",
            field="file",
            details={"size": len(data), "max_size": max_bytes},
        )

    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as exc:
        raise ValidationError("Uploaded file is not a valid image", field="file") from exc


class ObjectStorage(ABC):
    @abstractmethod
    async def put(self, data: bytes, content_type: str, key: str) -> str:
        """Store the payload under key and return its public URL."""
        ...

    @abstractmethod
    def public_url(self, key: str) -> str:
        ...


class LocalObjectStorage(ObjectStorage):
    """Filesystem-backed storage; objects are served from public_base_url."""

    def __init__(self, root: str | Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValidationError("Object key escapes the storage root", field="key")
        return path

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def put(self, data: bytes, content_type: str, key: str) -> str:
        path = self._path_for(key)
        await asyncio.to_thread(self._write, path, data)
        logger.info("Stored object key=%s size=%d type=%s", key, len(data), content_type)
        return self.public_url(key)
