"""Local storage for service images uploaded as base64 strings."""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from pathlib import Path
from typing import Iterable, List, Protocol

from salon_api.services.exceptions import InternalError, ValidationError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024


class ImageStorage(Protocol):
    def save(self, encoded: str) -> str:
        ...

    def delete(self, path: str) -> None:
        ...


def _strip_data_uri(encoded: str) -> str:
    head, sep, tail = encoded.partition(",")
    if sep and "base64" in head.lower():
        return tail
    return encoded


def decode_base64_image(encoded: str) -> bytes:
    """Decode a base64 image, with or without a ``data:`` prefix or padding."""

    if not encoded:
        raise ValidationError("empty image string")
    payload = _strip_data_uri(encoded.strip())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        pass
    try:
        return base64.b64decode(payload + "=" * (-len(payload) % 4), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("invalid base64 image", cause=exc) from exc


def detect_image_extension(data: bytes) -> str:
    if len(data) < 12:
        return ""
    if data[:2] == b"\xff\xd8":
        return ".jpg"
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return ".png"
    if data[:4] == b"GIF8":
        return ".gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ".webp"
    return ""


class LocalImageStorage:
    """Content-addressed files under ``<root>/<uploads_dir>``.

    Stored references are relative (``uploads/<sha256><ext>``) so they can be
    served from the ``/uploads`` static mount.
    """

    def __init__(self, uploads_dir: str | Path = "uploads", *, root: str | Path = ".") -> None:
        self._root = Path(root)
        self._uploads_dir = Path(uploads_dir)

    @property
    def directory(self) -> Path:
        return self._root / self._uploads_dir

    def save(self, encoded: str) -> str:
        data = decode_base64_image(encoded)
        if len(data) > MAX_IMAGE_BYTES:
            raise ValidationError(f"image exceeds max size of {MAX_IMAGE_BYTES} bytes")

        ext = detect_image_extension(data) or ".bin"
        name = f"{hashlib.sha256(data).hexdigest()}{ext}"
        relative = (self._uploads_dir / name).as_posix()
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            (self.directory / name).write_bytes(data)
        except OSError as exc:
            logger.exception("Failed to store image %s", relative)
            raise InternalError("failed to store image", cause=exc) from exc
        return relative

    def delete(self, path: str) -> None:
        """Remove an image and its ``_thumb.jpg`` sibling; missing files are ignored."""

        target = self._root / path
        thumb = target.with_name(f"{target.stem}_thumb.jpg")
        for candidate in (target, thumb):
            try:
                candidate.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove image file %s", candidate, exc_info=True)


def release_images(storage: ImageStorage, paths: Iterable[str]) -> None:
    for path in paths:
        storage.delete(path)


def store_images(storage: ImageStorage, encoded_images: Iterable[str]) -> List[str]:
    stored: List[str] = []
    for index, encoded in enumerate(encoded_images):
        try:
            stored.append(storage.save(encoded))
        except ValidationError as exc:
            release_images(storage, stored)
            raise ValidationError(f"invalid base64 image at index {index}", cause=exc) from exc
        except InternalError:
            release_images(storage, stored)
            raise
    return stored
