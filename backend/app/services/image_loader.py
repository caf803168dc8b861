"""Image loader: turns the bundled default asset or an upload into an EncodedImage."""

from __future__ import annotations

import asyncio
import base64
import io
import logging
import mimetypes
from pathlib import Path

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from app.config import settings
from app.errors import LoadError, ReadError, ValidationError
from app.schemas.tree import EncodedImage

logger = logging.getLogger(__name__)

# Advertised on the file input; validation itself only requires an image/* type.
ACCEPTED_TYPES = ("image/jpeg", "image/png", "image/jpg")

INVALID_TYPE_MESSAGE = "Please upload a valid image file"
OVERSIZE_MESSAGE = "Image size should be less than 20MB"


def _encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _sniff_mime(data: bytes) -> str | None:
    """Return the mime type Pillow detects for *data*, or ``None`` if it cannot tell.

    Formats Pillow does not decode (HEIC, AVIF without plugins) are still valid
    uploads; only oversized pixel dimensions are refused.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return Image.MIME.get(img.format or "")
    except Image.DecompressionBombError as exc:
        logger.warning("Refusing upload with excessive dimensions: %s", exc)
        raise ReadError() from exc
    except (UnidentifiedImageError, OSError, SyntaxError):
        return None


# ---------------------------------------------------------------------------
# Default asset
# ---------------------------------------------------------------------------

def default_image_path() -> Path:
    return Path(settings.STATIC_DIR) / settings.DEFAULT_IMAGE


async def load_default(path: str | Path | None = None) -> EncodedImage:
    """Read the bundled default tree photo."""
    path = Path(path) if path is not None else default_image_path()
    try:
        data = await asyncio.to_thread(path.read_bytes)
    except OSError as exc:
        logger.warning("Default image unavailable at %s: %s", path, exc)
        raise LoadError() from exc

    mime_type, _ = mimetypes.guess_type(path.name)
    return EncodedImage(
        mime_type=mime_type or "image/jpeg",
        data=_encode(data),
        source="default",
        filename=path.name,
    )


# ---------------------------------------------------------------------------
# User uploads
# ---------------------------------------------------------------------------

def validate_upload(content_type: str | None, size: int | None) -> None:
    """Check the declared type and size of an upload. Raises ValidationError."""
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError(INVALID_TYPE_MESSAGE, reason="type")
    if size is not None and size > settings.MAX_UPLOAD_BYTES:
        raise ValidationError(OVERSIZE_MESSAGE, reason="size")


async def load_upload(file: UploadFile) -> EncodedImage:
    """Validate and encode a user-selected file.

    Validation runs on the declared metadata before any bytes are read; the
    actual length is checked again once read since ``size`` may be absent.
    """
    validate_upload(file.content_type, file.size)

    try:
        data = await file.read()
    except OSError as exc:
        logger.warning("Failed to read upload %s: %s", file.filename, exc)
        raise ReadError() from exc

    validate_upload(file.content_type, len(data))
    if not data:
        raise ReadError()

    detected = await asyncio.to_thread(_sniff_mime, data)
    encoded = await asyncio.to_thread(_encode, data)
    logger.info("Loaded upload %s (%d bytes, %s).", file.filename, len(data), detected)
    return EncodedImage(
        mime_type=detected or file.content_type,
        data=encoded,
        source="upload",
        filename=file.filename,
    )
