"""Shared fixtures. The app runs in mock mode so nothing leaves the process."""

from __future__ import annotations

import base64
import io
import os
import struct
import zlib

os.environ.setdefault("TREEID_MOCK_ANALYSIS", "true")
os.environ.setdefault("TREEID_GEMINI_API_KEY", "")

import pytest
from starlette.datastructures import Headers, UploadFile

from app.errors import AnalysisError
from app.schemas.tree import EncodedImage

# 1x1 grayscale PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def _chunk(kind: bytes, payload: bytes) -> bytes:
    return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", zlib.crc32(kind + payload))


def png_declaring_size(width: int, height: int) -> bytes:
    """A 1-bit grayscale PNG whose header claims *width* x *height*; pixels are never decoded."""
    ihdr = struct.pack(">IIBBBBB", width, height, 1, 0, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _chunk(b"IHDR", ihdr)
        + _chunk(b"IDAT", zlib.compress(b"\x00"))
        + _chunk(b"IEND", b"")
    )


def make_upload(
    data: bytes = PNG_BYTES,
    content_type: str | None = "image/png",
    filename: str = "tree.png",
    size: int | None = -1,
) -> UploadFile:
    headers = Headers({"content-type": content_type}) if content_type else Headers({})
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data) if size == -1 else size,
        filename=filename,
        headers=headers,
    )


class FakeClient:
    """Stands in for GeminiWrapper; returns queued results in order."""

    def __init__(self, *results: str | Exception) -> None:
        self.results = list(results) or ["1. Species Identification:\n- Common name: Test Oak"]
        self.calls: list[EncodedImage] = []

    async def analyze(self, image: EncodedImage, prompt: str | None = None) -> str:
        self.calls.append(image)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def encoded_image() -> EncodedImage:
    return EncodedImage(
        mime_type="image/png",
        data=base64.b64encode(PNG_BYTES).decode("ascii"),
        filename="tree.png",
    )


@pytest.fixture
def failing_client() -> FakeClient:
    return FakeClient(AnalysisError("Quota exceeded for this key."))
