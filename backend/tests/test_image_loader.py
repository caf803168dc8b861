"""Image loader: default asset, upload validation and encoding."""

from __future__ import annotations

import asyncio
import base64
import io

import pytest
from starlette.datastructures import Headers, UploadFile

from app.config import settings
from app.errors import LoadError, ReadError, ValidationError
from app.services import image_loader
from app.services.image_loader import (
    INVALID_TYPE_MESSAGE,
    OVERSIZE_MESSAGE,
    load_default,
    load_upload,
    validate_upload,
)

from tests.conftest import make_upload, png_declaring_size

TWENTY_MIB = 20 * 1024 * 1024


class _BrokenFile(io.RawIOBase):
    def read(self, *args):
        raise OSError("disk went away")


def test_default_image_loads_from_static_dir():
    image = asyncio.run(load_default())
    assert image.source == "default"
    assert image.mime_type == "image/png"
    assert image.raw_bytes().startswith(b"\x89PNG")
    assert image.data_url.startswith("data:image/png;base64,")


def test_missing_default_image_raises_load_error(tmp_path):
    with pytest.raises(LoadError) as exc_info:
        asyncio.run(load_default(tmp_path / "nope.jfif"))
    assert exc_info.value.message == "Failed to load default image"


@pytest.mark.parametrize("content_type", ["application/pdf", "text/plain", "", None, "imagex/png"])
def test_non_image_type_is_rejected(content_type):
    with pytest.raises(ValidationError) as exc_info:
        validate_upload(content_type, 10)
    assert exc_info.value.reason == "type"
    assert exc_info.value.message == INVALID_TYPE_MESSAGE


def test_exactly_twenty_mib_is_accepted():
    validate_upload("image/jpeg", TWENTY_MIB)


def test_one_byte_over_twenty_mib_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_upload("image/jpeg", TWENTY_MIB + 1)
    assert exc_info.value.reason == "size"
    assert exc_info.value.message == OVERSIZE_MESSAGE


def test_oversize_declared_upload_is_rejected_before_reading():
    upload = make_upload(b"tiny", content_type="image/jpeg", size=TWENTY_MIB + 1)
    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(load_upload(upload))
    assert exc_info.value.reason == "size"
    assert upload.file.tell() == 0


def test_actual_length_is_checked_when_size_unknown(monkeypatch, png_bytes):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    upload = make_upload(png_bytes, size=None)
    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(load_upload(upload))
    assert exc_info.value.reason == "size"


def test_valid_upload_is_encoded(png_bytes):
    image = asyncio.run(load_upload(make_upload(png_bytes, filename="oak.png")))
    assert image.source == "upload"
    assert image.filename == "oak.png"
    assert image.mime_type == "image/png"
    assert base64.b64decode(image.data) == png_bytes


def test_detected_type_wins_over_declared_alias(png_bytes):
    image = asyncio.run(load_upload(make_upload(png_bytes, content_type="image/jpg")))
    assert image.mime_type == "image/png"


def test_unrecognised_bytes_keep_declared_type():
    data = b"definitely not a picture"
    image = asyncio.run(load_upload(make_upload(data, content_type="image/png")))
    assert image.mime_type == "image/png"
    assert image.raw_bytes() == data


def test_heic_upload_is_accepted_with_declared_type():
    heic = b"\x00\x00\x00\x18ftypheic\x00\x00\x00\x00mif1heic" + b"\x00" * 64
    image = asyncio.run(load_upload(make_upload(heic, content_type="image/heic", filename="IMG_0001.HEIC")))
    assert image.mime_type == "image/heic"
    assert image.filename == "IMG_0001.HEIC"


def test_huge_pixel_dimensions_raise_read_error():
    data = png_declaring_size(20000, 20000)
    assert len(data) < 1024
    with pytest.raises(ReadError) as exc_info:
        asyncio.run(load_upload(make_upload(data)))
    assert exc_info.value.message == "Failed to read the image file. Please try again."


def test_empty_upload_raises_read_error():
    with pytest.raises(ReadError):
        asyncio.run(load_upload(make_upload(b"", content_type="image/png")))


def test_read_failure_raises_read_error():
    upload = UploadFile(
        file=_BrokenFile(), size=100, filename="bad.png",
        headers=Headers({"content-type": "image/png"}),
    )
    with pytest.raises(ReadError):
        asyncio.run(load_upload(upload))


def test_accepted_types_cover_common_photo_formats():
    assert set(image_loader.ACCEPTED_TYPES) == {"image/jpeg", "image/png", "image/jpg"}
