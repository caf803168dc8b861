"""Pydantic models for images, display blocks and API payloads."""

from __future__ import annotations

import base64
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

class EncodedImage(BaseModel):
    """One photo as mime type + base64 payload. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    mime_type: str
    data: str
    source: Literal["default", "upload"] = "upload"
    filename: str | None = None

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


# ---------------------------------------------------------------------------
# Display blocks
# ---------------------------------------------------------------------------

class Heading(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["heading"] = "heading"
    text: str


class LabeledField(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["field"] = "field"
    label: str
    value: str


class BulletItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["bullet"] = "bullet"
    text: str


class Paragraph(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["paragraph"] = "paragraph"
    text: str


DisplayBlock = Annotated[
    Union[Heading, LabeledField, BulletItem, Paragraph],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

class FormatRequest(BaseModel):
    report: str


class FormatResponse(BaseModel):
    blocks: list[DisplayBlock]


class AnalyzeResponse(BaseModel):
    report: str
    blocks: list[DisplayBlock]


class PageStateResponse(BaseModel):
    phase: Literal["idle", "loading", "ready", "failed"]
    is_loading: bool
    error: str | None = None
    image_url: str | None = None
    image_source: str | None = None
    report: str | None = None
    blocks: list[DisplayBlock] = []
