"""Pydantic models for design documents and the HTTP API.

A design document is the JSON the editor produces::

    {"title": "...", "elements": [{"type": "text", "content": "...", "style": {...}},
                                  {"type": "image", "src": "...", "style": {...}}]}

``elements`` is parsed into a closed union of :class:`TextLayer` and
:class:`ImageLayer`. Entries of any other type are dropped while parsing so
that they never reach the compositor. Styles stay raw dictionaries here;
``shirt_designer.styles`` turns them into typed values.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

import pydantic
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from shirt_designer.errors import ValidationError

LAYER_TYPES = ("text", "image")


def _style_dict(v: Any) -> Dict[str, Any]:
    return v if isinstance(v, dict) else {}


def _payload_str(v: Any) -> Any:
    # The editor occasionally sends numeric text content.
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


def _reference_str(v: Any) -> Any:
    # Non-string references are kept so that loading them fails per layer.
    if v is None or isinstance(v, str):
        return v
    return str(v)


Style = Annotated[Dict[str, Any], BeforeValidator(_style_dict)]
Content = Annotated[Optional[str], BeforeValidator(_payload_str)]
Reference = Annotated[Optional[str], BeforeValidator(_reference_str)]


class TextLayer(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["text"] = "text"
    content: Content = None
    style: Style = Field(default_factory=dict)


class ImageLayer(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["image"] = "image"
    src: Reference = None
    style: Style = Field(default_factory=dict)


Layer = Annotated[Union[TextLayer, ImageLayer], Field(discriminator="type")]


class DesignDocument(BaseModel):
    """An ordered stack of layers; the first element is painted first."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str = ""
    elements: Tuple[Layer, ...] = ()

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    @field_validator("elements", mode="before")
    @classmethod
    def _known_layers(cls, v: Any) -> Any:
        if v is None:
            return ()
        if not isinstance(v, (list, tuple)):
            raise ValueError("elements must be a list of layers")
        kept = []
        for element in v:
            if isinstance(element, (TextLayer, ImageLayer)):
                kept.append(element)
            elif isinstance(element, dict) and element.get("type") in LAYER_TYPES:
                kept.append(element)
        return kept

    @classmethod
    def parse(cls, data: Any) -> "DesignDocument":
        """Build a document from request JSON, raising our ValidationError.

        ``None`` yields an empty document, which renders as a blank shirt.
        """
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        if not isinstance(data, dict):
            raise ValidationError("designData must be an object")
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(str(e)) from e


# -----------------------------
# HTTP bodies
# -----------------------------

class ExportRequest(BaseModel):
    designData: Any = None
    shirtColor: Optional[str] = None


class ExportResponse(BaseModel):
    success: bool = True
    downloadUrl: str
    message: str = "Design exported successfully"


class UploadResponse(BaseModel):
    success: bool = True
    imageUrl: str
    message: str = "Image uploaded successfully"


class DesignCreate(BaseModel):
    title: str
    designData: Dict[str, Any]
    thumbnail: Optional[str] = None


class DesignUpdate(BaseModel):
    title: Optional[str] = None
    designData: Optional[Dict[str, Any]] = None
    thumbnail: Optional[str] = None


class DesignRecord(BaseModel):
    """A saved design as held by the design store."""

    id: str
    user_id: str
    title: str
    design_data: Dict[str, Any] = Field(default_factory=dict)
    thumbnail: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "thumbnail": self.thumbnail,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def to_api(self) -> Dict[str, Any]:
        payload = self.summary()
        payload["userId"] = self.user_id
        payload["designData"] = self.design_data
        return payload

