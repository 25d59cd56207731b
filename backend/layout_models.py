"""
Layout Models

Pydantic models for the exporter's layout.json. Field names follow the
exporter's camelCase JSON; Python code uses the snake_case attributes.
"""

import logging
from enum import Enum
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data):
        # The exporter writes null for unset values; let the field defaults apply
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ObjectType(str, Enum):
    IMAGE_VECTOR = "svg"
    IMAGE_RASTER = "png"
    TEXT = "text"
    MASKED_CONTENT = "clipMask"
    # Anything else the exporter writes; placed as a plain image
    OTHER = "other"


_KNOWN_TYPES = {t.value for t in ObjectType if t is not ObjectType.OTHER}


class TextData(_CamelModel):
    content: str = ""
    font_family: str = ""
    font_post_script_name: Optional[str] = None
    font_size: float = 12.0
    font_weight: str = "normal"
    font_style: str = "normal"
    color: str = ""
    alignment: str = "left"
    line_height: float = 0.0
    letter_spacing: float = 0.0
    text_decoration: str = "none"


class ClipShape(_CamelModel):
    type: Literal["ellipse", "roundedRect", "unknown"] = "unknown"
    corner_radius: Optional[float] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value):
        # The exporter writes "rect" for rectangles; other discriminators are unknown
        if value == "rect":
            return "roundedRect"
        if value not in ("ellipse", "roundedRect"):
            return "unknown"
        return value


class StrokeBounds(_CamelModel):
    x: float
    y: float
    width: float
    height: float


class LayoutObject(_CamelModel):
    index: int
    file_name: str = ""
    type: ObjectType
    object_type: Optional[str] = None
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    z_index: Optional[float] = None
    opacity: Optional[float] = None
    text_data: Optional[TextData] = None
    clip_shape: Optional[ClipShape] = None
    stroke_file_name: Optional[str] = None
    stroke_bounds: Optional[StrokeBounds] = None
    content_file_name: Optional[str] = None
    text_svg_file_name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _keep_unknown_type(cls, data):
        raw_type = data.get("type") if isinstance(data, dict) else None
        if isinstance(data, dict) and not (isinstance(raw_type, str) and raw_type in _KNOWN_TYPES):
            data = dict(data)
            data.setdefault("objectType", str(raw_type))
            data["type"] = ObjectType.OTHER
        return data

    @field_validator("opacity", mode="before")
    @classmethod
    def _clamp_opacity(cls, value):
        try:
            return min(1.0, max(0.0, float(value)))
        except (TypeError, ValueError):
            return None

    @property
    def paint_order(self) -> float:
        return self.z_index if self.z_index is not None else self.index

    @property
    def needs_opacity_correction(self) -> bool:
        # A missing opacity means no adjustment, same as fully opaque
        return self.opacity is not None and self.opacity < 1


class Layout(_CamelModel):
    version: Optional[str] = None
    artboard_name: str
    width: float
    height: float
    objects: List[LayoutObject] = Field(default_factory=list)

    @field_validator("objects", mode="before")
    @classmethod
    def _drop_unreadable_objects(cls, value):
        if not isinstance(value, list):
            return value
        objects = []
        for position, raw in enumerate(value):
            try:
                objects.append(LayoutObject.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"⚠️ Ignoring unreadable object #{position}: {e.error_count()} error(s), first: {e.errors()[0]['msg']}")
        return objects

    def sorted_objects(self) -> List[LayoutObject]:
        """Objects in paint order: zIndex (or index) ascending, ties by original index."""
        return sorted(self.objects, key=lambda obj: (obj.paint_order, obj.index))
