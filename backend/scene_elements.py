"""
Scene Elements

Pydantic models for the elements submitted to the host's page-creation call.
Serialized with camelCase keys, the shape the plugin forwards to the host API.
Group children are positioned relative to the group; everything else is
positioned on the page.
"""

from typing import Optional, List, Literal, Union, Dict, Any, Annotated
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ElementModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class AltText(_ElementModel):
    text: str
    decorative: bool = False


class ImageElement(_ElementModel):
    type: Literal["image"] = "image"
    ref: str
    top: float
    left: float
    width: float
    height: float
    alt_text: Optional[AltText] = None


class TextElement(_ElementModel):
    type: Literal["text"] = "text"
    children: List[str]
    top: float
    left: float
    width: float
    font_size: int
    color: str = "#000000"
    font_weight: str = "normal"
    font_style: str = "normal"
    text_align: str = "start"
    decoration: str = "none"
    font_ref: Optional[str] = None


class ImageAsset(_ElementModel):
    type: Literal["image"] = "image"
    ref: str


class PathFill(_ElementModel):
    # drop_target lets the contained image be swapped without touching the shape
    drop_target: bool = True
    asset: ImageAsset


class ShapePath(_ElementModel):
    d: str
    fill: PathFill


class ViewBox(_ElementModel):
    width: float
    height: float
    top: float = 0
    left: float = 0


class ShapeElement(_ElementModel):
    type: Literal["shape"] = "shape"
    paths: List[ShapePath]
    view_box: ViewBox
    top: float
    left: float
    width: float
    height: float


class GroupElement(_ElementModel):
    type: Literal["group"] = "group"
    children: List["SceneElement"]
    top: float
    left: float
    width: float
    height: float


SceneElement = Annotated[
    Union[ImageElement, TextElement, ShapeElement, GroupElement],
    Field(discriminator="type"),
]

GroupElement.model_rebuild()


def image_frame(path_data: str, asset_ref: str, x: float, y: float, width: float, height: float) -> ShapeElement:
    """Build a frame: a vector shape in local [0,w]x[0,h] space whose fill is a replaceable image."""
    return ShapeElement(
        paths=[ShapePath(d=path_data, fill=PathFill(drop_target=True, asset=ImageAsset(ref=asset_ref)))],
        view_box=ViewBox(width=width, height=height),
        top=y,
        left=x,
        width=width,
        height=height,
    )
