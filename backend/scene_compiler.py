"""
Scene Compiler

Turns an artboard's layout objects into the ordered element list submitted
to the host. The compile is a fold over the objects in paint order: each
object either emits exactly one element or is skipped. The position of an
emitted element in the output is the only handle later passes have on it,
so opacity assignments are taken from that position.
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Mapping, Sequence, Tuple

from font_catalog import FontChoice, is_font_reference, FontFallback
from layout_models import LayoutObject, ObjectType, TextData
from scene_elements import AltText, GroupElement, ImageElement, SceneElement, TextElement, image_frame
from shape_paths import generate_shape_path

logger = logging.getLogger(__name__)

DEFAULT_TEXT_WIDTH_PADDING = 1.15
MIN_FONT_SIZE = 1
MAX_FONT_SIZE = 100

FONT_WEIGHT_MAP: Dict[str, str] = {
    "normal": "normal", "thin": "thin", "extralight": "extralight",
    "light": "light", "medium": "medium", "semibold": "semibold",
    "bold": "bold", "ultrabold": "ultrabold", "heavy": "heavy", "black": "heavy",
}

TEXT_ALIGN_MAP: Dict[str, str] = {
    "left": "start", "center": "center", "right": "end", "justify": "justify",
}

FONT_STYLE_MAP: Dict[str, str] = {"italic": "italic", "normal": "normal"}

DECORATION_MAP: Dict[str, str] = {"underline": "underline", "none": "none"}


@dataclass(frozen=True)
class OpacityAssignment:
    element_index: int
    opacity: float


@dataclass(frozen=True)
class SkippedObject:
    index: int
    file_name: str
    reason: str


@dataclass
class CompileResult:
    elements: List[SceneElement] = field(default_factory=list)
    opacity_assignments: List[OpacityAssignment] = field(default_factory=list)
    skipped: List[SkippedObject] = field(default_factory=list)
    frame_count: int = 0
    text_image_count: int = 0

    def payload(self) -> List[dict]:
        return [element.to_payload() for element in self.elements]


class SceneCompiler:
    def __init__(
        self,
        asset_refs: Mapping[str, str],
        fonts: Mapping[str, FontChoice],
        text_width_padding: float = DEFAULT_TEXT_WIDTH_PADDING,
    ) -> None:
        self.asset_refs = asset_refs
        self.fonts = fonts
        self.text_width_padding = text_width_padding

    def compile(self, objects: Sequence[LayoutObject]) -> CompileResult:
        """Compile objects already sorted in paint order."""
        result = CompileResult()
        for obj in objects:
            element, skip_reason = self._compile_object(obj, result)
            if element is None:
                logger.warning(f"⚠️ Skipped object #{obj.index} '{obj.file_name}': {skip_reason}")
                result.skipped.append(SkippedObject(obj.index, obj.file_name, skip_reason or "skipped"))
                continue

            element_index = len(result.elements)
            result.elements.append(element)
            if obj.needs_opacity_correction:
                result.opacity_assignments.append(OpacityAssignment(element_index, obj.opacity))

        if result.text_image_count:
            logger.info(f"🖼️ {result.text_image_count} text object(s) placed as images")
        if result.frame_count:
            logger.info(f"⬡ {result.frame_count} frame(s)")
        return result

    def _compile_object(self, obj: LayoutObject, result: CompileResult) -> Tuple[Optional[SceneElement], Optional[str]]:
        if obj.type == ObjectType.MASKED_CONTENT:
            return self._compile_mask(obj, result)
        if obj.type == ObjectType.TEXT and obj.text_data is not None:
            return self._compile_text(obj, obj.text_data, result), None
        return self._compile_image(obj)

    # Masks
    def _compile_mask(self, obj: LayoutObject, result: CompileResult) -> Tuple[Optional[SceneElement], Optional[str]]:
        content_file = obj.content_file_name or obj.file_name
        content_ref = self.asset_refs.get(content_file)
        if not content_ref:
            return None, f"no uploaded content asset '{content_file}'"

        path_data = generate_shape_path(obj.clip_shape, obj.width, obj.height)
        if path_data is None:
            fallback_ref = self.asset_refs.get(obj.file_name)
            if not fallback_ref:
                return None, f"shape cannot be synthesized and no cropped asset '{obj.file_name}'"
            logger.info(f"→ Clip fallback: {obj.file_name}")
            return ImageElement(
                ref=fallback_ref, top=obj.y, left=obj.x, width=obj.width, height=obj.height,
                alt_text=AltText(text="clipped", decorative=False),
            ), None

        frame = image_frame(path_data, content_ref, obj.x, obj.y, obj.width, obj.height)
        result.frame_count += 1
        stroke_ref = self.asset_refs.get(obj.stroke_file_name) if obj.stroke_file_name else None

        if stroke_ref and obj.stroke_bounds is not None:
            # The group takes the stroke art's box; the frame sits at the mask's offset inside it
            sb = obj.stroke_bounds
            logger.info(f"⬡ Frame+Effects: {content_file}")
            return GroupElement(
                children=[
                    ImageElement(
                        ref=stroke_ref, top=0, left=0, width=sb.width, height=sb.height,
                        alt_text=AltText(text="effects", decorative=True),
                    ),
                    frame.model_copy(update={"top": obj.y - sb.y, "left": obj.x - sb.x}),
                ],
                top=sb.y, left=sb.x, width=sb.width, height=sb.height,
            ), None

        if stroke_ref:
            logger.warning(f"⚠️ Stroke '{obj.stroke_file_name}' has no bounds, assuming the mask box")
            return GroupElement(
                children=[
                    frame.model_copy(update={"top": 0, "left": 0}),
                    ImageElement(
                        ref=stroke_ref, top=0, left=0, width=obj.width, height=obj.height,
                        alt_text=AltText(text="stroke", decorative=True),
                    ),
                ],
                top=obj.y, left=obj.x, width=obj.width, height=obj.height,
            ), None

        logger.info(f"⬡ Frame: {content_file} ({obj.width}x{obj.height})")
        return frame, None

    # Text
    def _compile_text(self, obj: LayoutObject, td: TextData, result: CompileResult) -> SceneElement:
        choice = self.fonts.get(td.font_family)
        if is_font_reference(choice):
            return self._text_element(obj, td, font_ref=choice)

        text_image_ref = self.asset_refs.get(obj.text_svg_file_name) if obj.text_svg_file_name else None
        if text_image_ref:
            result.text_image_count += 1
            return ImageElement(
                ref=text_image_ref, top=obj.y, left=obj.x, width=obj.width, height=obj.height,
                alt_text=AltText(text=td.content[:30], decorative=False),
            )

        if choice == FontFallback.USE_IMAGE:
            logger.warning(f"⚠️ No text image for '{td.content[:30]}', keeping it as editable text")
        return self._text_element(obj, td, font_ref=None)

    def _text_element(self, obj: LayoutObject, td: TextData, font_ref: Optional[str]) -> TextElement:
        return TextElement(
            children=[td.content],
            top=obj.y,
            left=obj.x,
            width=math.ceil(obj.width * self.text_width_padding),
            font_size=max(MIN_FONT_SIZE, min(MAX_FONT_SIZE, math.floor(td.font_size + 0.5))),
            color=td.color or "#000000",
            font_weight=FONT_WEIGHT_MAP.get((td.font_weight or "").lower(), "normal"),
            font_style=FONT_STYLE_MAP.get((td.font_style or "").lower(), "normal"),
            text_align=TEXT_ALIGN_MAP.get((td.alignment or "").lower(), "start"),
            decoration=DECORATION_MAP.get((td.text_decoration or "").lower(), "none"),
            font_ref=font_ref,
        )

    # Plain images
    def _compile_image(self, obj: LayoutObject) -> Tuple[Optional[SceneElement], Optional[str]]:
        ref = self.asset_refs.get(obj.file_name)
        if not ref:
            return None, f"no uploaded asset '{obj.file_name}'"
        return ImageElement(
            ref=ref, top=obj.y, left=obj.x, width=obj.width, height=obj.height,
            alt_text=AltText(text=obj.file_name, decorative=False),
        ), None
