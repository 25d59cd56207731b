"""
layout.json parsing tests
"""

import pytest

from conftest import POSTER_OBJECTS
from layout_models import Layout, LayoutObject, ObjectType


def test_poster_parses():
    layout = Layout.model_validate({"version": "4.6", "artboardName": "Poster", "width": 800, "height": 600, "objects": POSTER_OBJECTS})
    title, mask = layout.objects[1], layout.objects[2]

    assert title.type == ObjectType.TEXT
    assert title.text_data.font_family == "Montserrat Bold"
    assert title.text_data.font_size == 48
    assert title.text_svg_file_name == "title_text.svg"

    assert mask.type == ObjectType.MASKED_CONTENT
    assert mask.clip_shape.type == "ellipse"
    assert mask.stroke_bounds.width == 220
    assert mask.content_file_name == "avatar_content.png"


def test_text_data_defaults():
    obj = LayoutObject.model_validate({"index": 0, "type": "text", "textData": {"content": "x"}})
    assert obj.text_data.font_size == 12
    assert obj.text_data.alignment == "left"
    assert obj.text_data.text_decoration == "none"


@pytest.mark.parametrize("opacity, needs", [(None, False), (1, False), (0.99, True), (0, True)])
def test_needs_opacity_correction(opacity, needs):
    obj = LayoutObject.model_validate({"index": 0, "type": "png", "opacity": opacity})
    assert obj.needs_opacity_correction is needs


@pytest.mark.parametrize("opacity, expected", [(1.5, 1.0), (-0.2, 0.0), ("0.4", 0.4), ("half", None)])
def test_opacity_clamped(opacity, expected):
    assert LayoutObject.model_validate({"index": 0, "type": "png", "opacity": opacity}).opacity == expected


def test_unknown_object_type_kept_as_other():
    obj = LayoutObject.model_validate({"index": 0, "fileName": "g.png", "type": "group"})
    assert obj.type == ObjectType.OTHER
    assert obj.object_type == "group"


def test_null_values_fall_back_to_defaults():
    obj = LayoutObject.model_validate({
        "index": 0, "type": "text", "x": None, "opacity": None,
        "textData": {"content": "x", "color": None, "fontFamily": None, "fontSize": None},
    })
    assert obj.x == 0
    assert obj.opacity is None
    assert obj.text_data.color == ""
    assert obj.text_data.font_family == ""
    assert obj.text_data.font_size == 12


def test_one_unreadable_object_does_not_reject_the_layout():
    layout = Layout.model_validate({
        "artboardName": "A", "width": 10, "height": 10,
        "objects": [
            {"index": 0, "fileName": "a.png", "type": "png"},
            {"fileName": "no-index.png", "type": "png"},
            "not an object",
            {"index": 3, "fileName": "g.png", "type": "group"},
        ],
    })
    assert [obj.index for obj in layout.objects] == [0, 3]


def test_paint_order_falls_back_to_index():
    assert LayoutObject.model_validate({"index": 7, "type": "png"}).paint_order == 7
    assert LayoutObject.model_validate({"index": 7, "type": "png", "zIndex": 2}).paint_order == 2
