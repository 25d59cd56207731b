"""
Shape Paths

Turns a mask's clip shape into SVG path data for a host frame element.
The host accepts a single M, then L/C segments, and an explicit Z; quadratic
curves are not allowed. Coordinates are local to the element: [0,w] x [0,h].
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Union

from layout_models import ClipShape

# Cubic bezier handle ratio for a quarter circle
BEZIER_CIRCLE_K = 0.5523

_TWO_PLACES = Decimal("0.01")


def _coord(value: float) -> str:
    """Round half-up to 2 decimals and print without trailing zeros."""
    # round(.., 10) drops binary noise such as 77.61499999999 before the decimal rounding
    rounded = Decimal(repr(round(value, 10))).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    if rounded == rounded.to_integral_value():
        return str(int(rounded))
    return format(rounded.normalize(), "f")


def _join(parts: List[Union[str, float]]) -> str:
    return " ".join(p if isinstance(p, str) else _coord(p) for p in parts)


def ellipse_path(w: float, h: float) -> str:
    cx, cy = w / 2, h / 2
    kx, ky = cx * BEZIER_CIRCLE_K, cy * BEZIER_CIRCLE_K
    return _join([
        "M", cx, 0,
        "C", cx + kx, 0, w, cy - ky, w, cy,
        "C", w, cy + ky, cx + kx, h, cx, h,
        "C", cx - kx, h, 0, cy + ky, 0, cy,
        "C", 0, cy - ky, cx - kx, 0, cx, 0,
        "Z",
    ])


def rounded_rect_path(w: float, h: float, corner_radius: Optional[float]) -> str:
    radius = corner_radius or 0
    if radius <= 0:
        return _join(["M", 0, 0, "L", w, 0, "L", w, h, "L", 0, h, "Z"])

    # Clamp so opposite corners never overlap
    r = min(radius, w / 2, h / 2)
    k = r * BEZIER_CIRCLE_K
    return _join([
        "M", r, 0,
        "L", w - r, 0,
        "C", w - r + k, 0, w, r - k, w, r,
        "L", w, h - r,
        "C", w, h - r + k, w - r + k, h, w - r, h,
        "L", r, h,
        "C", r - k, h, 0, h - r + k, 0, h - r,
        "L", 0, r,
        "C", 0, r - k, r - k, 0, r, 0,
        "Z",
    ])


def generate_shape_path(clip_shape: Optional[ClipShape], w: float, h: float) -> Optional[str]:
    """Return frame path data for a clip shape, or None when the shape cannot be synthesized.

    None means the caller should fall back to the pre-cropped raster.
    """
    if clip_shape is None or w <= 0 or h <= 0:
        return None
    if clip_shape.type == "ellipse":
        return ellipse_path(w, h)
    if clip_shape.type == "roundedRect":
        return rounded_rect_path(w, h, clip_shape.corner_radius)
    return None
