"""
Font Catalog Matching

The host only exposes a small subset of its font library, so exporter font
names are matched against it aggressively, first hit wins:

1. exact name (case-insensitive)
2. normalized name (no whitespace, hyphens or underscores)
3. style-stripped name ("Montserrat Bold Italic" -> "montserrat")
4. substring containment of normalized names, either direction
5. substring containment of style-stripped names, either direction

Substring tiers only fire when both sides are at least `min_substring_length`
characters long, so "Go" never matches "Gotham".
"""

import re
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Optional, List, Sequence, Union

logger = logging.getLogger(__name__)

DEFAULT_STYLE_TOKENS = (
    "bold", "italic", "light", "medium", "thin", "heavy", "regular", "semibold",
    "black", "condensed", "oblique", "book", "demi", "ultra", "extra", "narrow",
)
DEFAULT_MIN_SUBSTRING_LENGTH = 4

_SEPARATORS = re.compile(r"[\s\-_]+")


class FontFallback(str, Enum):
    """Sentinel choice: render the text from its pre-rasterized image."""
    USE_IMAGE = "use_image"


# A platform font reference (opaque string) or the image sentinel
FontChoice = Union[str, FontFallback]


def is_font_reference(choice: Optional[FontChoice]) -> bool:
    return isinstance(choice, str) and not isinstance(choice, FontFallback) and bool(choice)


@dataclass(frozen=True)
class FontCatalogEntry:
    display_name: str
    platform_reference: str


def normalize_font_name(name: str) -> str:
    return _SEPARATORS.sub("", name.lower())


class FontMatcher:
    """Matches exporter font names against the host font catalog."""

    def __init__(
        self,
        catalog: Sequence[FontCatalogEntry],
        style_tokens: Sequence[str] = DEFAULT_STYLE_TOKENS,
        min_substring_length: int = DEFAULT_MIN_SUBSTRING_LENGTH,
    ) -> None:
        self.catalog: List[FontCatalogEntry] = list(catalog)
        self.min_substring_length = min_substring_length
        # Longest tokens first so "semibold" wins over "bold"
        tokens = sorted({t.lower() for t in style_tokens if t}, key=len, reverse=True)
        self._style_pattern = (
            re.compile(r"[\s\-]*(" + "|".join(re.escape(t) for t in tokens) + r")[\s\-]*", re.IGNORECASE)
            if tokens else None
        )
        self._lower = [entry.display_name.lower().strip() for entry in self.catalog]
        self._normalized = [normalize_font_name(entry.display_name) for entry in self.catalog]
        self._stripped = [self.strip_style(entry.display_name) for entry in self.catalog]

    def strip_style(self, name: str) -> str:
        lowered = name.lower()
        if self._style_pattern is not None:
            lowered = self._style_pattern.sub(" ", lowered)
        return normalize_font_name(lowered).strip()

    def _long_enough(self, value: str) -> bool:
        return len(value) >= self.min_substring_length

    def match(self, font_family: str) -> Optional[FontCatalogEntry]:
        """Return the first catalog entry matching `font_family`, or None."""
        if not font_family or not self.catalog:
            return None

        lower = font_family.lower().strip()
        normalized = normalize_font_name(font_family)
        stripped = self.strip_style(font_family)

        for i, candidate in enumerate(self._lower):
            if candidate == lower:
                return self._hit(font_family, i, "exact")

        for i, candidate in enumerate(self._normalized):
            if candidate == normalized:
                return self._hit(font_family, i, "normalized")

        if stripped:
            for i in range(len(self.catalog)):
                if stripped in (self._stripped[i], self._normalized[i]):
                    return self._hit(font_family, i, "style-stripped")

        if self._long_enough(normalized):
            for i, candidate in enumerate(self._normalized):
                if self._long_enough(candidate) and (candidate in normalized or normalized in candidate):
                    return self._hit(font_family, i, "substring")

        if self._long_enough(stripped):
            for i, candidate in enumerate(self._stripped):
                if self._long_enough(candidate) and (candidate in stripped or stripped in candidate):
                    return self._hit(font_family, i, "style-stripped substring")

        return None

    def _hit(self, font_family: str, i: int, tier: str) -> FontCatalogEntry:
        entry = self.catalog[i]
        logger.debug(f"🔤 '{font_family}' matched '{entry.display_name}' ({tier})")
        return entry
