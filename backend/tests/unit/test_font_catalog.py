"""
Font catalog matching tests
"""

import pytest

from font_catalog import FontCatalogEntry, FontFallback, FontMatcher, is_font_reference, normalize_font_name


def _ref(matcher: FontMatcher, family: str):
    entry = matcher.match(family)
    return entry.platform_reference if entry else None


class TestTiers:
    def test_exact_case_insensitive(self, catalog):
        assert _ref(FontMatcher(catalog), "open sans") == "font-open-sans"

    def test_normalized(self, catalog):
        assert _ref(FontMatcher(catalog), "Open-Sans") == "font-open-sans"
        assert _ref(FontMatcher(catalog), "open_sans") == "font-open-sans"

    def test_style_stripped(self, catalog):
        assert _ref(FontMatcher(catalog), "Montserrat Bold Italic") == "font-montserrat"
        assert _ref(FontMatcher(catalog), "Montserrat-SemiBold") == "font-montserrat"

    def test_substring(self, catalog):
        assert _ref(FontMatcher(catalog), "Arial Narrow MT") == "font-arial"

    def test_style_stripped_substring(self):
        matcher = FontMatcher([FontCatalogEntry("Playfair Display Bold", "font-playfair")])
        assert _ref(matcher, "Playfair Black") == "font-playfair"

    def test_exact_beats_earlier_normalized_entry(self):
        matcher = FontMatcher([
            FontCatalogEntry("RobotoSlab", "normalized-hit"),
            FontCatalogEntry("Roboto Slab", "exact-hit"),
        ])
        assert _ref(matcher, "roboto slab") == "exact-hit"

    def test_no_match(self, catalog):
        assert FontMatcher(catalog).match("Zapfino Extra") is None


class TestSubstringGuard:
    def test_short_name_never_substring_matches(self):
        matcher = FontMatcher([FontCatalogEntry("Gotham", "font-gotham")])
        assert matcher.match("Go") is None

    def test_short_catalog_name_never_substring_matches(self):
        matcher = FontMatcher([FontCatalogEntry("Gil", "font-gil")])
        assert matcher.match("Gill Sans") is None

    def test_threshold_is_configurable(self):
        matcher = FontMatcher([FontCatalogEntry("Gotham", "font-gotham")], min_substring_length=2)
        assert _ref(matcher, "Go") == "font-gotham"


class TestConfiguration:
    def test_custom_style_tokens(self):
        matcher = FontMatcher([FontCatalogEntry("Lato", "font-lato")], style_tokens=["hairline"])
        assert _ref(matcher, "Lato Hairline") == "font-lato"
        assert matcher.strip_style("Lato Bold") == "latobold"

    def test_empty_inputs(self, catalog):
        assert FontMatcher(catalog).match("") is None
        assert FontMatcher([]).match("Open Sans") is None


@pytest.mark.parametrize("name, expected", [
    ("Open Sans", "opensans"),
    ("Source-Code_Pro", "sourcecodepro"),
    ("  PT  Serif ", "ptserif"),
])
def test_normalize_font_name(name, expected):
    assert normalize_font_name(name) == expected


def test_is_font_reference():
    assert is_font_reference("font-1")
    assert not is_font_reference(FontFallback.USE_IMAGE)
    assert not is_font_reference("")
    assert not is_font_reference(None)
