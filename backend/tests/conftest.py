"""
Shared fixtures: a fake host platform, a sleep recorder and a sample export folder.

Usage:
    def test_something(platform, sleeper, export_folder):
        ...
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from font_catalog import FontCatalogEntry
from importer_config import ImporterSettings
from platform_client import LiveElement
from platform_communicator import CommandExecutionError


class SleepRecorder:
    """Stands in for asyncio.sleep and records every requested delay."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


class FakeSession:
    def __init__(self, elements: List[LiveElement], page_type: str = "absolute", page_locked: bool = False, sync_error: Optional[Exception] = None):
        self.elements = elements
        self.page_type = page_type
        self.page_locked = page_locked
        self.sync_error = sync_error
        self.changes: Dict[int, float] = {}
        self.synced: Optional[Dict[int, float]] = None

    @property
    def page_editable(self) -> bool:
        return self.page_type == "absolute" and not self.page_locked

    def set_transparency(self, index: int, transparency: float) -> None:
        self.changes[index] = transparency

    async def sync(self) -> None:
        if self.sync_error:
            raise self.sync_error
        self.synced = dict(self.changes)


class FakePlatform:
    """In-memory host: font catalog, uploads, page creation and editing sessions."""

    def __init__(self, catalog: Optional[List[FontCatalogEntry]] = None, page_errors: Optional[List[Exception]] = None):
        self.catalog = list(catalog or [])
        self.catalog_queries = 0
        self.uploads: List[str] = []
        self.page_errors = list(page_errors or [])
        self.page_attempts = 0
        self.pages: List[Dict[str, Any]] = []
        self.session: Optional[FakeSession] = None
        self.session_error: Optional[Exception] = None

    async def query_font_catalog(self) -> List[FontCatalogEntry]:
        self.catalog_queries += 1
        return list(self.catalog)

    async def upload_asset(self, data: bytes, mime_type: str) -> str:
        if data.startswith(b"FAIL"):
            raise CommandExecutionError({"code": "upload_failed", "message": "rejected"})
        self.uploads.append(mime_type)
        return f"asset-{len(self.uploads)}"

    async def create_page(self, title: str, width: float, height: float, elements: List[Dict[str, Any]]) -> Dict[str, Any]:
        self.page_attempts += 1
        if self.page_errors:
            raise self.page_errors.pop(0)
        self.pages.append({"title": title, "width": width, "height": height, "elements": elements})
        return {"success": True}

    async def open_editable_session(self, page_selector: Optional[Dict[str, Any]] = None) -> FakeSession:
        if self.session_error:
            raise self.session_error
        if self.session is None:
            elements = self.pages[-1]["elements"] if self.pages else []
            self.session = FakeSession([LiveElement(index=i, type=el["type"]) for i, el in enumerate(elements)])
        return self.session


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def catalog() -> List[FontCatalogEntry]:
    return [
        FontCatalogEntry("Open Sans", "font-open-sans"),
        FontCatalogEntry("Montserrat", "font-montserrat"),
        FontCatalogEntry("Roboto Slab", "font-roboto-slab"),
        FontCatalogEntry("Arial", "font-arial"),
    ]


@pytest.fixture
def platform(catalog) -> FakePlatform:
    return FakePlatform(catalog=catalog)


@pytest.fixture
def settings() -> ImporterSettings:
    return ImporterSettings()


def write_artboard(root: Path, name: str, objects: List[Dict[str, Any]], files: Dict[str, bytes], width: float = 800, height: float = 600) -> Path:
    folder = root / name
    folder.mkdir(parents=True, exist_ok=True)
    layout = {"version": "4.6", "artboardName": name, "width": width, "height": height, "objects": objects}
    (folder / "layout.json").write_text(json.dumps(layout), encoding="utf-8")
    for file_name, data in files.items():
        (folder / file_name).write_bytes(data)
    return folder


POSTER_OBJECTS: List[Dict[str, Any]] = [
    {"index": 0, "fileName": "bg.png", "type": "png", "x": 0, "y": 0, "width": 800, "height": 600, "zIndex": 0, "opacity": 1},
    {
        "index": 1, "fileName": "title.svg", "type": "text", "x": 40, "y": 40, "width": 300, "height": 60,
        "zIndex": 2, "opacity": 0.5, "textSvgFileName": "title_text.svg",
        "textData": {
            "content": "Hello", "fontFamily": "Montserrat Bold", "fontSize": 48, "fontWeight": "bold",
            "fontStyle": "normal", "color": "#ff0000", "alignment": "center", "lineHeight": 1.2,
            "letterSpacing": 0, "textDecoration": "none",
        },
    },
    {
        "index": 2, "fileName": "avatar_clipped.png", "type": "clipMask", "x": 0, "y": 0, "width": 200, "height": 200,
        "zIndex": 1, "opacity": 0.8, "contentFileName": "avatar_content.png", "strokeFileName": "avatar_stroke.png",
        "strokeBounds": {"x": -10, "y": -10, "width": 220, "height": 220},
        "clipShape": {"type": "ellipse"},
    },
    {
        "index": 3, "fileName": "caption.svg", "type": "text", "x": 40, "y": 500, "width": 200, "height": 20,
        "zIndex": 3, "textSvgFileName": "caption_text.svg",
        "textData": {"content": "Fancy caption", "fontFamily": "Zapfino Extra", "fontSize": 14},
    },
]

POSTER_FILES: Dict[str, bytes] = {
    "bg.png": b"png-bg",
    "title_text.svg": b"<svg/>",
    "avatar_clipped.png": b"png-clipped",
    "avatar_content.png": b"png-content",
    "avatar_stroke.png": b"png-stroke",
    "caption_text.svg": b"<svg/>",
}


@pytest.fixture
def export_folder(tmp_path: Path) -> Path:
    root = tmp_path / "export"
    write_artboard(root, "Poster", POSTER_OBJECTS, POSTER_FILES)
    return root
