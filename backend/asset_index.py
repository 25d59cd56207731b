"""
Asset Index

Indexes an exporter output folder. Each artboard has its own sub-folder
with a layout.json and the files it references; files at the top level
belong to the "__root__" group.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from errors import LayoutLoadError
from layout_models import Layout

logger = logging.getLogger(__name__)

ROOT_GROUP = "__root__"
LAYOUT_FILE_NAME = "layout.json"
FONTS_FOLDER = "_fonts"

_MIME_TYPES = {
    ".svg": "image/svg+xml",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


def mime_type_for(file_name: str) -> str:
    return _MIME_TYPES.get(Path(file_name).suffix.lower(), "image/png")


@dataclass
class AssetIndex:
    root: Path
    # relative posix path -> absolute path
    files: Dict[str, Path] = field(default_factory=dict)
    # artboard folder -> file name -> relative posix path
    artboards: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @classmethod
    def scan(cls, root: Path) -> "AssetIndex":
        root = Path(root)
        index = cls(root=root)
        for path in sorted(p for p in root.rglob("*") if p.is_file()):
            rel = path.relative_to(root).as_posix()
            index.files[rel] = path
            parts = rel.split("/")
            group = parts[0] if len(parts) >= 2 else ROOT_GROUP
            index.artboards.setdefault(group, {})[parts[-1]] = rel
        logger.info(f"📁 Indexed {len(index.files)} files in {len(index.artboards)} folder(s) under {root}")
        return index

    def find(self, artboard_name: str, file_name: str) -> Optional[Path]:
        """Locate a file: the artboard's folder, then any folder, then any path ending in the name."""
        if not file_name:
            return None
        own = self.artboards.get(artboard_name)
        if own and file_name in own:
            return self.files.get(own[file_name])
        for file_map in self.artboards.values():
            if file_name in file_map:
                return self.files.get(file_map[file_name])
        suffix = "/" + file_name
        for rel, path in self.files.items():
            if rel.endswith(suffix):
                return path
        return None

    @property
    def artboard_names(self) -> List[str]:
        return [name for name in self.artboards if name != ROOT_GROUP]

    @property
    def has_fonts_folder(self) -> bool:
        return any(FONTS_FOLDER in rel.split("/")[:-1] for rel in self.files)

    def layout_paths(self) -> List[Path]:
        return [path for path in self.files.values() if path.name == LAYOUT_FILE_NAME]


def load_layouts(index: AssetIndex) -> List[Layout]:
    """Parse every layout.json in the index; unreadable ones are logged and skipped."""
    layouts: List[Layout] = []
    for path in index.layout_paths():
        try:
            layouts.append(Layout.model_validate_json(path.read_text(encoding="utf-8")))
        except (OSError, ValidationError) as e:
            logger.error(f"❌ Failed to parse {path}: {e}")
    if not layouts:
        raise LayoutLoadError(f"No loadable {LAYOUT_FILE_NAME} under {index.root}", {"root": str(index.root)})

    if index.has_fonts_folder:
        logger.info(f"ℹ️ Export contains a {FONTS_FOLDER}/ folder; install those fonts on the platform manually")
    total = sum(len(layout.objects) for layout in layouts)
    logger.info(f"📐 Loaded {len(layouts)} artboard(s), {total} objects")
    return layouts
