import time
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional

from font_catalog import FontCatalogEntry, FontChoice, FontFallback


logger = logging.getLogger(__name__)


@dataclass
class FontChoiceRecord:
    """A human font decision kept for the rest of the session."""

    family: str
    choice: FontChoice
    created_at_ms: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def uses_image(self) -> bool:
        return self.choice == FontFallback.USE_IMAGE


class ImportSessionStore:
    """In-memory state shared by every import run of one session.

    Holds the host font catalog (queried once) and the user's font decisions,
    keyed by lowercased family. Artboards are imported one at a time, so the
    store is never touched concurrently.
    """

    def __init__(self) -> None:
        self._font_catalog: Optional[List[FontCatalogEntry]] = None
        self._font_choices: Dict[str, FontChoiceRecord] = {}

    # Font catalog
    @property
    def font_catalog(self) -> Optional[List[FontCatalogEntry]]:
        return self._font_catalog

    def set_font_catalog(self, entries: List[FontCatalogEntry]) -> None:
        self._font_catalog = list(entries)

    # User font decisions
    def get_font_choice(self, family: str) -> Optional[FontChoice]:
        record = self._font_choices.get(family.lower())
        return record.choice if record else None

    def record_font_choice(self, family: str, choice: FontChoice) -> None:
        self._font_choices[family.lower()] = FontChoiceRecord(family=family, choice=choice)

    def font_choices(self) -> List[FontChoiceRecord]:
        return list(self._font_choices.values())

    def reset_font_choices(self) -> None:
        count = len(self._font_choices)
        self._font_choices.clear()
        logger.info(f"🧼 Cleared {count} cached font choice(s)")

    def clear(self) -> None:
        self._font_catalog = None
        self._font_choices.clear()
