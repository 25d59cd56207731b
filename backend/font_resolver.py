"""
Font Resolver

Resolves every font family used on an artboard before any element is built:
catalog match -> session cache -> ask a human. Human decisions go through a
capacity-1 request/response channel, so at most one question is outstanding
and the import waits until it is answered.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, List, Iterable, Callable, Awaitable, Sequence

from font_catalog import (
    DEFAULT_MIN_SUBSTRING_LENGTH,
    DEFAULT_STYLE_TOKENS,
    FontCatalogEntry,
    FontChoice,
    FontFallback,
    FontMatcher,
    is_font_reference,
)
from session_store import ImportSessionStore

logger = logging.getLogger(__name__)

CatalogSource = Callable[[], Awaitable[List[FontCatalogEntry]]]


@dataclass
class FontDecisionRequest:
    family: str
    future: asyncio.Future = field(repr=False)


class FontDecisionChannel:
    """Bounded (capacity 1) channel carrying font questions to a human and answers back."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._requests: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._pending: Optional[FontDecisionRequest] = None

    @property
    def pending_family(self) -> Optional[str]:
        return self._pending.family if self._pending else None

    async def request(self, family: str) -> FontChoice:
        """Ask for a decision about `family` and wait for the answer."""
        async with self._lock:
            request = FontDecisionRequest(family=family, future=asyncio.get_running_loop().create_future())
            self._pending = request
            await self._requests.put(request)
            try:
                return await request.future
            finally:
                self._pending = None
                # Drop our request if nobody picked it up so the slot is free again
                while not self._requests.empty():
                    self._requests.get_nowait()

    async def next_request(self) -> FontDecisionRequest:
        """Wait for the next question to present to the human."""
        return await self._requests.get()

    def respond(self, choice: FontChoice, family: Optional[str] = None) -> bool:
        """Answer the outstanding question. Returns False when there is nothing to answer."""
        pending = self._pending
        if pending is None or pending.future.done():
            logger.warning(f"⚠️ Font decision for '{family}' received but no question is pending")
            return False
        if family is not None and family.lower() != pending.family.lower():
            logger.warning(f"⚠️ Font decision for '{family}' does not match pending '{pending.family}'")
            return False
        pending.future.set_result(choice)
        return True

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.future.done():
            self._pending.future.cancel()


class FontResolver:
    """Builds the per-artboard map of font family -> FontChoice."""

    def __init__(
        self,
        store: ImportSessionStore,
        catalog_source: CatalogSource,
        channel: FontDecisionChannel,
        style_tokens: Sequence[str] = DEFAULT_STYLE_TOKENS,
        min_substring_length: int = DEFAULT_MIN_SUBSTRING_LENGTH,
    ) -> None:
        self.store = store
        self.catalog_source = catalog_source
        self.channel = channel
        self.style_tokens = tuple(style_tokens)
        self.min_substring_length = min_substring_length

    async def load_matcher(self) -> FontMatcher:
        """Query the host catalog once per session and wrap it in a matcher."""
        catalog = self.store.font_catalog
        if catalog is None:
            try:
                catalog = await self.catalog_source()
                self.store.set_font_catalog(catalog)
                sample = ", ".join(entry.display_name for entry in catalog[:8])
                logger.info(f"🔤 Font catalog: {len(catalog)} fonts (subset of the host library). e.g. {sample}")
            except Exception as e:
                # Not cached, so the next artboard queries again
                logger.error(f"❌ Font catalog query failed: {e}")
                catalog = []
        return FontMatcher(catalog, style_tokens=self.style_tokens, min_substring_length=self.min_substring_length)

    async def resolve(self, font_family: str, matcher: FontMatcher) -> FontChoice:
        if not font_family or not matcher.catalog:
            return FontFallback.USE_IMAGE

        entry = matcher.match(font_family)
        if entry is not None:
            logger.info(f"✅ {font_family} → {entry.display_name} (auto)")
            return entry.platform_reference

        cached = self.store.get_font_choice(font_family)
        if cached is not None:
            label = "image" if cached == FontFallback.USE_IMAGE else "font"
            logger.info(f"✅ {font_family} → cached ({label})")
            return cached

        logger.info(f"❓ {font_family} not in catalog, waiting for a decision...")
        choice = await self.channel.request(font_family)
        if is_font_reference(choice) or choice == FontFallback.USE_IMAGE:
            self.store.record_font_choice(font_family, choice)
            logger.info(f"✅ {font_family} → {'image' if choice == FontFallback.USE_IMAGE else 'chosen font'}")
            return choice

        # No usable answer (picker failed or was dismissed): image for now, ask again next time
        logger.warning(f"⚠️ No font chosen for {font_family}, using image without remembering it")
        return FontFallback.USE_IMAGE

    async def resolve_all(self, families: Iterable[str]) -> Dict[str, FontChoice]:
        """Resolve each distinct family exactly once, in first-seen order."""
        matcher = await self.load_matcher()
        resolved: Dict[str, FontChoice] = {}
        for family in families:
            if family in resolved:
                continue
            resolved[family] = await self.resolve(family, matcher)
        fonts = sum(1 for c in resolved.values() if is_font_reference(c))
        logger.info(f"🔤 Fonts: {len(resolved)} unique, {fonts} matched, {len(resolved) - fonts} as image")
        return resolved
