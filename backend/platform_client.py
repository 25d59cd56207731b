"""
Platform Client

Host API calls used by the importer, carried over the plugin RPC channel.
Each method maps to one plugin command.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Any, List, Optional

from font_catalog import FontCatalogEntry
from platform_communicator import PlatformCommunicator, CommandExecutionError

logger = logging.getLogger(__name__)

PAGE_TYPE_ABSOLUTE = "absolute"
UNSUPPORTED_ELEMENT = "unsupported"


@dataclass
class LiveElement:
    """An element as it exists on the created page."""
    index: int
    type: str
    locked: bool = False

    @property
    def editable(self) -> bool:
        return self.type != UNSUPPORTED_ELEMENT and not self.locked


class EditableSession:
    """Editing session on a created page. Changes are buffered and committed by sync()."""

    def __init__(self, communicator: PlatformCommunicator, session_id: str, page_type: str, page_locked: bool, elements: List[LiveElement]):
        self.communicator = communicator
        self.session_id = session_id
        self.page_type = page_type
        self.page_locked = page_locked
        self.elements = elements
        self._changes: Dict[int, float] = {}

    @property
    def page_editable(self) -> bool:
        return self.page_type == PAGE_TYPE_ABSOLUTE and not self.page_locked

    def set_transparency(self, index: int, transparency: float) -> None:
        self._changes[index] = transparency

    @property
    def pending_changes(self) -> Dict[int, float]:
        return dict(self._changes)

    async def sync(self) -> None:
        changes = [{"index": i, "transparency": t} for i, t in sorted(self._changes.items())]
        await self.communicator.send_command("sync_design_session", {"session_id": self.session_id, "changes": changes})
        self._changes.clear()


class PlatformClient:
    def __init__(self, communicator: PlatformCommunicator):
        self.communicator = communicator

    async def query_font_catalog(self) -> List[FontCatalogEntry]:
        result = await self.communicator.send_command("find_fonts", {})
        fonts = result.get("fonts", []) if isinstance(result, dict) else []
        return [
            FontCatalogEntry(display_name=str(f["name"]), platform_reference=str(f["ref"]))
            for f in fonts
            if isinstance(f, dict) and f.get("name") and f.get("ref")
        ]

    async def upload_asset(self, data: bytes, mime_type: str) -> str:
        data_url = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
        result = await self.communicator.send_command("upload_asset", {
            "type": "image",
            "mime_type": mime_type,
            "url": data_url,
            "thumbnail_url": data_url,
            "ai_disclosure": "none",
        })
        ref = result.get("ref") if isinstance(result, dict) else None
        if not ref:
            raise CommandExecutionError({"code": "upload_failed", "message": "Upload returned no asset reference", "details": {"result": result}}, command="upload_asset")
        return str(ref)

    async def create_page(self, title: str, width: float, height: float, elements: List[Dict[str, Any]]) -> Any:
        return await self.communicator.send_command("add_page", {
            "title": title,
            "dimensions": {"width": width, "height": height},
            "elements": elements,
        })

    async def open_editable_session(self, page_selector: Optional[Dict[str, Any]] = None) -> EditableSession:
        result = await self.communicator.send_command("open_design_session", {"target": page_selector or {"type": "current_page"}})
        if not isinstance(result, dict) or not result.get("session_id"):
            raise CommandExecutionError({"code": "session_unavailable", "message": "Plugin returned no session", "details": {"result": result}}, command="open_design_session")
        page = result.get("page") or {}
        elements = [
            LiveElement(index=i, type=str(el.get("type", UNSUPPORTED_ELEMENT)), locked=bool(el.get("locked", False)))
            for i, el in enumerate(page.get("elements") or [])
        ]
        return EditableSession(
            self.communicator,
            session_id=str(result["session_id"]),
            page_type=str(page.get("type", "")),
            page_locked=bool(page.get("locked", False)),
            elements=elements,
        )


class LivePlatform:
    """Forwards every call to whichever PlatformClient is current.

    The agent replaces its client on each reconnect; an import that spans a
    reconnect keeps working through this proxy.
    """

    def __init__(self, current: Callable[[], Optional[PlatformClient]]):
        self._current = current

    def _client(self) -> PlatformClient:
        client = self._current()
        if client is None:
            raise CommandExecutionError({"code": "session_unavailable", "message": "Not connected to the plugin"})
        return client

    async def query_font_catalog(self) -> List[FontCatalogEntry]:
        return await self._client().query_font_catalog()

    async def upload_asset(self, data: bytes, mime_type: str) -> str:
        return await self._client().upload_asset(data, mime_type)

    async def create_page(self, title: str, width: float, height: float, elements: List[Dict[str, Any]]) -> Any:
        return await self._client().create_page(title, width, height, elements)

    async def open_editable_session(self, page_selector: Optional[Dict[str, Any]] = None) -> EditableSession:
        return await self._client().open_editable_session(page_selector)
