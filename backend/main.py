import json
import sys
import signal
import logging
import asyncio
from pathlib import Path
from typing import Dict, Any, Optional, List
import websockets

from asset_index import AssetIndex, load_layouts
from errors import ImporterError
from font_catalog import FontFallback
from font_resolver import FontDecisionChannel, FontResolver
from importer import ArtboardImporter, ArtboardReport
from importer_config import ImporterSettings, load_settings
from layout_models import Layout
from platform_client import LivePlatform, PlatformClient
from platform_communicator import PlatformCommunicator
from session_store import ImportSessionStore

logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] [importer] [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%dT%H:%M:%S'
)
logger = logging.getLogger(__name__)

# Message type constants to avoid stringly-typed conditionals
MESSAGE_TYPE_JOIN = "join"
MESSAGE_TYPE_PING = "ping"
MESSAGE_TYPE_PONG = "pong"
MESSAGE_TYPE_SYSTEM = "system"
MESSAGE_TYPE_PROGRESS_UPDATE = "progress_update"
MESSAGE_TYPE_IMPORT_REQUEST = "import_request"
MESSAGE_TYPE_IMPORT_RESULT = "import_result"
MESSAGE_TYPE_FONT_DECISION_REQUEST = "font_decision_request"
MESSAGE_TYPE_FONT_DECISION = "font_decision"
MESSAGE_TYPE_RESET_FONT_CHOICES = "reset_font_choices"
MESSAGE_TYPE_TOOL_RESPONSE = "tool_response"
MESSAGE_TYPE_ERROR = "error"


def report_to_message(report: ArtboardReport) -> Dict[str, Any]:
    opacity = report.opacity
    return {
        "artboard": report.artboard_name,
        "status": report.status,
        "error": report.error,
        "uploaded": report.uploaded_files,
        "requested": report.requested_files,
        "upload_failures": report.upload_failures,
        "fonts": report.fonts,
        "elements": report.element_count,
        "frames": report.frame_count,
        "text_images": report.text_image_count,
        "skipped": [{"index": s.index, "file_name": s.file_name, "reason": s.reason} for s in report.skipped],
        "opacity_applied": opacity.applied if opacity else [],
        "manual_opacity": opacity.manual_instructions if opacity else [],
    }


def select_layouts(layouts: List[Layout], artboard: Any, import_all: bool) -> List[Layout]:
    """Pick the layouts an import request refers to: all, by name, by index, or the first."""
    if import_all:
        return list(layouts)
    if isinstance(artboard, str) and artboard:
        return [layout for layout in layouts if layout.artboard_name == artboard]
    if isinstance(artboard, int) and not isinstance(artboard, bool):
        return [layouts[artboard]] if 0 <= artboard < len(layouts) else []
    return layouts[:1]


class ImporterAgent:
    def __init__(self, settings: ImporterSettings):
        self.settings = settings
        self.bridge_url = settings.bridge_url
        self.channel = settings.channel
        self.websocket: Optional[websockets.WebSocketClientProtocol] = None
        self.running = True
        self.reconnect_delay = 1  # Start with 1 second
        self.max_reconnect_delay = 30  # Max 30 seconds
        self._keep_alive_task = None
        self._font_request_task = None
        self._import_task: Optional[asyncio.Task] = None

        self.communicator: Optional[PlatformCommunicator] = None
        self.platform: Optional[PlatformClient] = None
        # Imports hold this proxy so they survive a reconnect
        self.live_platform = LivePlatform(lambda: self.platform)
        # Session-scoped: survives artboards, imports and reconnects
        self.store = ImportSessionStore()
        self.font_channel: Optional[FontDecisionChannel] = None

    async def _send_json(self, payload: Dict[str, Any]) -> None:
        """Safely send a JSON-serializable payload over the websocket if connected."""
        if not self.websocket:
            raise RuntimeError("WebSocket not connected")
        await self.websocket.send(json.dumps(payload))

    async def _send_progress(self, stage: str, message: str, percent: int) -> None:
        await self._send_json({
            "type": MESSAGE_TYPE_PROGRESS_UPDATE,
            "message": {"stage": stage, "message": message, "percent": percent},
        })

    async def connect(self) -> bool:
        """Connect to the bridge and join as importer"""
        try:
            logger.info(f"Connecting to bridge at {self.bridge_url}")
            # Remove size limits: uploads carry whole images as data URLs
            self.websocket = await websockets.connect(self.bridge_url, max_size=None)

            await self._send_json({"type": MESSAGE_TYPE_JOIN, "role": "importer", "channel": self.channel})
            logger.info(f"Sent join message for channel: {self.channel}")

            await self._send_json({"type": MESSAGE_TYPE_PING})
            logger.info("🏓 Sent ping message")

            if self._keep_alive_task and not self._keep_alive_task.done():
                self._keep_alive_task.cancel()
            self._keep_alive_task = asyncio.create_task(self._websocket_keep_alive())

            self.communicator = PlatformCommunicator(self.websocket, timeout=self.settings.command_timeout)
            self.platform = PlatformClient(self.communicator)
            logger.info(f"Initialized PlatformCommunicator (timeout: {self.settings.command_timeout}s)")

            if self.font_channel is None:
                self.font_channel = FontDecisionChannel()
            if self._font_request_task is None or self._font_request_task.done():
                self._font_request_task = asyncio.create_task(self._forward_font_requests())
            if self.font_channel.pending_family:
                await self._announce_font_request(self.font_channel.pending_family)

            # Reset reconnect delay on successful connection
            self.reconnect_delay = 1
            return True

        except Exception as e:
            logger.error(f"Failed to connect: {e}")
            return False

    async def handle_message(self, message: Dict[str, Any]) -> None:
        """Handle incoming messages from the bridge via a clean async dispatch."""
        msg_type = message.get("type")
        logger.debug(f"🔍 Message received - Type: '{msg_type}', Keys: {list(message.keys())}")

        handlers = {
            MESSAGE_TYPE_SYSTEM: self._handle_system,
            MESSAGE_TYPE_PONG: self._handle_pong,
            MESSAGE_TYPE_PROGRESS_UPDATE: self._handle_progress_update,
            MESSAGE_TYPE_IMPORT_REQUEST: self._handle_import_request,
            MESSAGE_TYPE_FONT_DECISION: self._handle_font_decision,
            MESSAGE_TYPE_RESET_FONT_CHOICES: self._handle_reset_font_choices,
            MESSAGE_TYPE_TOOL_RESPONSE: self._handle_tool_response,
            MESSAGE_TYPE_ERROR: self._handle_bridge_error,
        }

        handler = handlers.get(msg_type, self._handle_unknown)
        await handler(message)

    async def _handle_system(self, message: Dict[str, Any]) -> None:
        sys_msg = message.get('message')
        logger.info(f"🔧 System message: {sys_msg}")
        if isinstance(sys_msg, str) and 'disconnected' in sys_msg.lower() and 'plugin' in sys_msg.lower():
            await self.cancel_active_operations(reason="plugin_disconnected")

    async def _handle_pong(self, _: Dict[str, Any]) -> None:
        logger.info("🏓 Received pong response")

    async def _handle_progress_update(self, message: Dict[str, Any]) -> None:
        logger.info(f"📈 Progress update received: {message.get('message')}")

    async def _handle_import_request(self, message: Dict[str, Any]) -> None:
        if self._import_task and not self._import_task.done():
            await self._send_json({"type": MESSAGE_TYPE_ERROR, "message": "An import is already running"})
            return
        folder = message.get("folder")
        if not folder:
            await self._send_json({"type": MESSAGE_TYPE_ERROR, "message": "import_request needs a folder"})
            return
        logger.info(f"📥 Import request: folder={folder}, artboard={message.get('artboard')}, all={bool(message.get('all'))}")
        self._import_task = asyncio.create_task(
            self._run_import(Path(folder), message.get("artboard"), bool(message.get("all")))
        )

    async def _run_import(self, folder: Path, artboard: Any, import_all: bool) -> None:
        try:
            index = AssetIndex.scan(folder)
            layouts = select_layouts(load_layouts(index), artboard, import_all)
            if not layouts:
                raise ImporterError(f"No artboard matches {artboard!r}", {"artboard": artboard}, code="artboard_not_found")

            resolver = FontResolver(
                self.store,
                self.live_platform.query_font_catalog,
                self.font_channel,
                style_tokens=self.settings.font_style_tokens,
                min_substring_length=self.settings.font_substring_min_length,
            )
            importer = ArtboardImporter(self.live_platform, index, resolver, self.settings, progress=self._send_progress)
            reports = await importer.import_all(layouts)
            await self._send_json({"type": MESSAGE_TYPE_IMPORT_RESULT, "reports": [report_to_message(r) for r in reports]})
        except asyncio.CancelledError:
            logger.info("🛑 Import cancelled")
            raise
        except ImporterError as e:
            logger.error(f"❌ Import failed: {e.message}")
            await self._send_json({"type": MESSAGE_TYPE_ERROR, "message": e.message, "error": e.payload})
        except Exception as e:
            logger.error(f"❌ Import failed unexpectedly: {e}")
            await self._send_json({"type": MESSAGE_TYPE_ERROR, "message": str(e)})

    async def _forward_font_requests(self) -> None:
        """Present each pending font question to the plugin user."""
        try:
            while self.running:
                request = await self.font_channel.next_request()
                logger.info(f"❓ Asking the user about font '{request.family}'")
                await self._announce_font_request(request.family)
        except asyncio.CancelledError:
            logger.debug("Font request forwarder cancelled")

    async def _announce_font_request(self, family: str) -> None:
        try:
            await self._send_json({"type": MESSAGE_TYPE_FONT_DECISION_REQUEST, "family": family})
        except Exception as e:
            # The question stays pending and is asked again after reconnecting
            logger.error(f"❌ Could not send font question for '{family}': {e}")

    async def _handle_font_decision(self, message: Dict[str, Any]) -> None:
        if self.font_channel is None:
            logger.warning("Received font_decision before the importer was ready")
            return
        font_ref = message.get("font_ref")
        if message.get("use_image_fallback"):
            choice = FontFallback.USE_IMAGE
        else:
            # An empty answer means the picker failed; it is not remembered
            choice = str(font_ref) if font_ref else ""
        self.font_channel.respond(choice, family=message.get("family"))

    async def _handle_reset_font_choices(self, _: Dict[str, Any]) -> None:
        self.store.reset_font_choices()

    async def _handle_tool_response(self, message: Dict[str, Any]) -> None:
        logger.debug(f"📨 Received tool_response: {message.get('id', 'no-id')}")
        if self.communicator:
            self.communicator.handle_tool_response(message)
        else:
            logger.warning("Received tool_response but communicator not initialized")

    async def _handle_bridge_error(self, message: Dict[str, Any]) -> None:
        logger.error(f"Bridge error: {message.get('message', 'Unknown error')}")

    async def _handle_unknown(self, message: Dict[str, Any]) -> None:
        logger.debug(f"Ignoring unknown message type: {message.get('type')}")

    async def cancel_active_operations(self, reason: str = "") -> None:
        """Cancel the running import, an unanswered font question and pending plugin calls."""
        if self._import_task and not self._import_task.done():
            logger.info(f"🧹 Cancelling active import ({reason})")
            self._import_task.cancel()
        if self.font_channel:
            self.font_channel.cancel()
        await asyncio.sleep(0)
        if self.communicator:
            self.communicator.cleanup_pending_requests()

    async def listen(self) -> None:
        """Listen for messages from the bridge"""
        logger.info("🎧 Starting to listen for messages from bridge")
        while self.running and self.websocket:
            try:
                raw_message = await self.websocket.recv()
            except asyncio.CancelledError:
                logger.info("🛑 Listen loop cancelled")
                break
            except Exception as e:
                logger.error(f"❌ Error receiving message: {e}")
                break

            if not raw_message:
                logger.warning("📡 Received empty WebSocket message")
                continue

            try:
                message = json.loads(raw_message)
            except json.JSONDecodeError as e:
                logger.error(f"❌ Failed to decode message: {e}, Raw: {raw_message[:200]}")
                continue
            try:
                await self.handle_message(message)
            except Exception as e:
                logger.error(f"❌ Error handling message: {e}")

    async def _websocket_keep_alive(self, interval: int = 30) -> None:
        """Keep WebSocket connection alive with periodic pings"""
        try:
            while self.running and self.websocket:
                await asyncio.sleep(interval)
                if not self.websocket:
                    break
                try:
                    pong_waiter = await self.websocket.ping()
                    await asyncio.wait_for(pong_waiter, timeout=10)
                    logger.debug("💓 WebSocket keep-alive ping successful")
                except asyncio.TimeoutError:
                    logger.warning("💔 WebSocket keep-alive ping timed out")
                    break
                except Exception as e:
                    logger.error(f"💔 WebSocket keep-alive ping failed: {e}")
                    break
        except asyncio.CancelledError:
            logger.debug("💓 WebSocket keep-alive task cancelled")

    async def run_with_reconnect(self) -> None:
        """Main loop with reconnection logic"""
        while self.running:
            try:
                if await self.connect():
                    logger.info("🌉 Connected to bridge successfully")
                    await self.listen()
                else:
                    logger.warning("Failed to connect to bridge")
            except Exception as e:
                logger.error(f"Unexpected error: {e}")

            if self.running:
                logger.info(f"Reconnecting in {self.reconnect_delay} seconds...")
                await asyncio.sleep(self.reconnect_delay)
                # Exponential backoff up to max delay
                self.reconnect_delay = min(self.reconnect_delay * 2, self.max_reconnect_delay)

    def shutdown(self) -> None:
        """Graceful shutdown"""
        logger.info("Shutting down importer")
        self.running = False

        for task in (self._keep_alive_task, self._font_request_task, self._import_task):
            if task and not task.done():
                task.cancel()

        if self.communicator:
            self.communicator.cleanup_pending_requests()
            logger.info("Cleaned up pending plugin calls")

        self.websocket = None


def main():
    settings = load_settings(sys.argv[1:])
    logging.getLogger().setLevel(settings.log_level)

    logger.info("Starting design importer")
    logger.info(f"Bridge URL: {settings.bridge_url}")
    logger.info(f"Channel: {settings.channel}")

    agent = ImporterAgent(settings)

    def signal_handler(signum, frame):
        logger.info("Received shutdown signal")
        agent.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    try:
        asyncio.run(agent.run_with_reconnect())
    except KeyboardInterrupt:
        logger.info("Importer interrupted")
    finally:
        agent.shutdown()


if __name__ == "__main__":
    main()
