"""
Platform Communicator - RPC Communication Layer

This module provides the communication layer between the Python importer
and the design-platform plugin via WebSocket tool calls and responses.
The plugin owns the host APIs (font catalog, asset upload, page creation,
editable sessions); every host call is a tool_call answered by a tool_response.
"""

import asyncio
import json
import uuid
import logging
import time
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class CommandExecutionError(Exception):
    """
    Specialized exception for plugin command failures.

    Carries a structured payload so callers can classify the failure.
    Expected payload shape: { code: str, message: str, details?: dict }
    """

    def __init__(self, payload: Any, command: str | None = None, params: Dict[str, Any] | None = None):
        self.command = command
        self.params = params

        if isinstance(payload, dict):
            self.code: str = str(payload.get("code", "unknown_plugin_error"))
            self.message: str = str(payload.get("message", ""))
            self.details: Dict[str, Any] = payload.get("details", {}) or {}
            normalized_payload = payload
        else:
            self.code = "unknown_plugin_error"
            self.message = str(payload)
            self.details = {}
            normalized_payload = {"code": self.code, "message": self.message, "details": self.details}

        self.payload = normalized_payload

        text = self.message if self.message else self.code
        super().__init__(text)


class PlatformCommunicator:
    """
    Handles RPC communication with the design-platform plugin.

    This class manages:
    - Sending tool_call messages to the plugin
    - Tracking pending requests with unique IDs
    - Resolving futures when tool_response messages arrive
    - Error handling and timeouts
    """

    def __init__(self, websocket, timeout: float = 60.0):
        """
        Initialize the communicator.

        Args:
            websocket: The WebSocket connection to send messages through
            timeout: Timeout in seconds for plugin commands (default: 60.0).
                     Uploads of large rasters are the slowest calls.
        """
        self.websocket = websocket
        self.timeout = timeout
        self.pending_requests: Dict[str, asyncio.Future] = {}
        self.request_timestamps: Dict[str, float] = {}
        self.request_meta: Dict[str, Dict[str, Any]] = {}

    def generate_id(self) -> str:
        """Generate a unique ID for tool calls."""
        return str(uuid.uuid4())

    async def send_command(self, command: str, params: Dict[str, Any] = None) -> Any:
        """
        Send a command to the plugin and wait for the response.

        Args:
            command: The command name (e.g., "create_page")
            params: Optional parameters for the command

        Returns:
            The result from the plugin

        Raises:
            asyncio.TimeoutError: If the request times out
            CommandExecutionError: If the plugin returns an error
        """
        if not self.websocket:
            raise RuntimeError("WebSocket connection not available")

        request_id = self.generate_id()

        tool_call_message = {
            "type": "tool_call",
            "id": request_id,
            "command": command,
            "params": params or {}
        }

        future = asyncio.get_running_loop().create_future()
        self.pending_requests[request_id] = future
        self.request_timestamps[request_id] = time.time()
        self.request_meta[request_id] = {"command": command, "params": params or {}}

        logger.debug(f"📝 Added to pending requests: {request_id}")

        try:
            start_time = time.time()
            logger.info(f"🚀 Sending tool_call: {command} with ID: {request_id} at {start_time:.3f}")
            await self.websocket.send(json.dumps(tool_call_message))

            return await asyncio.wait_for(future, timeout=self.timeout)

        except asyncio.TimeoutError:
            self.pending_requests.pop(request_id, None)
            start_time = self.request_timestamps.pop(request_id, None)
            self.request_meta.pop(request_id, None)
            elapsed = time.time() - start_time if start_time else self.timeout
            logger.error(f"⏰ Tool call {command} (ID: {request_id}) timed out after {elapsed:.3f}s (limit: {self.timeout}s)")
            raise asyncio.TimeoutError(f"Tool call '{command}' timed out after {elapsed:.1f} seconds")

        except Exception as e:
            self.pending_requests.pop(request_id, None)
            self.request_timestamps.pop(request_id, None)
            self.request_meta.pop(request_id, None)
            logger.error(f"Tool call {command} (ID: {request_id}) failed: {e}")
            raise

    def handle_tool_response(self, message: Dict[str, Any]) -> None:
        """
        Handle incoming tool_response messages from the plugin.

        Args:
            message: The tool_response message from the plugin
        """
        request_id = message.get("id")
        logger.debug(f"🔄 Processing tool_response for ID: {request_id}")

        if not request_id:
            logger.warning("❌ Received tool_response without ID")
            return

        future = self.pending_requests.pop(request_id, None)
        start_time = self.request_timestamps.pop(request_id, None)
        meta = self.request_meta.pop(request_id, None)
        cmd = meta.get("command") if isinstance(meta, dict) else None
        params = meta.get("params") if isinstance(meta, dict) else None

        if not future:
            logger.warning(f"❌ Received tool_response for unknown ID: {request_id}")
            return

        if future.cancelled():
            logger.debug(f"⚠️ Received tool_response for cancelled request: {request_id}")
            return

        elapsed = time.time() - start_time if start_time else 0

        if "error_structured" in message and isinstance(message.get("error_structured"), dict):
            error_payload = message.get("error_structured")
            logger.error(f"❌ Tool call {cmd} ({request_id}) failed after {elapsed:.3f}s: code={error_payload.get('code')}, message={error_payload.get('message')}")
            self._fail(future, CommandExecutionError(error_payload, command=cmd, params=params))
            return

        if "error" in message:
            error_val = message.get("error")
            logger.error(f"❌ Tool call {cmd} ({request_id}) failed after {elapsed:.3f}s: {error_val}")
            # `error` is either an object or a JSON string; anything else is wrapped as a message
            try:
                if isinstance(error_val, dict):
                    error_payload = error_val
                else:
                    error_payload = json.loads(error_val)
                if not isinstance(error_payload, dict):
                    raise TypeError("Parsed error is not an object")
                tool_error = CommandExecutionError(error_payload, command=cmd, params=params)
            except (TypeError, ValueError):
                tool_error = CommandExecutionError({"code": "unknown_plugin_error", "message": str(error_val)}, command=cmd, params=params)
            self._fail(future, tool_error)
            return

        result = message.get("result", {})
        if isinstance(result, dict) and result.get("success") is False:
            err_text = result.get("message") or "Tool reported failure"
            logger.error(f"❌ Tool call {cmd} ({request_id}) reported failure after {elapsed:.3f}s: {err_text}")
            self._fail(future, CommandExecutionError(
                {"code": result.get("code") or "plugin_reported_failure", "message": str(err_text), "details": {"result": result}},
                command=cmd, params=params,
            ))
            return

        logger.info(f"✅ Tool call {cmd} ({request_id}) completed successfully after {elapsed:.3f}s")
        logger.debug(f"🎯 Result payload: {result}")
        if not future.done():
            future.set_result(result)
        else:
            logger.debug(f"⚠️ Future already completed for {request_id}")

    def _fail(self, future: asyncio.Future, error: CommandExecutionError) -> None:
        if not future.done():
            future.set_exception(error)
        else:
            logger.debug("⚠️ Future already completed; dropping error")

    def cleanup_pending_requests(self) -> None:
        """Cancel all pending requests (called on shutdown)."""
        for request_id, future in self.pending_requests.items():
            if not future.cancelled():
                future.cancel()
                logger.info(f"Cancelled pending request: {request_id}")
        self.pending_requests.clear()
        self.request_timestamps.clear()
        self.request_meta.clear()
