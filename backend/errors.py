"""
Importer Errors

Structured exceptions raised by the import pipeline. Each error carries a
payload of the same shape the plugin uses for its own failures:
{ code: str, message: str, details?: dict }
"""

from typing import Dict, Any, Optional


class ImporterError(Exception):
    """Base class for pipeline errors with a structured payload."""

    code: str = "importer_error"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        if code:
            self.code = code
        self.message = message
        self.details: Dict[str, Any] = details or {}
        self.payload = {"code": self.code, "message": self.message, "details": self.details}
        super().__init__(self.message if self.message else self.code)


class AssetMissingError(ImporterError):
    """A referenced file is not present in the export folder."""

    code = "asset_missing"


class UploadFailureError(ImporterError):
    """The host rejected or failed an asset upload."""

    code = "upload_failed"


class RateLimitedError(ImporterError):
    """The host refused a call because of rate limiting."""

    code = "rate_limited"


class PageCreationError(ImporterError):
    """Page creation failed for good; the artboard cannot be imported."""

    code = "page_creation_failed"

    def __init__(self, message: str = "", attempts: int = 0, delays: Optional[list] = None, details: Optional[Dict[str, Any]] = None):
        self.attempts = attempts
        self.delays = list(delays or [])
        merged = dict(details or {})
        merged.setdefault("attempts", attempts)
        merged.setdefault("delays", self.delays)
        super().__init__(message, merged)


class SessionUnavailableError(ImporterError):
    """The editable session could not be opened, used or committed."""

    code = "session_unavailable"


class LayoutLoadError(ImporterError):
    """No usable layout description could be loaded."""

    code = "layout_load_failed"
