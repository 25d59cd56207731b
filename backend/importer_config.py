"""
Importer Configuration

Settings come from environment variables (a .env file is loaded first),
with --key=value command-line overrides, e.g. --bridge-url=ws://host:3055.
"""

import os
import logging
from typing import Dict, Optional, Sequence, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from font_catalog import DEFAULT_MIN_SUBSTRING_LENGTH, DEFAULT_STYLE_TOKENS

logger = logging.getLogger(__name__)


class ImporterSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    bridge_url: str = "ws://localhost:3055"
    channel: str = "design-importer-default"
    command_timeout: float = Field(default=60.0, gt=0)
    upload_delay: float = Field(default=0.5, ge=0)
    page_retry_base_delay: float = Field(default=3.0, ge=0)
    page_max_attempts: int = Field(default=5, ge=1)
    opacity_settle_delay: float = Field(default=1.0, ge=0)
    artboard_pause: float = Field(default=5.0, ge=0)
    text_width_padding: float = Field(default=1.15, gt=0)
    font_substring_min_length: int = Field(default=DEFAULT_MIN_SUBSTRING_LENGTH, ge=1)
    font_style_tokens: Tuple[str, ...] = DEFAULT_STYLE_TOKENS
    log_level: str = "INFO"

    @field_validator("font_style_tokens", mode="before")
    @classmethod
    def _split_tokens(cls, value):
        if isinstance(value, str):
            return tuple(t.strip().lower() for t in value.split(",") if t.strip())
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


# environment variable -> setting
ENV_VARS: Dict[str, str] = {
    "BRIDGE_URL": "bridge_url",
    "IMPORTER_CHANNEL": "channel",
    "PLUGIN_COMMAND_TIMEOUT": "command_timeout",
    "UPLOAD_DELAY_SECONDS": "upload_delay",
    "PAGE_RETRY_BASE_DELAY": "page_retry_base_delay",
    "PAGE_MAX_ATTEMPTS": "page_max_attempts",
    "OPACITY_SETTLE_DELAY": "opacity_settle_delay",
    "ARTBOARD_PAUSE_SECONDS": "artboard_pause",
    "TEXT_WIDTH_PADDING": "text_width_padding",
    "FONT_SUBSTRING_MIN_LENGTH": "font_substring_min_length",
    "FONT_STYLE_TOKENS": "font_style_tokens",
    "LOG_LEVEL": "log_level",
}


def load_settings(argv: Optional[Sequence[str]] = None, environ: Optional[Dict[str, str]] = None, dotenv: bool = True) -> ImporterSettings:
    """Build settings from the environment and CLI args (CLI wins)."""
    if dotenv:
        load_dotenv()
    env = os.environ if environ is None else environ

    values: Dict[str, str] = {}
    for var, name in ENV_VARS.items():
        if env.get(var):
            values[name] = env[var]

    # Parse CLI args for overrides: --bridge-url=... maps to bridge_url
    fields = set(ImporterSettings.model_fields)
    for arg in argv or []:
        if not arg.startswith("--") or "=" not in arg:
            logger.warning(f"Ignoring argument: {arg}")
            continue
        key, value = arg[2:].split("=", 1)
        name = key.replace("-", "_")
        if name not in fields:
            logger.warning(f"Ignoring unknown option: --{key}")
            continue
        values[name] = value

    return ImporterSettings(**values)