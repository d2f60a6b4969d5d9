#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from gette.types import DownloadOptions

CONFIG_PATH = Path().home() / ".config" / "gette" / "config.json"
CONFIG_ENV_VAR = "GETTE_CONFIG"

# Environment overrides for the "defaults" section of the config file:
ENV_OVERRIDES = {
    "retries": "GETTE_RETRIES",
    "timeout": "GETTE_TIMEOUT",
    "overwrite": "GETTE_OVERWRITE",
    "backoff": "GETTE_BACKOFF",
}


class GetteSettings(BaseModel):
    """Library-wide defaults applied when a caller does not pass `DownloadOptions`."""

    retries: int = Field(default=3, ge=0, le=50)
    """How many times a retryable failure is reattempted."""
    timeout: float | None = Field(default=None, gt=0)
    """Per-attempt timeout in seconds; no timeout when unset."""
    overwrite: bool = Field(default=False)
    """Replace an existing destination on commit."""
    backoff: float = Field(default=0.5, ge=0)
    """Exponential backoff multiplier in seconds."""
    max_backoff: float = Field(default=10.0, ge=0)
    """Upper bound for a single wait between attempts."""

    def to_options(self, **overrides: Any) -> DownloadOptions:
        values = self.model_dump()
        values.update({key: value for key, value in overrides.items() if value is not None})
        return DownloadOptions(**values)


def config_path() -> Path:
    override = os.getenv(CONFIG_ENV_VAR)
    return Path(override).expanduser() if override else CONFIG_PATH


def load_config_file() -> dict[str, Any]:
    """Reads the JSON config file, returning an empty mapping if it does not exist.

    Raises:
        RuntimeError: If the file exists but is not valid JSON.
    """
    path = config_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError:
        raise RuntimeError(f"Invalid JSON in config file: {path}") from None
    if not isinstance(data, dict):
        raise RuntimeError(f"Config file must contain a JSON object: {path}")
    return data


def load_settings() -> GetteSettings:
    """Builds settings from the config file's "defaults" section and `GETTE_*` env vars.

    Priority:
    1. Environment variables
    2. Local config file (e.g. `~/.config/gette/config.json`)
    3. Built-in defaults

    Returns:
        - An instance of `GetteSettings`.
    """
    values: dict[str, Any] = dict(load_config_file().get("defaults", {}))
    for field_name, env_name in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw == "":
            continue
        if field_name == "overwrite":
            values[field_name] = raw.lower() not in ("0", "false", "no")
        else:
            values[field_name] = raw
    try:
        settings = GetteSettings(**values)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid gette settings: {exc}") from exc
    logger.debug(f"Loaded settings from {config_path()} (overrides: {sorted(values)})")
    return settings


def default_options(**overrides: Any) -> DownloadOptions:
    return load_settings().to_options(**overrides)
