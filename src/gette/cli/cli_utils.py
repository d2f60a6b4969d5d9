#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import os
import re
import sys
from collections.abc import Callable  # noqa: TCH003
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

import typer

from gette.types import DownloadOutcome

_TOKEN_PAT = re.compile(r"(hf_[A-Za-z0-9]{6})[A-Za-z0-9]+")
# Credentials that may end up in error messages (URLs, SDK errors):
_SECRET_ENV_VARS = (
    "HF_TOKEN",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AZURE_STORAGE_ACCOUNT_KEY",
    "AZURE_STORAGE_SAS_TOKEN",
)


def sanitize(msg: str) -> str:
    if not msg:
        return msg
    # redact typical HF token pattern and exact env values if set
    msg = _TOKEN_PAT.sub(r"\1***REDACTED***", msg)
    for name in _SECRET_ENV_VARS:
        secret = os.getenv(name)
        if secret:
            msg = msg.replace(secret, "***REDACTED***")
    return msg


def to_jsonable(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))
    if isinstance(obj, dict | MappingProxyType):
        return {k: to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, list | tuple | set):
        return [to_jsonable(x) for x in obj]
    return obj


def outcome_payload(outcome: DownloadOutcome) -> dict[str, Any]:
    payload = {"ok": outcome.ok, **to_jsonable(outcome)}
    if "message" in payload:
        payload["message"] = sanitize(payload["message"])
    return payload


def run_cli(fn: Callable[[], None]) -> None:
    try:
        fn()
    except typer.Exit:
        raise
    except Exception as exc:
        typer.secho(f"Error: {sanitize(str(exc))}", fg=typer.colors.RED, err=True)
        sys.exit(1)
