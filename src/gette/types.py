#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from gette.errors import ErrorKind

if TYPE_CHECKING:
    from gette.signal import FetchSignal
    from gette.writer import PartialDownload


class Scheme(str, Enum):
    LOCAL = "local"
    HTTP = "http"
    HTTPS = "https"
    GIT = "git"
    S3 = "s3"
    AZURE_BLOB = "azure_blob"
    GCS = "gcs"
    HUGGINGFACE = "huggingface"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SourceLocator:
    """Structured form of a raw source string.

    `raw` is always the untouched input, so getters for schemes the parser does not know
    can still inspect it. `protocol` is the wire protocol used to rebuild a URL (for a git
    source fetched over SSH it is "ssh" while `scheme` is `Scheme.GIT`).
    """

    scheme: Scheme
    path: str
    authority: str | None = None
    query_options: Mapping[str, str] = field(default_factory=dict)
    raw: str = ""
    protocol: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "query_options", MappingProxyType(dict(self.query_options)))

    @property
    def base_url(self) -> str:
        """URL without the query string, e.g. ``s3://bucket/key``."""
        if self.scheme is Scheme.UNKNOWN:
            return self.raw
        protocol = self.protocol or ("file" if self.scheme is Scheme.LOCAL else self.scheme.value)
        authority = self.authority or ""
        path = self.path
        if authority and path and not path.startswith("/"):
            path = "/" + path
        return f"{protocol}://{authority}{path}"

    @property
    def url(self) -> str:
        if self.scheme is Scheme.UNKNOWN or not self.query_options:
            return self.base_url
        return f"{self.base_url}?{urlencode(dict(self.query_options))}"

    def option(self, name: str, default: str | None = None) -> str | None:
        value = self.query_options.get(name)
        return value if value not in (None, "") else default


class DownloadOptions(BaseModel):
    """Per-request knobs for the download lifecycle."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    retries: int = Field(default=3, ge=0, le=50)
    """Reattempts allowed after a retryable failure; total attempts are `retries + 1`."""
    timeout: float | None = Field(default=None, gt=0)
    """Seconds a single attempt may take before it is abandoned as a timeout."""
    overwrite: bool = Field(default=False)
    """Replace an existing destination instead of failing with `DESTINATION_EXISTS`."""
    backoff: float = Field(default=0.5, ge=0)
    """Exponential backoff multiplier in seconds (0 disables waiting)."""
    max_backoff: float = Field(default=10.0, ge=0)
    """Upper bound for a single wait between attempts."""
    expected_sha256: str | None = Field(default=None, pattern=r"^[0-9a-fA-F]{64}$")
    """Hex digest the staged file must match before it is committed."""


@dataclass(frozen=True)
class DownloadRequest:
    source: str
    destination: Path
    options: DownloadOptions


@dataclass(frozen=True)
class Success:
    bytes_written: int
    destination: Path
    attempts_made: int = 1

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    attempts_made: int = 0

    @property
    def ok(self) -> bool:
        return False


DownloadOutcome = Success | Failure


class Getter(Protocol):
    """
    Backend interface: recognize a locator, then transfer it into a staging target.
    """

    name: str

    def matches(self, locator: SourceLocator) -> bool: ...

    async def fetch(
        self,
        locator: SourceLocator,
        staging: PartialDownload,
        options: DownloadOptions,
        signal: FetchSignal,
    ) -> DownloadOutcome: ...
