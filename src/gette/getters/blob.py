#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import asyncio
from collections.abc import Callable
from functools import partial
from typing import Any

from fsspec import AbstractFileSystem, filesystem  # type: ignore[import-untyped]
from loguru import logger

from gette.errors import (
    AuthenticationError,
    FetchTimeoutError,
    NotFoundError,
    TransientTransportError,
    TransportError,
)
from gette.signal import FetchSignal
from gette.types import DownloadOptions, Scheme, SourceLocator, Success
from gette.writer import DEFAULT_CHUNK, PartialDownload, iter_blocking, write_stream

FilesystemFactory = Callable[[SourceLocator], AbstractFileSystem]


class FsspecBlobGetter:
    """Base for object stores reached through an fsspec filesystem.

    Subclasses name the fsspec `protocol`, the pip extra that provides it, and translate
    a locator into an object path and storage options.

    Args:
        filesystem_factory: [Optional] Locator -> filesystem; tests pass an in-memory one.
        chunk_size: Bytes per read.
    """

    name: str
    scheme: Scheme
    protocol: str
    extra: str

    def __init__(self, *, filesystem_factory: FilesystemFactory | None = None, chunk_size: int = DEFAULT_CHUNK) -> None:
        self.filesystem_factory = filesystem_factory
        self.chunk_size = chunk_size

    def matches(self, locator: SourceLocator) -> bool:
        return locator.scheme is self.scheme

    def object_path(self, locator: SourceLocator) -> str:
        raise NotImplementedError

    def storage_options(self, locator: SourceLocator) -> dict[str, Any]:
        raise NotImplementedError

    def filesystem(self, locator: SourceLocator) -> AbstractFileSystem:
        if self.filesystem_factory is not None:
            return self.filesystem_factory(locator)
        options = self.storage_options(locator)
        logger.debug(f"Opening {self.protocol} filesystem (options: {sorted(options)})")
        try:
            return filesystem(self.protocol, **options)
        except (ImportError, ValueError) as exc:
            raise TransportError(
                f"The {self.protocol!r} filesystem is unavailable ({exc}); "
                f"install it with 'pip install gette[{self.extra}]'"
            ) from exc

    async def fetch(
        self,
        locator: SourceLocator,
        staging: PartialDownload,
        options: DownloadOptions,
        signal: FetchSignal,
    ) -> Success:
        path = self.object_path(locator)
        fs = self.filesystem(locator)
        label = f"{self.protocol}://{path}"
        try:
            total = await asyncio.to_thread(fs.size, path)
            handle = await asyncio.to_thread(fs.open, path, "rb")
            try:
                written = await write_stream(
                    staging,
                    iter_blocking(partial(handle.read, self.chunk_size)),
                    signal=signal,
                    label=label,
                    total=total,
                )
            finally:
                handle.close()
        except FileNotFoundError as exc:
            raise NotFoundError(f"{label} does not exist") from exc
        except PermissionError as exc:
            raise AuthenticationError(f"Access denied to {label}: {exc}") from exc
        except TimeoutError as exc:
            raise FetchTimeoutError(f"Timed out reading {label}: {exc}") from exc
        except OSError as exc:
            raise TransientTransportError(f"Error reading {label}: {exc}") from exc
        return Success(bytes_written=written, destination=staging.path)
