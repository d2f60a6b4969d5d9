#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import asyncio
import shutil
from functools import partial
from pathlib import Path

from gette.errors import AuthenticationError, NotFoundError
from gette.signal import FetchSignal
from gette.types import DownloadOptions, Scheme, SourceLocator, Success
from gette.writer import DEFAULT_CHUNK, PartialDownload, iter_blocking, write_stream


class LocalFileGetter:
    """Local filesystem: plain and ``~`` paths, Windows drive paths and file:// URLs.

    Files are copied chunk by chunk, directories file by file, so a deadline or a
    cancellation stops the copy between chunks.
    """

    name = "local"

    def __init__(self, chunk_size: int = DEFAULT_CHUNK) -> None:
        self.chunk_size = chunk_size

    def matches(self, locator: SourceLocator) -> bool:
        return locator.scheme is Scheme.LOCAL

    async def fetch(
        self,
        locator: SourceLocator,
        staging: PartialDownload,
        options: DownloadOptions,
        signal: FetchSignal,
    ) -> Success:
        source = Path(locator.path).expanduser()
        if not (source.exists() or source.is_symlink()):
            raise NotFoundError(f"No such file or directory: {source}")
        try:
            if source.is_dir():
                written = await self._copy_tree(source, staging.path, signal)
            else:
                with source.open("rb") as handle:
                    written = await write_stream(
                        staging,
                        iter_blocking(partial(handle.read, self.chunk_size)),
                        signal=signal,
                        label=source.name,
                        total=source.stat().st_size,
                    )
        except PermissionError as exc:
            raise AuthenticationError(f"Permission denied reading {source}: {exc}") from exc
        except FileNotFoundError as exc:
            raise NotFoundError(f"{source} disappeared while copying: {exc}") from exc
        return Success(bytes_written=written, destination=staging.path)

    @staticmethod
    async def _copy_tree(source: Path, target: Path, signal: FetchSignal) -> int:
        target.mkdir()
        written = 0
        for entry in sorted(source.rglob("*")):
            signal.check()
            relative = target / entry.relative_to(source)
            if entry.is_dir():
                relative.mkdir(parents=True, exist_ok=True)
            elif entry.is_file():
                relative.parent.mkdir(parents=True, exist_ok=True)
                await asyncio.to_thread(shutil.copy2, entry, relative)
                written += relative.stat().st_size
        return written
