#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

"""Staging-then-rename discipline for download destinations.

Getters never touch the final destination. They write into `PartialDownload.path`, a
path inside a hidden, request-unique directory created next to the destination (same
filesystem, so the final move is a rename). The builder commits it on success and
discards the whole staging directory on every exit path.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from collections.abc import AsyncIterable, AsyncIterator, Callable
from pathlib import Path
from types import TracebackType

from loguru import logger

from gette.errors import CommitError, DestinationExistsError
from gette.logging_progress import LogProgress
from gette.signal import FetchSignal

DEFAULT_CHUNK = 1024 * 1024  # 1 MiB
STAGING_SUFFIX = ".part"


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


class PartialDownload:
    """Staging target owned by a single in-flight request.

    Args:
        destination: Final destination path the staged content is committed to.
    """

    def __init__(self, destination: Path) -> None:
        self.destination = Path(destination)
        parent = self.destination.parent
        # Missing ancestors, deepest first; removed again unless something is committed.
        self._created_parents = [p for p in (parent, *parent.parents) if not p.exists()]
        self._committed = False
        parent.mkdir(parents=True, exist_ok=True)
        self.root = Path(
            tempfile.mkdtemp(prefix=f".{self.destination.name}.", suffix=STAGING_SUFFIX, dir=parent)
        )
        self.path = self.root / self.destination.name

    def __enter__(self) -> PartialDownload:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.discard()

    @property
    def workspace(self) -> Path:
        """Scratch directory for getters that need intermediate files (e.g. a full git checkout)."""
        workspace = self.root / ".work"
        workspace.mkdir(exist_ok=True)
        return workspace

    def exists(self) -> bool:
        return self.path.exists() or self.path.is_symlink()

    def size(self) -> int:
        """Bytes currently staged (sum of all files for a directory)."""
        if self.path.is_dir():
            return sum(entry.stat().st_size for entry in self.path.rglob("*") if entry.is_file())
        if self.path.exists():
            return self.path.stat().st_size
        return 0

    def reset(self) -> None:
        """Drop everything a previous attempt staged, keeping the staging directory."""
        _remove(self.path)
        _remove(self.root / ".work")

    def commit(self, *, overwrite: bool) -> Path:
        """Move the staged content to the destination in a single rename.

        Args:
            overwrite: Replace an existing destination.

        Returns:
            - The destination path.

        Raises:
            DestinationExistsError: If the destination exists and `overwrite` is False.
            CommitError: If nothing was staged or the filesystem refused the move.
        """
        if not self.exists():
            raise CommitError(f"Nothing was staged for {self.destination}")
        destination = self.destination
        occupied = destination.exists() or destination.is_symlink()
        if occupied and not overwrite:
            raise DestinationExistsError(f"Destination already exists: {destination}")
        try:
            replacing_dir = occupied and destination.is_dir() and not destination.is_symlink()
            if self.path.is_dir() or replacing_dir:
                self._swap_in(destination, occupied)
            else:
                os.replace(self.path, destination)
        except OSError as exc:
            raise CommitError(f"Could not move staged content to {destination}: {exc}") from exc
        self._committed = True
        logger.debug(f"Committed {self.path} → {destination}")
        return destination

    def _swap_in(self, destination: Path, occupied: bool) -> None:
        # Directories cannot be renamed over a non-empty target, so the old content is
        # moved aside into the staging directory first and restored if the rename fails.
        previous = self.root / ".previous"
        if occupied:
            os.replace(destination, previous)
        try:
            os.replace(self.path, destination)
        except OSError:
            if occupied:
                os.replace(previous, destination)
            raise

    def discard(self) -> None:
        """Delete the staging directory and everything in it. Safe to call repeatedly.

        Without a commit, the destination's ancestors created by this request are removed too
        as long as they are empty.
        """
        if self.root.exists():
            try:
                shutil.rmtree(self.root)
            except OSError as exc:
                logger.warning(f"Could not remove staging directory {self.root}: {exc}")
                return
        if not self._committed:
            self._remove_created_parents()

    def _remove_created_parents(self) -> None:
        while self._created_parents:
            directory = self._created_parents[0]
            if directory.exists():
                try:
                    directory.rmdir()
                except OSError as exc:
                    # not empty: shared with another request or populated meanwhile
                    logger.debug(f"Keeping {directory}: {exc}")
                    return
            self._created_parents.pop(0)


async def iter_blocking(read: Callable[[], bytes]) -> AsyncIterator[bytes]:
    """Turn a blocking `read()` into an async chunk iterator, one worker-thread call per chunk.

    Iteration stops at the first empty chunk.
    """
    while True:
        chunk = await asyncio.to_thread(read)
        if not chunk:
            return
        yield chunk


async def write_stream(
    staging: PartialDownload,
    chunks: AsyncIterable[bytes],
    *,
    signal: FetchSignal,
    label: str,
    total: int | None = None,
) -> int:
    """Write async chunks into the staging target, checking the signal at each chunk.

    Args:
        staging: Staging target to write into (truncated first).
        chunks: Async iterable of bytes.
        signal: Deadline / cancellation signal of the current attempt.
        label: Progress label, usually the source.
        total: [Optional] Expected number of bytes, for percentage progress.

    Returns:
        - Number of bytes written.
    """
    progress = LogProgress(label=label, total_bytes=total)
    written = 0
    try:
        with staging.path.open("wb") as handle:
            async for chunk in chunks:
                signal.check()
                if not chunk:
                    continue
                await asyncio.to_thread(handle.write, chunk)
                written += len(chunk)
                progress.update(len(chunk))
    finally:
        progress.close()
    return written
