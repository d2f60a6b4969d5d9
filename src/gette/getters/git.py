#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import asyncio
import contextlib
import os
import re
import shutil

from loguru import logger

from gette.errors import (
    AuthenticationError,
    GetterError,
    InvalidSourceError,
    NotFoundError,
    TransientTransportError,
    TransportError,
)
from gette.signal import FetchSignal
from gette.types import DownloadOptions, Scheme, SourceLocator, Success
from gette.writer import PartialDownload

_COMMIT_SHA = re.compile(r"^[0-9a-fA-F]{40}$")

# Matched against lower-cased stderr, checked in this order:
_AUTH_MARKERS = (
    "authentication failed",
    "could not read username",
    "could not read password",
    "permission denied",
)
_NOT_FOUND_MARKERS = (
    "not found",
    "does not appear to be a git repository",
    "did not match any",
    "does not exist",
)
_TRANSIENT_MARKERS = (
    "could not resolve host",
    "timed out",
    "early eof",
    "connection reset",
    "connection refused",
    "the remote end hung up",
    "rpc failed",
)


def clone_url(locator: SourceLocator) -> str:
    """URL handed to ``git clone``; relative local repositories stay plain paths."""
    if locator.protocol == "file" and not locator.authority and not locator.path.startswith("/"):
        return locator.path
    return locator.base_url


def classify_git_failure(stderr: str, url: str) -> GetterError:
    detail = stderr.strip().splitlines()[-1] if stderr.strip() else "git exited with an error"
    text = stderr.lower()
    message = f"{url}: {detail}"
    if any(marker in text for marker in _AUTH_MARKERS):
        return AuthenticationError(message)
    if any(marker in text for marker in _NOT_FOUND_MARKERS):
        return NotFoundError(message)
    if any(marker in text for marker in _TRANSIENT_MARKERS):
        return TransientTransportError(message)
    return TransportError(message)


class GitGetter:
    """Clones git repositories with the ``git`` executable.

    Query options:
      - ``ref``: branch or tag (shallow clone), or a 40 character commit SHA (full clone, then checkout)
      - ``depth``: clone depth for branch/tag refs, defaults to `default_depth`
      - ``subdir``: stage only this subtree (also set by ``repo.git//sub/dir``)

    Args:
        executable: Git binary to run.
        default_depth: Depth of clones that do not pin a commit; 0 clones the full history.
    """

    name = "git"

    def __init__(self, *, executable: str = "git", default_depth: int = 1) -> None:
        self.executable = executable
        self.default_depth = default_depth

    def matches(self, locator: SourceLocator) -> bool:
        return locator.scheme is Scheme.GIT

    def _depth(self, locator: SourceLocator, pinned: bool) -> int | None:
        raw = locator.option("depth")
        if pinned:
            return None
        if raw is None:
            return self.default_depth or None
        try:
            depth = int(raw)
        except ValueError:
            raise InvalidSourceError(f"depth must be an integer, got {raw!r}") from None
        if depth < 0:
            raise InvalidSourceError(f"depth must not be negative, got {depth}")
        return depth or None

    async def fetch(
        self,
        locator: SourceLocator,
        staging: PartialDownload,
        options: DownloadOptions,
        signal: FetchSignal,
    ) -> Success:
        url = clone_url(locator)
        ref = locator.option("ref")
        subdir = locator.option("subdir")
        pinned = ref is not None and bool(_COMMIT_SHA.match(ref))
        depth = self._depth(locator, pinned)
        checkout = staging.workspace / "checkout" if subdir else staging.path

        args = ["clone", "--quiet"]
        if depth:
            args += ["--depth", str(depth)]
        if ref and not pinned:
            args += ["--branch", ref]
        args += ["--", url, str(checkout)]
        await self._run(args, url=url)
        signal.check()
        if pinned:
            await self._run(["-C", str(checkout), "checkout", "--quiet", ref], url=url)

        if subdir:
            root = checkout.resolve()
            source = (checkout / subdir).resolve()
            if not source.is_relative_to(root) or source == root:
                raise InvalidSourceError(f"subdir {subdir!r} points outside of the repository")
            if not source.exists():
                raise NotFoundError(f"{url}: no {subdir!r} in the repository")
            await asyncio.to_thread(shutil.move, source, staging.path)
        written = await asyncio.to_thread(staging.size)
        return Success(bytes_written=written, destination=staging.path)

    async def _run(self, args: list[str], *, url: str) -> None:
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        logger.debug(f"{self.executable} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except FileNotFoundError as exc:
            raise TransportError(f"git executable {self.executable!r} not found") from exc
        try:
            _, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                # exited between the check and the kill:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
        if process.returncode != 0:
            raise classify_git_failure(stderr.decode(errors="replace"), url)

