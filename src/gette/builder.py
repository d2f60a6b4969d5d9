#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

"""Download lifecycle: resolve a getter, fetch with retries, verify, commit.

A request moves through ``IDLE -> RESOLVING -> FETCHING -> FINALIZING`` and ends in
``SUCCEEDED`` or ``FAILED``. Whatever happens, `Builder.get` returns exactly one
`DownloadOutcome` and leaves no staging directory behind. The only exception that
escapes is `asyncio.CancelledError` when the calling task itself is cancelled.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from os import PathLike
from pathlib import Path
from uuid import uuid4

from loguru import logger
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from gette.config import default_options
from gette.errors import (
    CommitError,
    ErrorKind,
    FetchCancelledError,
    FetchTimeoutError,
    GetterError,
    TransportError,
)
from gette.locator import parse
from gette.registry import Registry, default_registry
from gette.signal import CancelToken, FetchSignal
from gette.types import (
    DownloadOptions,
    DownloadOutcome,
    DownloadRequest,
    Failure,
    Getter,
    SourceLocator,
    Success,
)
from gette.verification import verify_sha256
from gette.writer import PartialDownload


class DownloadState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    FETCHING = "fetching"
    FINALIZING = "finalizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, GetterError) and exc.retryable


def _cancelled_error(cancel: CancelToken | None) -> FetchCancelledError:
    reason = cancel.reason if cancel is not None else None
    return FetchCancelledError(f"Download cancelled{f': {reason}' if reason else ''}")


def _backoff(cancel: CancelToken | None) -> Callable[[float], Awaitable[None]]:
    """Sleep between attempts, cut short by the cancel token."""

    async def _sleep(seconds: float) -> None:
        if cancel is None:
            await asyncio.sleep(seconds)
            return
        try:
            async with asyncio.timeout(seconds):
                await cancel.wait()
        except TimeoutError:
            return
        raise _cancelled_error(cancel)

    return _sleep


async def _settle(tasks: Iterable[asyncio.Task]) -> None:
    """Cancel whatever is still running and wait until every task has finished."""
    tasks = list(tasks)
    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.wait(tasks)
    for task in tasks:
        if not task.cancelled():
            # mark as retrieved; the caller reads the getter result separately
            task.exception()


class Builder:
    """Runs downloads against a getter registry.

    Args:
        registry: [Optional] Registry to select getters from, defaults to the process-wide one.
    """

    def __init__(self, registry: Registry | None = None) -> None:
        self._registry = registry

    @property
    def registry(self) -> Registry:
        return self._registry if self._registry is not None else default_registry()

    async def get(
        self,
        source: str,
        destination: str | PathLike[str],
        options: DownloadOptions | None = None,
        *,
        cancel: CancelToken | None = None,
    ) -> DownloadOutcome:
        """Fetch `source` into `destination`.

        Args:
            source: Raw source string (path, URL or shorthand).
            destination: Final path of the downloaded file or directory.
            options: [Optional] Download options, defaults to the configured settings.
            cancel: [Optional] Token that aborts the download when fired.

        Returns:
            - `Success` with the committed destination, or `Failure` with its `ErrorKind`.
        """
        log = logger.bind(request=uuid4().hex[:8])
        if options is None:
            try:
                options = default_options()
            except RuntimeError as exc:
                return self._fail(log, ErrorKind.INVALID_CONFIGURATION, str(exc), attempts=0)
        request = DownloadRequest(source=source, destination=Path(destination).expanduser(), options=options)
        log.debug(f"{DownloadState.IDLE.value}: {request.source!r} → {request.destination}")

        log.debug(f"{DownloadState.RESOLVING.value}: parsing source")
        locator = parse(request.source)
        getter = self.registry.select(locator)
        if getter is None:
            return self._fail(
                log,
                ErrorKind.UNSUPPORTED_SOURCE,
                f"No registered getter recognizes {request.source!r} (scheme: {locator.scheme.value})",
                attempts=0,
            )
        log.debug(f"{DownloadState.RESOLVING.value}: {locator.scheme.value} source, using getter {getter.name!r}")

        destination = request.destination
        if not request.options.overwrite and (destination.exists() or destination.is_symlink()):
            return self._fail(
                log, ErrorKind.DESTINATION_EXISTS, f"Destination already exists: {destination}", attempts=0
            )

        try:
            staging = PartialDownload(destination)
        except OSError as exc:
            return self._fail(log, ErrorKind.COMMIT_ERROR, f"Could not prepare {destination}: {exc}", attempts=0)

        attempts = 0
        bytes_written = 0
        try:
            log.debug(f"{DownloadState.FETCHING.value}: staging into {staging.root}")
            retrying = AsyncRetrying(
                stop=stop_after_attempt(request.options.retries + 1),
                wait=wait_exponential(multiplier=request.options.backoff, max=request.options.max_backoff),
                retry=retry_if_exception(_is_retryable),
                before_sleep=lambda state: self._log_retry(log, state),
                sleep=_backoff(cancel),
                reraise=True,
            )
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if attempts > 1:
                        staging.reset()
                    log.debug(f"{DownloadState.FETCHING.value}: attempt {attempts}/{request.options.retries + 1}")
                    bytes_written = await self._attempt(getter, locator, staging, request.options, cancel)

            log.debug(f"{DownloadState.FINALIZING.value}: {bytes_written} bytes staged")
            if request.options.expected_sha256:
                await asyncio.to_thread(verify_sha256, staging.path, request.options.expected_sha256)
            committed = staging.commit(overwrite=request.options.overwrite)
        except GetterError as exc:
            return self._fail(log, exc.kind, exc.message, attempts=attempts)
        finally:
            staging.discard()

        log.debug(f"{DownloadState.SUCCEEDED.value}")
        log.info(f"Fetched {request.source} → {committed} ({bytes_written} bytes, {attempts} attempt(s))")
        return Success(bytes_written=bytes_written, destination=committed, attempts_made=attempts)

    async def _attempt(
        self,
        getter: Getter,
        locator: SourceLocator,
        staging: PartialDownload,
        options: DownloadOptions,
        cancel: CancelToken | None,
    ) -> int:
        """Run one getter call under the attempt deadline, racing the cancel token.

        Returns:
            - Bytes written by the getter.

        Raises:
            GetterError: Classified failure of this attempt.
        """
        signal = FetchSignal.start(options.timeout, cancel)
        signal.check()
        task = asyncio.create_task(getter.fetch(locator, staging, options, signal))
        waiters = {task}
        if cancel is not None:
            waiters.add(asyncio.create_task(cancel.wait()))
        try:
            async with asyncio.timeout(options.timeout):
                done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        except TimeoutError:
            raise FetchTimeoutError(f"Attempt exceeded the {options.timeout}s timeout") from None
        finally:
            await _settle(waiters)

        if task not in done or task.cancelled():
            raise _cancelled_error(cancel)
        try:
            outcome = task.result()
        except GetterError:
            raise
        except Exception as exc:
            raise TransportError(f"{getter.name} failed unexpectedly: {type(exc).__name__}: {exc}") from exc

        if isinstance(outcome, Failure):
            raise GetterError.for_kind(outcome.kind, outcome.message)
        if not isinstance(outcome, Success):
            raise TransportError(f"{getter.name} returned {type(outcome).__name__} instead of an outcome")
        if not staging.exists():
            raise CommitError(f"{getter.name} reported success but staged nothing")
        return outcome.bytes_written

    @staticmethod
    def _log_retry(log, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        log.warning(f"Attempt {state.attempt_number} failed ({exc}), retrying in {delay:.2f}s")

    @staticmethod
    def _fail(log, kind: ErrorKind, message: str, *, attempts: int) -> Failure:
        log.debug(f"{DownloadState.FAILED.value}: {kind.value}")
        log.warning(f"Download failed [{kind.value}] after {attempts} attempt(s): {message}")
        return Failure(kind=kind, message=message, attempts_made=attempts)


async def get(
    source: str,
    destination: str | PathLike[str],
    options: DownloadOptions | None = None,
    *,
    cancel: CancelToken | None = None,
) -> DownloadOutcome:
    """Fetch `source` into `destination` using the process-wide registry."""
    return await Builder().get(source, destination, options, cancel=cancel)


def get_sync(
    source: str,
    destination: str | PathLike[str],
    options: DownloadOptions | None = None,
) -> DownloadOutcome:
    """Blocking variant of `get` for callers without an event loop."""
    return asyncio.run(get(source, destination, options))
