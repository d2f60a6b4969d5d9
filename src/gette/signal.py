#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

"""Deadline and cancellation state handed to every `Getter.fetch` call.

The builder enforces both on its own (it cancels the getter task when the deadline passes
or the token fires), but getters that loop over chunks call `FetchSignal.check()` so they
stop writing to the staging target at the next chunk boundary.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from gette.errors import FetchCancelledError, FetchTimeoutError


class CancelToken:
    """Caller-side handle to abort an in-flight `get`."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(frozen=True)
class FetchSignal:
    deadline: float | None = None
    """Event loop time at which the current attempt expires."""
    token: CancelToken | None = None

    @classmethod
    def start(cls, timeout: float | None, token: CancelToken | None = None) -> FetchSignal:
        if timeout is None:
            return cls(deadline=None, token=token)
        return cls(deadline=asyncio.get_running_loop().time() + timeout, token=token)

    def remaining(self) -> float | None:
        """Seconds left before the deadline (never negative), or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - asyncio.get_running_loop().time())

    @property
    def cancelled(self) -> bool:
        return self.token is not None and self.token.cancelled

    @property
    def expired(self) -> bool:
        return self.deadline is not None and asyncio.get_running_loop().time() >= self.deadline

    def check(self) -> None:
        """Raise if the attempt should stop.

        Raises:
            FetchCancelledError: If the caller cancelled the request.
            FetchTimeoutError: If the attempt's deadline has passed.
        """
        if self.cancelled:
            reason = self.token.reason if self.token else None
            raise FetchCancelledError(f"download cancelled{f': {reason}' if reason else ''}")
        if self.expired:
            raise FetchTimeoutError("download attempt exceeded its timeout")
