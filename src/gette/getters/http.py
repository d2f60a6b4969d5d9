#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from collections.abc import Mapping

import httpx

from gette.errors import (
    AuthenticationError,
    FetchTimeoutError,
    GetterError,
    InvalidSourceError,
    NotFoundError,
    TransientTransportError,
    TransportError,
)
from gette.signal import FetchSignal
from gette.types import DownloadOptions, Scheme, SourceLocator, Success
from gette.writer import DEFAULT_CHUNK, PartialDownload, write_stream

# httpx's own limits; the per-attempt deadline is enforced by the builder on top.
DEFAULT_TIMEOUT = httpx.Timeout(30.0, read=60.0)

_TRANSIENT_STATUS = {408, 425, 429}


def classify_status(status_code: int, url: str) -> GetterError | None:
    """Map an HTTP status to the failure it stands for, None for success."""
    if status_code < 400:
        return None
    if status_code in (404, 410):
        return NotFoundError(f"{url} returned HTTP {status_code}")
    if status_code in (401, 403):
        return AuthenticationError(f"{url} returned HTTP {status_code}")
    if status_code in _TRANSIENT_STATUS or status_code >= 500:
        return TransientTransportError(f"{url} returned HTTP {status_code}")
    return TransportError(f"{url} returned HTTP {status_code}")


async def stream_url(
    url: str,
    staging: PartialDownload,
    signal: FetchSignal,
    *,
    label: str,
    headers: Mapping[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    chunk_size: int = DEFAULT_CHUNK,
) -> int:
    """Stream a GET response body into the staging target.

    Args:
        url: URL to fetch; redirects are followed.
        staging: Staging target of the current request.
        signal: Deadline / cancellation signal of the current attempt.
        label: Progress label.
        headers: [Optional] Extra request headers (e.g. authorization).
        transport: [Optional] httpx transport, tests pass a `httpx.MockTransport`.
        chunk_size: Bytes per read.

    Returns:
        - Number of bytes written.

    Raises:
        GetterError: Classified by status code or transport failure.
    """
    total: int | None = None
    try:
        async with httpx.AsyncClient(
            transport=transport,
            headers=dict(headers or {}),
            follow_redirects=True,
            timeout=DEFAULT_TIMEOUT,
        ) as client:
            async with client.stream("GET", url) as response:
                error = classify_status(response.status_code, url)
                if error is not None:
                    raise error
                # Content-Length counts encoded bytes, aiter_bytes yields decoded ones:
                if "content-encoding" not in response.headers:
                    total = int(response.headers.get("content-length") or 0) or None
                written = await write_stream(
                    staging, response.aiter_bytes(chunk_size), signal=signal, label=label, total=total
                )
    except httpx.TimeoutException as exc:
        raise FetchTimeoutError(f"Timed out fetching {url}: {type(exc).__name__}") from exc
    except httpx.UnsupportedProtocol as exc:
        raise TransportError(f"Unsupported protocol for {url}: {exc}") from exc
    except httpx.TransportError as exc:
        raise TransientTransportError(f"Connection error fetching {url}: {type(exc).__name__}: {exc}") from exc
    except httpx.InvalidURL as exc:
        raise InvalidSourceError(f"Invalid URL {url!r}: {exc}") from exc

    if total is not None and written < total:
        raise TransientTransportError(f"Connection closed after {written} of {total} bytes from {url}")
    return written


class HttpGetter:
    """Plain HTTP(S) downloads through an httpx `AsyncClient`.

    Args:
        transport: [Optional] httpx transport (a `MockTransport` in tests).
        headers: [Optional] Headers sent with every request.
        chunk_size: Bytes per read.
    """

    name = "http"

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: Mapping[str, str] | None = None,
        chunk_size: int = DEFAULT_CHUNK,
    ) -> None:
        self.transport = transport
        self.headers = dict(headers or {})
        self.chunk_size = chunk_size

    def matches(self, locator: SourceLocator) -> bool:
        return locator.scheme in (Scheme.HTTP, Scheme.HTTPS)

    async def fetch(
        self,
        locator: SourceLocator,
        staging: PartialDownload,
        options: DownloadOptions,
        signal: FetchSignal,
    ) -> Success:
        url = locator.raw.strip() or locator.url
        written = await stream_url(
            url,
            staging,
            signal,
            label=url,
            headers=self.headers,
            transport=self.transport,
            chunk_size=self.chunk_size,
        )
        return Success(bytes_written=written, destination=staging.path)
