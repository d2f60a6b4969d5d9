#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from gette.builder import Builder
from gette.errors import (
    AuthenticationError,
    ErrorKind,
    FetchTimeoutError,
    GetterError,
    NotFoundError,
    TransientTransportError,
    TransportError,
)
from gette.getters.http import HttpGetter, classify_status
from gette.locator import parse
from gette.registry import Registry
from gette.signal import FetchSignal
from gette.types import DownloadOptions, Failure, Success
from gette.writer import PartialDownload


def _getter(handler) -> HttpGetter:
    return HttpGetter(transport=httpx.MockTransport(handler), headers={"X-Test": "1"}, chunk_size=4)


@pytest.mark.asyncio
async def test_streams_body_into_staging(tmp_path: Path) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"hello world")

    with PartialDownload(tmp_path / "out.txt") as staging:
        outcome = await _getter(handler).fetch(
            parse("https://example.com/f.txt?sig=abc"), staging, DownloadOptions(), FetchSignal()
        )
        assert outcome.bytes_written == 11
        assert staging.path.read_bytes() == b"hello world"
    assert str(seen[0].url) == "https://example.com/f.txt?sig=abc"
    assert seen[0].headers["X-Test"] == "1"


@pytest.mark.asyncio
async def test_follows_redirects(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(302, headers={"Location": "https://example.com/new"})
        return httpx.Response(200, content=b"moved")

    with PartialDownload(tmp_path / "out.txt") as staging:
        await _getter(handler).fetch(parse("https://example.com/old"), staging, DownloadOptions(), FetchSignal())
        assert staging.path.read_bytes() == b"moved"


@pytest.mark.parametrize(
    "status, error",
    [
        (404, NotFoundError),
        (410, NotFoundError),
        (401, AuthenticationError),
        (403, AuthenticationError),
        (408, TransientTransportError),
        (429, TransientTransportError),
        (500, TransientTransportError),
        (503, TransientTransportError),
        (400, TransportError),
        (418, TransportError),
    ],
)
def test_classify_status(status: int, error: type[GetterError]) -> None:
    assert type(classify_status(status, "https://x")) is error


def test_success_status_is_not_an_error() -> None:
    assert classify_status(200, "https://x") is None


@pytest.mark.asyncio
async def test_timeout_is_classified(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with PartialDownload(tmp_path / "out") as staging, pytest.raises(FetchTimeoutError):
        await _getter(handler).fetch(parse("https://example.com/f"), staging, DownloadOptions(), FetchSignal())


@pytest.mark.asyncio
async def test_connection_error_is_transient(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with PartialDownload(tmp_path / "out") as staging, pytest.raises(TransientTransportError):
        await _getter(handler).fetch(parse("https://example.com/f"), staging, DownloadOptions(), FetchSignal())


@pytest.mark.asyncio
async def test_short_body_is_transient(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Length": "100"}, content=b"short")

    with PartialDownload(tmp_path / "out") as staging, pytest.raises(TransientTransportError):
        await _getter(handler).fetch(parse("https://example.com/f"), staging, DownloadOptions(), FetchSignal())


@pytest.mark.asyncio
async def test_retries_server_errors_through_builder(tmp_path: Path) -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, content=b"finally")

    registry = Registry()
    registry.register(_getter(handler))
    outcome = await Builder(registry).get(
        "https://example.com/f", tmp_path / "f", DownloadOptions(retries=3, backoff=0)
    )
    assert isinstance(outcome, Success)
    assert outcome.attempts_made == 3
    assert (tmp_path / "f").read_bytes() == b"finally"


@pytest.mark.asyncio
async def test_not_found_through_builder_leaves_nothing(tmp_path: Path) -> None:
    registry = Registry()
    registry.register(_getter(lambda request: httpx.Response(404)))
    outcome = await Builder(registry).get(
        "https://example.com/f", tmp_path / "f", DownloadOptions(retries=3, backoff=0)
    )
    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.NOT_FOUND
    assert outcome.attempts_made == 1
    assert list(tmp_path.iterdir()) == []
