#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from gette.errors import CommitError, DestinationExistsError, FetchCancelledError
from gette.signal import CancelToken, FetchSignal
from gette.writer import STAGING_SUFFIX, PartialDownload, iter_blocking, write_stream


async def _chunks(*parts: bytes) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


def test_staging_lives_next_to_destination(tmp_path: Path) -> None:
    destination = tmp_path / "nested" / "out.bin"
    staging = PartialDownload(destination)
    assert staging.root.parent == destination.parent
    assert staging.root.name.startswith(".out.bin.")
    assert staging.root.name.endswith(STAGING_SUFFIX)
    assert not destination.exists()
    staging.discard()
    assert not destination.parent.exists()


def test_discard_keeps_ancestors_after_commit(tmp_path: Path) -> None:
    destination = tmp_path / "a" / "b" / "out.bin"
    with PartialDownload(destination) as staging:
        staging.path.write_bytes(b"payload")
        staging.commit(overwrite=False)
    assert destination.read_bytes() == b"payload"
    assert sorted(p.name for p in destination.parent.iterdir()) == ["out.bin"]


def test_discard_keeps_ancestors_shared_with_another_request(tmp_path: Path) -> None:
    first = PartialDownload(tmp_path / "shared" / "one.bin")
    second = PartialDownload(tmp_path / "shared" / "two.bin")
    first.discard()
    assert (tmp_path / "shared").is_dir()
    second.discard()
    assert list((tmp_path / "shared").iterdir()) == []


def test_two_requests_get_distinct_staging(tmp_path: Path) -> None:
    first = PartialDownload(tmp_path / "out.bin")
    second = PartialDownload(tmp_path / "out.bin")
    assert first.root != second.root
    first.discard()
    second.discard()


def test_commit_file(tmp_path: Path) -> None:
    destination = tmp_path / "out.bin"
    with PartialDownload(destination) as staging:
        staging.path.write_bytes(b"payload")
        assert staging.commit(overwrite=False) == destination
    assert destination.read_bytes() == b"payload"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["out.bin"]


def test_commit_refuses_existing_destination(tmp_path: Path) -> None:
    destination = tmp_path / "out.bin"
    destination.write_bytes(b"old")
    with PartialDownload(destination) as staging:
        staging.path.write_bytes(b"new")
        with pytest.raises(DestinationExistsError):
            staging.commit(overwrite=False)
    assert destination.read_bytes() == b"old"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["out.bin"]


def test_commit_overwrites_file(tmp_path: Path) -> None:
    destination = tmp_path / "out.bin"
    destination.write_bytes(b"old")
    with PartialDownload(destination) as staging:
        staging.path.write_bytes(b"new")
        staging.commit(overwrite=True)
    assert destination.read_bytes() == b"new"


def test_commit_directory_over_directory(tmp_path: Path) -> None:
    destination = tmp_path / "tree"
    destination.mkdir()
    (destination / "stale.txt").write_text("stale")
    with PartialDownload(destination) as staging:
        staging.path.mkdir()
        (staging.path / "fresh.txt").write_text("fresh")
        staging.commit(overwrite=True)
    assert sorted(p.name for p in destination.iterdir()) == ["fresh.txt"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["tree"]


def test_failed_directory_swap_restores_previous(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    destination = tmp_path / "tree"
    destination.mkdir()
    (destination / "keep.txt").write_text("keep")
    staging = PartialDownload(destination)
    staging.path.mkdir()
    real_replace = os.replace

    def _flaky_replace(src, dst):
        if Path(src) == staging.path:
            raise OSError("disk on fire")
        return real_replace(src, dst)

    monkeypatch.setattr("gette.writer.os.replace", _flaky_replace)
    with pytest.raises(CommitError):
        staging.commit(overwrite=True)
    monkeypatch.undo()
    staging.discard()
    assert (destination / "keep.txt").read_text() == "keep"


def test_commit_without_staged_content(tmp_path: Path) -> None:
    with PartialDownload(tmp_path / "out.bin") as staging, pytest.raises(CommitError):
        staging.commit(overwrite=True)


def test_reset_and_size(tmp_path: Path) -> None:
    with PartialDownload(tmp_path / "out.bin") as staging:
        staging.path.write_bytes(b"12345")
        (staging.workspace / "scratch").write_bytes(b"x")
        assert staging.size() == 5
        staging.reset()
        assert not staging.exists()
        assert staging.size() == 0
        assert not (staging.root / ".work").exists()
        assert staging.root.exists()


def test_discard_is_idempotent(tmp_path: Path) -> None:
    staging = PartialDownload(tmp_path / "out.bin")
    staging.discard()
    staging.discard()
    assert not staging.root.exists()


@pytest.mark.asyncio
async def test_write_stream_counts_bytes(tmp_path: Path) -> None:
    with PartialDownload(tmp_path / "out.bin") as staging:
        written = await write_stream(
            staging, _chunks(b"ab", b"", b"cde"), signal=FetchSignal(), label="test", total=5
        )
        assert written == 5
        assert staging.path.read_bytes() == b"abcde"


@pytest.mark.asyncio
async def test_write_stream_writes_in_worker_threads(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    offloaded: list[str] = []
    to_thread = asyncio.to_thread

    async def _recording_to_thread(func, /, *args, **kwargs):
        offloaded.append(func.__name__)
        return await to_thread(func, *args, **kwargs)

    monkeypatch.setattr("gette.writer.asyncio.to_thread", _recording_to_thread)
    with PartialDownload(tmp_path / "out.bin") as staging:
        await write_stream(staging, _chunks(b"ab", b"cd"), signal=FetchSignal(), label="test")
        assert staging.path.read_bytes() == b"abcd"
    assert offloaded == ["write", "write"]


@pytest.mark.asyncio
async def test_write_stream_stops_when_cancelled(tmp_path: Path) -> None:
    token = CancelToken()
    token.cancel("user abort")
    with PartialDownload(tmp_path / "out.bin") as staging:
        with pytest.raises(FetchCancelledError, match="user abort"):
            await write_stream(staging, _chunks(b"ab"), signal=FetchSignal(token=token), label="test")


@pytest.mark.asyncio
async def test_iter_blocking_stops_at_empty_chunk() -> None:
    parts = iter([b"a", b"b", b""])
    collected = [chunk async for chunk in iter_blocking(lambda: next(parts))]
    assert collected == [b"a", b"b"]
