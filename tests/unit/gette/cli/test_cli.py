#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from loguru import logger
from typer.testing import CliRunner

from gette.cli.cli import app
from gette.cli.cli_utils import sanitize
from gette.errors import ErrorKind
from gette.types import Failure

runner = CliRunner()

MODULE_PATH = "gette.cli.cli_fetch"


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    # the CLI points loguru at the runner's stream, which is closed after each invoke
    logger.remove()
    logger.add(sys.stderr)


def _json_line(output: str) -> dict:
    return json.loads(next(line for line in output.splitlines() if line.startswith("{")))


def test_fetch_local_file(tmp_path: Path) -> None:
    source = tmp_path / "in.txt"
    source.write_text("data")
    destination = tmp_path / "out.txt"
    res = runner.invoke(app, ["fetch", str(source), str(destination)])
    assert res.exit_code == 0, res.output
    payload = _json_line(res.stdout)
    assert payload["ok"] is True
    assert payload["bytes_written"] == 4
    assert payload["destination"] == str(destination)
    assert destination.read_text() == "data"


def test_fetch_failure_exits_non_zero(tmp_path: Path) -> None:
    res = runner.invoke(app, ["fetch", "unknown://thing", str(tmp_path / "out")])
    assert res.exit_code == 1
    payload = _json_line(res.stdout)
    assert payload["ok"] is False
    assert payload["kind"] == ErrorKind.UNSUPPORTED_SOURCE.value
    assert payload["attempts_made"] == 0


def test_fetch_passes_options(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured = {}

    def _fake_get_sync(source, destination, options):
        captured.update(source=source, destination=destination, options=options)
        return Failure(kind=ErrorKind.TIMEOUT, message="slow", attempts_made=3)

    monkeypatch.setattr(f"{MODULE_PATH}.get_sync", _fake_get_sync)
    digest = "b" * 64
    res = runner.invoke(
        app,
        [
            "fetch",
            "s3://b/k",
            str(tmp_path / "k"),
            "--retries",
            "2",
            "--timeout",
            "1.5",
            "--overwrite",
            "--sha256",
            digest,
        ],
    )
    assert res.exit_code == 1
    options = captured["options"]
    assert options.retries == 2
    assert options.timeout == 1.5
    assert options.overwrite is True
    assert options.expected_sha256 == digest


def test_detect_prints_locator_and_getter() -> None:
    res = runner.invoke(app, ["detect", "github.com/org/repo//sub?ref=v1"])
    assert res.exit_code == 0, res.output
    payload = _json_line(res.stdout)
    assert payload["scheme"] == "git"
    assert payload["getter"] == "git"
    assert payload["query_options"] == {"ref": "v1", "subdir": "sub"}


def test_detect_unknown_source() -> None:
    res = runner.invoke(app, ["detect", "mystore://thing"])
    assert res.exit_code == 0
    assert _json_line(res.stdout)["getter"] is None


def test_getters_lists_builtins_in_order() -> None:
    res = runner.invoke(app, ["getters"])
    assert res.exit_code == 0
    names = [line.split("\t")[0] for line in res.stdout.splitlines() if "\t" in line]
    assert names[0] == "local"
    assert "http" in names


def test_debug_flag_is_accepted(tmp_path: Path) -> None:
    res = runner.invoke(app, ["--debug", "detect", "/tmp/x"])
    assert res.exit_code == 0


def test_sanitize_redacts_tokens(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "supersecretvalue")
    msg = sanitize("token hf_abcdefGHIJKLMNOP and supersecretvalue leaked")
    assert "GHIJKLMNOP" not in msg
    assert "supersecretvalue" not in msg
    assert "hf_abcdef***REDACTED***" in msg
