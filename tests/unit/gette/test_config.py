#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from gette.config import config_path, default_options, load_config_file, load_settings
from gette.types import DownloadOptions


def test_defaults_without_config_file() -> None:
    settings = load_settings()
    assert settings.retries == 3
    assert settings.timeout is None
    assert settings.overwrite is False
    assert load_config_file() == {}


def test_config_path_honours_env(isolated_environment: Path) -> None:
    assert config_path() == isolated_environment


def test_config_file_defaults_section(isolated_environment: Path) -> None:
    isolated_environment.write_text(json.dumps({"defaults": {"retries": 7, "timeout": 12.5}}))
    options = default_options()
    assert options.retries == 7
    assert options.timeout == 12.5


def test_env_overrides_config_file(isolated_environment: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    isolated_environment.write_text(json.dumps({"defaults": {"retries": 7, "overwrite": False}}))
    monkeypatch.setenv("GETTE_RETRIES", "1")
    monkeypatch.setenv("GETTE_OVERWRITE", "yes")
    settings = load_settings()
    assert settings.retries == 1
    assert settings.overwrite is True


def test_explicit_overrides_win_and_none_is_ignored() -> None:
    options = default_options(retries=0, timeout=None, expected_sha256="a" * 64)
    assert options.retries == 0
    assert options.timeout is None
    assert options.expected_sha256 == "a" * 64


def test_invalid_json_is_reported(isolated_environment: Path) -> None:
    isolated_environment.write_text("{not json")
    with pytest.raises(RuntimeError, match="Invalid JSON"):
        load_config_file()


def test_invalid_settings_are_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GETTE_RETRIES", "-4")
    with pytest.raises(RuntimeError, match="Invalid gette settings"):
        load_settings()


def test_download_options_validation() -> None:
    with pytest.raises(ValidationError):
        DownloadOptions(retries=-1)
    with pytest.raises(ValidationError):
        DownloadOptions(timeout=0)
    with pytest.raises(ValidationError):
        DownloadOptions(expected_sha256="not-a-digest")
    with pytest.raises(ValidationError):
        DownloadOptions(unknown=True)
