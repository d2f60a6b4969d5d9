#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from pathlib import Path

import pytest

from gette.config import CONFIG_ENV_VAR, ENV_OVERRIDES
from gette.credentials import PROVIDER_ENV_VARS


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config file at an empty location and hide real credentials."""
    config_path = tmp_path_factory.mktemp("config") / "config.json"
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config_path))
    for names in PROVIDER_ENV_VARS.values():
        for name in names:
            monkeypatch.delenv(name, raising=False)
    for name in ENV_OVERRIDES.values():
        monkeypatch.delenv(name, raising=False)
    return config_path
