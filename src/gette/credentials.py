#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import os
from enum import Enum
from typing import Any

from loguru import logger

from gette.config import load_config_file


class Provider(str, Enum):
    """Credential sections, named like the top-level keys of the config file."""

    HUGGINGFACE = "huggingface"
    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"


# Every env var is optional: public buckets and repositories work without credentials.
PROVIDER_ENV_VARS = {
    Provider.HUGGINGFACE: ["HF_TOKEN"],
    Provider.AWS: [
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
        "AWS_ENDPOINT_URL",
    ],
    Provider.AZURE: [
        "AZURE_STORAGE_CONNECTION_STRING",
        "AZURE_STORAGE_ACCOUNT_NAME",
        "AZURE_STORAGE_ACCOUNT_KEY",
        "AZURE_STORAGE_SAS_TOKEN",
    ],
    Provider.GCP: ["GOOGLE_APPLICATION_CREDENTIALS", "GOOGLE_CLOUD_PROJECT"],
}


def get_credentials(provider: Provider, *, required: tuple[str, ...] = ()) -> dict[str, Any]:
    """Retrieve credentials for a given storage provider.

    Priority:
    1. Environment variables
    2. Local config file (e.g. `~/.config/gette/config.json`)

    Args:
        provider: Is an instance of Provider enum.
        required: Names that must resolve to a non-empty value.

    Returns:
        - Dictionary of credentials, containing only non-empty values.
    """
    if provider not in PROVIDER_ENV_VARS:
        raise ValueError(f"Unsupported provider: {provider.value}")

    section = load_config_file().get(provider.value, {})
    creds: dict[str, Any] = {}
    for var_name in PROVIDER_ENV_VARS[provider]:
        value = os.getenv(var_name) or section.get(var_name)
        if value is not None and value != "":
            creds[var_name] = value

    missing = [name for name in required if name not in creds]
    if missing:
        raise RuntimeError(f"Missing credential: {', '.join(missing)} for provider {provider.value}")

    # Normalize AWS region: allow either, expose only AWS_REGION if present:
    if provider is Provider.AWS:
        region = creds.get("AWS_REGION") or creds.get("AWS_DEFAULT_REGION")
        if region:
            creds["AWS_REGION"] = region
            creds.pop("AWS_DEFAULT_REGION", None)

    # Log only which keys were loaded to avoid leaking secrets
    logger.debug(f"Extracted credentials for provider {provider.value} (keys: {sorted(creds.keys())})")

    return creds
