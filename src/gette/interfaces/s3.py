#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from enum import Enum
from functools import lru_cache

import boto3  # type: ignore[import-untyped]
from botocore import UNSIGNED  # type: ignore[import-untyped]
from botocore.client import BaseClient  # type: ignore[import-untyped]
from botocore.config import Config  # type: ignore[import-untyped]
from loguru import logger

from gette.credentials import Provider, get_credentials


class AWSSecrets(str, Enum):
    AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
    AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
    AWS_SESSION_TOKEN = "AWS_SESSION_TOKEN"
    AWS_REGION = "AWS_REGION"
    AWS_ENDPOINT_URL = "AWS_ENDPOINT_URL"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value if value else None


@lru_cache(maxsize=16)
def get_s3_client(region: str | None = None) -> BaseClient:
    """
    Construct an S3 client from managed credentials (env or config), cached per region.

    Args:
        region: [Optional] Region taken from the source (host or ``?region=``); overrides
            the configured AWS_REGION.

    Falls back to unsigned access for public buckets when no access key is configured.
    AWS_ENDPOINT_URL points the client at MinIO or other S3-compatible services.
    """
    credentials = get_credentials(Provider.AWS)

    region = _clean(region) or _clean(credentials.get(AWSSecrets.AWS_REGION.value))
    endpoint_url = _clean(credentials.get(AWSSecrets.AWS_ENDPOINT_URL.value))

    kwargs: dict[str, str] = {}
    akid = _clean(credentials.get(AWSSecrets.AWS_ACCESS_KEY_ID.value))
    secret = _clean(credentials.get(AWSSecrets.AWS_SECRET_ACCESS_KEY.value))
    token = _clean(credentials.get(AWSSecrets.AWS_SESSION_TOKEN.value))
    if akid:
        kwargs["aws_access_key_id"] = akid
    if secret:
        kwargs["aws_secret_access_key"] = secret
    if token:
        kwargs["aws_session_token"] = token

    # One botocore attempt per call, the builder retries:
    options: dict[str, object] = {"retries": {"max_attempts": 1, "mode": "standard"}, "max_pool_connections": 32}
    if "aws_access_key_id" not in kwargs:
        logger.info("Using unsigned S3 client (public bucket)")
        options["signature_version"] = UNSIGNED
        kwargs = {}
    else:
        logger.info("Using credentialed S3 client")

    client_kwargs: dict[str, object] = {"config": Config(**options), **kwargs}
    if region:
        client_kwargs["region_name"] = region
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url
    return boto3.client("s3", **client_kwargs)
