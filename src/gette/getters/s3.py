#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import asyncio
from collections.abc import Callable
from functools import partial

from botocore.client import BaseClient  # type: ignore[import-untyped]
from botocore.exceptions import (  # type: ignore[import-untyped]
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from gette.errors import (
    AuthenticationError,
    FetchTimeoutError,
    GetterError,
    InvalidSourceError,
    NotFoundError,
    TransientTransportError,
    TransportError,
)
from gette.interfaces.s3 import get_s3_client
from gette.signal import FetchSignal
from gette.types import DownloadOptions, Scheme, SourceLocator, Success
from gette.writer import DEFAULT_CHUNK, PartialDownload, iter_blocking, write_stream

_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NoSuchVersion", "NotFound", "404"}
_AUTH_CODES = {
    "AccessDenied",
    "AllAccessDisabled",
    "ExpiredToken",
    "InvalidAccessKeyId",
    "InvalidToken",
    "SignatureDoesNotMatch",
    "403",
}
_TRANSIENT_CODES = {
    "InternalError",
    "RequestTimeout",
    "ServiceUnavailable",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "500",
    "503",
}


def classify_client_error(exc: ClientError, bucket: str, key: str) -> GetterError:
    error = exc.response.get("Error", {})
    code = str(error.get("Code", ""))
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    message = f"s3://{bucket}/{key}: {code or status} {error.get('Message', '')}".rstrip()
    if code in _NOT_FOUND_CODES or status == 404:
        return NotFoundError(message)
    if code in _AUTH_CODES or status in (401, 403):
        return AuthenticationError(message)
    if code in _TRANSIENT_CODES or status == 429 or (status is not None and status >= 500):
        return TransientTransportError(message)
    return TransportError(message)


class S3Getter:
    """S3 objects via boto3, one `get_object` call streamed chunk by chunk.

    The region comes from the source (``?region=`` or the AWS host); ``?versionId=``
    selects an object version.

    Args:
        client_factory: [Optional] Region -> boto3 client, defaults to `get_s3_client`.
        chunk_size: Bytes per read.
    """

    name = "s3"

    def __init__(
        self,
        *,
        client_factory: Callable[[str | None], BaseClient] = get_s3_client,
        chunk_size: int = DEFAULT_CHUNK,
    ) -> None:
        self.client_factory = client_factory
        self.chunk_size = chunk_size

    def matches(self, locator: SourceLocator) -> bool:
        return locator.scheme is Scheme.S3

    async def fetch(
        self,
        locator: SourceLocator,
        staging: PartialDownload,
        options: DownloadOptions,
        signal: FetchSignal,
    ) -> Success:
        bucket = locator.authority or ""
        key = locator.path.lstrip("/")
        if not bucket or not key or key.endswith("/"):
            raise InvalidSourceError(f"S3 sources need a bucket and an object key: {locator.raw!r}")

        params = {"Bucket": bucket, "Key": key}
        version = locator.option("versionId")
        if version:
            params["VersionId"] = version

        try:
            client = self.client_factory(locator.option("region"))
            response = await asyncio.to_thread(partial(client.get_object, **params))
            total = response.get("ContentLength")
            body = response["Body"]
            try:
                # botocore.response.StreamingBody exposes iter_chunks:
                chunks = body.iter_chunks(chunk_size=self.chunk_size)
                written = await write_stream(
                    staging,
                    iter_blocking(partial(next, chunks, b"")),
                    signal=signal,
                    label=f"s3://{bucket}/{key}",
                    total=total,
                )
            finally:
                body.close()
        except ClientError as exc:
            raise classify_client_error(exc, bucket, key) from exc
        except NoCredentialsError as exc:
            raise AuthenticationError(f"s3://{bucket}/{key}: {exc}") from exc
        except (ReadTimeoutError, ConnectTimeoutError) as exc:
            raise FetchTimeoutError(f"s3://{bucket}/{key}: {exc}") from exc
        except (EndpointConnectionError, ConnectionClosedError) as exc:
            raise TransientTransportError(f"s3://{bucket}/{key}: {exc}") from exc

        if total is not None and written < int(total):
            raise TransientTransportError(f"s3://{bucket}/{key}: stream ended after {written} of {total} bytes")
        return Success(bytes_written=written, destination=staging.path)
