#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

"""Source-agnostic file retrieval.

.. code-block:: python

    import gette

    outcome = await gette.get("s3://bucket/models/model.pt", "./model.pt")
    if not outcome.ok:
        print(outcome.kind, outcome.message)
"""

from gette import errors
from gette.builder import Builder, DownloadState, get, get_sync
from gette.errors import ErrorKind, GetterError
from gette.locator import parse
from gette.registry import GetterRegistration, Registry, default_registry, register
from gette.signal import CancelToken, FetchSignal
from gette.types import (
    DownloadOptions,
    DownloadOutcome,
    DownloadRequest,
    Failure,
    Getter,
    Scheme,
    SourceLocator,
    Success,
)
from gette.writer import PartialDownload, write_stream

__all__ = [
    "Builder",
    "CancelToken",
    "DownloadOptions",
    "DownloadOutcome",
    "DownloadRequest",
    "DownloadState",
    "ErrorKind",
    "Failure",
    "FetchSignal",
    "Getter",
    "GetterError",
    "GetterRegistration",
    "PartialDownload",
    "Registry",
    "Scheme",
    "SourceLocator",
    "Success",
    "default_registry",
    "errors",
    "get",
    "get_sync",
    "parse",
    "register",
    "write_stream",
]
