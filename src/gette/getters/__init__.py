#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from gette.getters.azure import AzureBlobGetter
from gette.getters.gcs import GCSGetter
from gette.getters.git import GitGetter
from gette.getters.http import HttpGetter
from gette.getters.huggingface import HuggingFaceGetter
from gette.getters.local import LocalFileGetter
from gette.getters.s3 import S3Getter
from gette.types import Getter


def builtin_getters() -> list[Getter]:
    """Fresh instances of every built-in getter, in registration order."""
    return [
        LocalFileGetter(),
        GitGetter(),
        HuggingFaceGetter(),
        S3Getter(),
        AzureBlobGetter(),
        GCSGetter(),
        HttpGetter(),
    ]


__all__ = [
    "AzureBlobGetter",
    "GCSGetter",
    "GitGetter",
    "HttpGetter",
    "HuggingFaceGetter",
    "LocalFileGetter",
    "S3Getter",
    "builtin_getters",
]
