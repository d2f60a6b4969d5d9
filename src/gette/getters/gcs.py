#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from typing import Any

from gette.credentials import Provider, get_credentials
from gette.errors import InvalidSourceError
from gette.getters.blob import FsspecBlobGetter
from gette.types import Scheme, SourceLocator


class GCSGetter(FsspecBlobGetter):
    """Google Cloud Storage through gcsfs (``pip install gette[gcs]``)."""

    name = "gcs"
    scheme = Scheme.GCS
    protocol = "gcs"
    extra = "gcs"

    def object_path(self, locator: SourceLocator) -> str:
        bucket = locator.authority or ""
        key = locator.path.strip("/")
        if not bucket or not key:
            raise InvalidSourceError(f"GCS sources need a bucket and an object name: {locator.raw!r}")
        return f"{bucket}/{key}"

    def storage_options(self, locator: SourceLocator) -> dict[str, Any]:
        # Without a service account file gcsfs falls back to default credentials, then anonymous access.
        creds = get_credentials(Provider.GCP)
        options: dict[str, Any] = {}
        if "GOOGLE_APPLICATION_CREDENTIALS" in creds:
            options["token"] = creds["GOOGLE_APPLICATION_CREDENTIALS"]
        if "GOOGLE_CLOUD_PROJECT" in creds:
            options["project"] = creds["GOOGLE_CLOUD_PROJECT"]
        return options
