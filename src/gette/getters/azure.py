#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from typing import Any

from gette.credentials import Provider, get_credentials
from gette.errors import InvalidSourceError
from gette.getters.blob import FsspecBlobGetter
from gette.types import Scheme, SourceLocator


class AzureBlobGetter(FsspecBlobGetter):
    """Azure Blob Storage through adlfs (``pip install gette[azure]``).

    The account comes from the host (``<account>.blob.core.windows.net``) or from
    AZURE_STORAGE_ACCOUNT_NAME; without a key, SAS token or connection string the
    container is read anonymously.
    """

    name = "azure_blob"
    scheme = Scheme.AZURE_BLOB
    protocol = "az"
    extra = "azure"

    def object_path(self, locator: SourceLocator) -> str:
        path = locator.path.strip("/")
        container, _, blob = path.partition("/")
        if not container or not blob:
            raise InvalidSourceError(f"Azure sources need a container and a blob name: {locator.raw!r}")
        return path

    def storage_options(self, locator: SourceLocator) -> dict[str, Any]:
        creds = get_credentials(Provider.AZURE)
        options: dict[str, Any] = {}
        account = locator.authority or creds.get("AZURE_STORAGE_ACCOUNT_NAME")
        if account:
            options["account_name"] = account
        if "AZURE_STORAGE_CONNECTION_STRING" in creds:
            options["connection_string"] = creds["AZURE_STORAGE_CONNECTION_STRING"]
        if "AZURE_STORAGE_ACCOUNT_KEY" in creds:
            options["account_key"] = creds["AZURE_STORAGE_ACCOUNT_KEY"]
        if "AZURE_STORAGE_SAS_TOKEN" in creds:
            options["sas_token"] = creds["AZURE_STORAGE_SAS_TOKEN"]
        if not {"connection_string", "account_key", "sas_token"} & options.keys():
            options["anon"] = True
        return options
