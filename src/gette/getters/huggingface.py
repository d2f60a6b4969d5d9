#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import httpx
from huggingface_hub import hf_hub_url
from huggingface_hub.utils import build_hf_headers

from gette.credentials import Provider, get_credentials
from gette.errors import InvalidSourceError
from gette.getters.http import stream_url
from gette.signal import FetchSignal
from gette.types import DownloadOptions, Scheme, SourceLocator, Success
from gette.writer import DEFAULT_CHUNK, PartialDownload

HF_REPO_TYPES = ("model", "dataset", "space")


class HuggingFaceGetter:
    """Fetches a single file from the Hugging Face Hub.

    Examples:
        .. code-block:: console

            hf://org/name@rev?filename=model.pt
            hf://org/name?filename=data/train.jsonl&repo_type=dataset

        Where:
          - ``rev`` is optional (tag/branch/commit after ``@``, defaults to ``main``)
          - ``filename`` is required
          - ``repo_type`` is optional (``model``, ``dataset`` or ``space``)
    """

    name = "huggingface"

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None, chunk_size: int = DEFAULT_CHUNK) -> None:
        self.transport = transport
        self.chunk_size = chunk_size

    def matches(self, locator: SourceLocator) -> bool:
        return locator.scheme is Scheme.HUGGINGFACE

    @staticmethod
    def parse_locator(locator: SourceLocator) -> tuple[str, str, str, str]:
        """Extracts repo id, filename, revision and repo type from an hf:// locator.

        Raises:
            InvalidSourceError: If the repository or the filename is missing.
        """
        path = f"{locator.authority or ''}{locator.path}".strip("/")
        repo_id, _, revision = path.partition("@")
        filename = locator.option("filename")
        repo_type = locator.option("repo_type", "model")
        if not repo_id or not filename:
            raise InvalidSourceError("hf:// sources must look like 'hf://org/name[@rev]?filename=FILE'")
        if repo_type not in HF_REPO_TYPES:
            raise InvalidSourceError(f"Unknown repo_type {repo_type!r}, expected one of {', '.join(HF_REPO_TYPES)}")
        return repo_id, filename, revision or "main", repo_type

    async def fetch(
        self,
        locator: SourceLocator,
        staging: PartialDownload,
        options: DownloadOptions,
        signal: FetchSignal,
    ) -> Success:
        repo_id, filename, revision, repo_type = self.parse_locator(locator)
        token = get_credentials(Provider.HUGGINGFACE).get("HF_TOKEN")
        url = hf_hub_url(repo_id=repo_id, filename=filename, revision=revision, repo_type=repo_type)
        written = await stream_url(
            url,
            staging,
            signal,
            label=f"{repo_id}/{filename}",
            headers=build_hf_headers(token=token),
            transport=self.transport,
            chunk_size=self.chunk_size,
        )
        return Success(bytes_written=written, destination=staging.path)
