#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import json
from pathlib import Path

import typer

from gette.builder import get_sync
from gette.cli.cli_utils import outcome_payload, run_cli, to_jsonable
from gette.config import default_options
from gette.locator import parse
from gette.registry import default_registry

CLI_HELP_MARKDOWN = """
    Fetch a source into a destination

    **Examples**
    ```
    # plain file over HTTPS, replacing an existing copy
    gette fetch https://example.com/data.tar.gz ./data.tar.gz --overwrite

    # one directory of a GitHub repository at a tag
    gette fetch "github.com/org/repo//configs?ref=v1.2.0" ./configs

    # S3 object with an integrity check
    gette fetch s3://bucket/models/model.pt ./model.pt --sha256 <hex>
    ```
    """


def fetch(
    source: str = typer.Argument(..., help="Path, URL or shorthand (s3://, hf://, git::, github.com/...)"),
    destination: Path = typer.Argument(..., help="Final path of the file or directory"),
    retries: int | None = typer.Option(None, "--retries", min=0, help="Reattempts after a retryable failure"),
    timeout: float | None = typer.Option(None, "--timeout", min=0.001, help="Per-attempt timeout in seconds"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing destination"),
    expected_sha256: str | None = typer.Option(None, "--sha256", help="Expected SHA-256 (hex) of the file"),
) -> None:
    def _task() -> None:
        options = default_options(
            retries=retries,
            timeout=timeout,
            overwrite=overwrite or None,
            expected_sha256=expected_sha256,
        )
        outcome = get_sync(source, destination, options)
        typer.echo(json.dumps(outcome_payload(outcome), ensure_ascii=False))
        if not outcome.ok:
            raise typer.Exit(code=1)

    run_cli(_task)


def detect(source: str = typer.Argument(..., help="Source string to classify")) -> None:
    def _task() -> None:
        locator = parse(source)
        getter = default_registry().select(locator)
        payload = {
            "scheme": locator.scheme,
            "authority": locator.authority,
            "path": locator.path,
            "query_options": dict(locator.query_options),
            "protocol": locator.protocol,
            "url": locator.url,
            "getter": getter.name if getter is not None else None,
        }
        typer.echo(json.dumps(to_jsonable(payload), ensure_ascii=False))

    run_cli(_task)


def getters() -> None:
    def _task() -> None:
        for registration in default_registry().registrations:
            typer.echo(f"{registration.getter.name}\tpriority={registration.priority}")

    run_cli(_task)
