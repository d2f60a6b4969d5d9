#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from typing import Literal

import typer
from rich.traceback import install

from gette.cli import cli_fetch
from gette.logging_config import configure_logging

RICH_MARKUP_MODE: Literal["markdown", "rich"] = "rich"
install(show_locals=False)

CTX = {"help_option_names": ["-h", "--help"], "max_content_width": 100}

app = typer.Typer(
    name="gette",
    help="Fetch files and directories from local paths, HTTP, git, S3, Azure Blob, GCS and the Hugging Face Hub.",
    no_args_is_help=True,
    rich_markup_mode=RICH_MARKUP_MODE,
    context_settings=CTX,
    pretty_exceptions_enable=False,
    add_completion=False,
)


@app.callback()
def main(debug: bool = typer.Option(False, help="Enable debug logging")) -> None:
    configure_logging(debug)


app.command("fetch", short_help="Fetch a source into a destination.", help=cli_fetch.CLI_HELP_MARKDOWN)(
    cli_fetch.fetch
)
app.command("detect", short_help="Show how a source is parsed and which getter handles it.")(cli_fetch.detect)
app.command("getters", short_help="List registered getters in selection order.")(cli_fetch.getters)

if __name__ == "__main__":
    app()
