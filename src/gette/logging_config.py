#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger

# Records emitted outside a `get` call carry this placeholder instead of a request id.
NO_REQUEST = "-"


def configure_logging(debug: bool = False, *, sink: TextIO | None = None) -> None:
    """Configure the loguru sink used by the library and the CLI.

    Every record carries the id of the download request it belongs to (bound by the
    builder as ``extra["request"]``), so concurrent downloads can be told apart.

    Args:
        debug: Log state transitions and caller details if True, keep a compact INFO format otherwise.
        sink: Where to write, defaults to stderr.
    """
    logger.remove()
    logger.configure(extra={"request": NO_REQUEST})
    target = sink or sys.stderr
    if debug:
        logger.add(
            target,
            level="DEBUG",
            format=(
                "<green>{time:DD-MM-YYYY HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<magenta>{extra[request]}</magenta> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            ),
        )
    else:
        logger.add(
            target,
            level="INFO",
            format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        )
