#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import time

from loguru import logger


def fmt_bytes(num: int | float) -> str:
    """Converts a number of bytes to a human-readable string.

    Args:
        num: Input number of bytes.

    Returns:
        - Human readable string with trailing storage units.
    """
    value: int | float = num
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if value < 1024 or unit == "TB":
            return f"{value:.2f} {unit}"
        value /= 1024
    return "0 B"


class LogProgress:
    """Percent-based transfer logger.
    - If total is known: log at N% steps (adaptive: 20% for small transfers, 10% for larger).
    - If total unknown: log every `mb_step` MiB.

    Args:
        label: A label to use, e.g. the source being fetched.
        total_bytes: [Optional] The expected number of bytes.
        mb_step: [Optional] MiB between log lines when the total is unknown.
    """

    def __init__(self, *, label: str, total_bytes: int | None, mb_step: int = 32) -> None:
        self.label = label
        self.total = total_bytes or 0
        self.step = 20 if (self.total and self.total < 100 * 1024 * 1024) else 10
        self.next_pct = self.step
        self.bytes_done = 0
        self._last_chunk_log_at = 0
        self._chunk_threshold = mb_step * 1024 * 1024
        self._start = time.monotonic()
        self._closed = False

    def update(self, delta: int) -> None:
        self.bytes_done += delta
        if self.total > 0:
            pct = int(self.bytes_done * 100 / self.total)
            while pct >= self.next_pct and self.next_pct <= 100:
                logger.info(f"[{self.label}] {self.next_pct}% ({fmt_bytes(self.bytes_done)}/{fmt_bytes(self.total)})")
                self.next_pct += self.step
        elif self.bytes_done - self._last_chunk_log_at >= self._chunk_threshold:
            self._last_chunk_log_at = self.bytes_done
            logger.info(f"[{self.label}] received {fmt_bytes(self.bytes_done)}")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        elapsed = max(time.monotonic() - self._start, 1e-6)
        rate = fmt_bytes(self.bytes_done / elapsed)
        if self.total > 0 and self.bytes_done < self.total:
            logger.warning(
                f"[{self.label}] stopped at {fmt_bytes(self.bytes_done)}/{fmt_bytes(self.total)} after {elapsed:.1f}s"
            )
            return
        logger.info(f"[{self.label}] done ({fmt_bytes(self.bytes_done)} in {elapsed:.1f}s, {rate}/s)")
