# src/taskpulse/notify/console.py

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import TextIO

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleToaster:
    """Prints toasts as single lines. Duration is informational on a terminal."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def show(self, title: str, body: str, duration_seconds: float) -> None:
        stream = self._stream or sys.stdout
        print(f"\n[{_ts_local()}] {title}: {body}", file=stream, flush=True)
        logger.debug("Toast shown title=%r duration=%.0fs", title, duration_seconds)
