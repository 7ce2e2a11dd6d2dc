# src/taskpulse/notify/desktop.py

from __future__ import annotations

import logging
import shutil
import subprocess
import sys

logger = logging.getLogger(__name__)


class CommandDesktopNotifier:
    """
    Native notifications through the platform's CLI:
    - Linux: notify-send
    - macOS: osascript

    "Permission" means the command is available and notifications are enabled.
    The command is spawned and never waited for.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = bool(enabled)
        self._command: str | None = None

    def request_permission(self) -> bool:
        if not self.enabled:
            return False
        if sys.platform == "darwin":
            self._command = shutil.which("osascript")
        else:
            self._command = shutil.which("notify-send")
        if self._command is None:
            logger.info("Desktop notifications unavailable (no notifier command found).")
            return False
        return True

    def _argv(self, command: str, title: str, body: str) -> list[str]:
        if sys.platform == "darwin":
            script = f"display notification {_applescript_str(body)} with title {_applescript_str(title)}"
            return [command, "-e", script]
        return [command, "--app-name=taskpulse", title, body]

    def notify(self, title: str, body: str) -> None:
        if self._command is None:
            return
        argv = self._argv(self._command, title, body)
        try:
            subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.warning("Failed to spawn notifier %s: %s", argv[0], e)
            raise


def _applescript_str(s: str) -> str:
    return '"' + s.replace("\\", "\\\\").replace('"', '\\"') + '"'
