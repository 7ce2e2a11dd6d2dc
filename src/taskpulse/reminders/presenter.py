# src/taskpulse/reminders/presenter.py

from __future__ import annotations

import logging

from ..core.ports import DesktopNotifier, SoundPlayer, Toaster
from ..domain.models import Reminder

logger = logging.getLogger(__name__)

TOAST_TITLE = "⏰ Reminder"
NATIVE_TITLE = "⏰ Task Reminder"


def reminder_body(reminder: Reminder) -> str:
    if reminder.description:
        return f"{reminder.title} - {reminder.description}"
    return reminder.title


class ReminderPresenter:
    """
    Presents a fired reminder through three independent channels:
    audio cue, in-app toast, native notification (only when permission was granted).

    Each channel is fire-and-forget: a failing one is logged and the others still run.
    """

    def __init__(
        self,
        *,
        sound: SoundPlayer | None = None,
        toaster: Toaster | None = None,
        notifier: DesktopNotifier | None = None,
        toast_duration_seconds: float = 10.0,
    ) -> None:
        self._sound = sound
        self._toaster = toaster
        self._notifier = notifier
        self._toast_duration = float(toast_duration_seconds)
        self.permission_granted = False

    def request_permission(self) -> bool:
        if self._notifier is None:
            return False
        try:
            self.permission_granted = bool(self._notifier.request_permission())
        except Exception:
            logger.warning("Notification permission query failed", exc_info=True)
            self.permission_granted = False
        return self.permission_granted

    def present(self, reminder: Reminder) -> None:
        logger.info("Reminder fired id=%s title=%r", reminder.id, reminder.title)

        if self._sound is not None:
            try:
                self._sound.play()
            except Exception as e:
                logger.warning("Failed to play notification sound: %s", e)

        if self._toaster is not None:
            try:
                self._toaster.show(TOAST_TITLE, reminder_body(reminder), self._toast_duration)
            except Exception:
                logger.warning("Failed to show reminder toast id=%s", reminder.id, exc_info=True)

        if self._notifier is not None and self.permission_granted:
            try:
                self._notifier.notify(NATIVE_TITLE, reminder.title)
            except Exception as e:
                logger.warning("Failed to send desktop notification: %s", e)
