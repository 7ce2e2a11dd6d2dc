# tests/test_notify.py

from __future__ import annotations

import io
import subprocess

import pytest

from taskpulse.notify import desktop
from taskpulse.notify.console import ConsoleToaster
from taskpulse.notify.desktop import CommandDesktopNotifier
from taskpulse.notify.sound import ChimePlayer


def test_console_toaster_prints_one_line() -> None:
    buf = io.StringIO()
    ConsoleToaster(buf).show("⏰ Reminder", "Call mom - birthday", 10.0)
    out = buf.getvalue()
    assert "⏰ Reminder: Call mom - birthday" in out


def test_disabled_chime_is_a_noop() -> None:
    player = ChimePlayer(False)
    player.play()
    assert player.enabled is False


def test_desktop_notifier_without_command(monkeypatch) -> None:
    monkeypatch.setattr(desktop.shutil, "which", lambda _name: None)
    n = CommandDesktopNotifier()
    assert n.request_permission() is False
    # no command resolved: nothing to run
    n.notify("t", "b")


def test_desktop_notifier_disabled_never_looks_up_command(monkeypatch) -> None:
    def boom(_name):
        raise AssertionError("should not be called")

    monkeypatch.setattr(desktop.shutil, "which", boom)
    assert CommandDesktopNotifier(enabled=False).request_permission() is False


def test_desktop_notifier_spawns_without_waiting(monkeypatch) -> None:
    calls: list[list[str]] = []

    class FakePopen:
        def __init__(self, argv, **kwargs):
            calls.append(argv)
            assert kwargs["stdout"] is subprocess.DEVNULL
            assert kwargs["start_new_session"] is True

        def wait(self, timeout=None):
            raise AssertionError("notifier must not wait for the command")

    monkeypatch.setattr(desktop.sys, "platform", "linux")
    monkeypatch.setattr(desktop.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(desktop.subprocess, "Popen", FakePopen)

    n = CommandDesktopNotifier()
    assert n.request_permission() is True
    n.notify("⏰ Task Reminder", "Stretch")
    assert calls == [["/usr/bin/notify-send", "--app-name=taskpulse", "⏰ Task Reminder", "Stretch"]]


def test_desktop_notifier_spawn_failure_propagates(monkeypatch) -> None:
    def fake_popen(argv, **kwargs):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(desktop.sys, "platform", "linux")
    monkeypatch.setattr(desktop.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(desktop.subprocess, "Popen", fake_popen)

    n = CommandDesktopNotifier()
    n.request_permission()
    with pytest.raises(FileNotFoundError):
        n.notify("t", "b")
