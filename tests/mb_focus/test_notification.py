"""Tests for notification payloads and the desktop backend."""

import random
import subprocess

import pytest
from conftest import T0

from mb_focus.activities import GENERIC_ACTIVITY, Activity
from mb_focus.models import SessionRecord
from mb_focus.notification import (
    NOTIFICATION_ID_KEY,
    DesktopNotifier,
    Notification,
    NotificationKind,
    build_completion_notification,
    build_milestone_notification,
    build_progress_notification,
)
from mb_focus.store import MemoryKeyValueStore

DEEP_WORK = Activity(name="Deep Work", color="#4ADE80")


def _running(duration_ms: int = 1_500_000) -> SessionRecord:
    return SessionRecord(start_time=T0, duration_ms=duration_ms, activity_id="deep-work")


class TestBuildProgress:
    def test_running(self):
        notification = build_progress_notification(_running(), DEEP_WORK, T0 + 300_000)
        assert notification.title == "Focus: Deep Work"
        assert notification.body == "20:00 remaining\n▓▓░░░░░░░░ 20%\n5 of 25 minutes"
        assert notification.silent
        assert notification.kind == NotificationKind.PROGRESS
        assert notification.data["remaining_ms"] == 1_200_000
        assert notification.data["color"] == "#4ADE80"

    def test_paused(self):
        record = _running().model_copy(update={"is_paused": True, "paused_at": T0 + 60_000, "remaining_at_pause": 1_440_000})
        notification = build_progress_notification(record, DEEP_WORK, T0 + 9_000_000)
        assert notification.body.startswith("PAUSED - 24:00 remaining\n")
        assert notification.data["is_paused"] is True

    def test_overdue_clamps_to_zero(self):
        notification = build_progress_notification(_running(), GENERIC_ACTIVITY, T0 + 2_000_000)
        assert notification.title == "Focus: Focus Session"
        assert notification.body.startswith("0:00 remaining\n▓▓▓▓▓▓▓▓▓▓ 100%")


class TestBuildMilestone:
    def test_mentions_activity(self):
        notification = build_milestone_notification(_running(), DEEP_WORK, random.Random(1))
        assert "Deep Work" in notification.body
        assert notification.kind == NotificationKind.MILESTONE
        assert not notification.silent


class TestBuildCompletion:
    @pytest.mark.parametrize(
        ("duration_ms", "expected"),
        [
            (1_500_000, "Great job! Your 25-minute Deep Work session has ended."),
            (60_000, "Great job! Your 1-minute Deep Work session has ended."),
            (45_000, "Great job! Your 45-second Deep Work session has ended."),
        ],
    )
    def test_body(self, duration_ms: int, expected: str):
        notification = build_completion_notification(_running(duration_ms), DEEP_WORK, T0 + duration_ms)
        assert notification.title == "Focus Session Complete!"
        assert notification.body == expected
        assert notification.data["completed_at"] == T0 + duration_ms
        assert notification.kind == NotificationKind.COMPLETION


class _FakeRun:
    """Stands in for subprocess.run and records every command."""

    def __init__(self, stdout: str = "", returncode: int = 0, error: Exception | None = None) -> None:
        self.stdout = stdout
        self.returncode = returncode
        self.error = error
        self.calls: list[list[str]] = []

    def __call__(self, cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        self.calls.append(cmd)
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout, stderr="")


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> _FakeRun:
    fake = _FakeRun(stdout="42\n")
    monkeypatch.setattr("mb_focus.notification.subprocess.run", fake)
    return fake


def _progress() -> Notification:
    return build_progress_notification(_running(), DEEP_WORK, T0)


class TestDesktopNotifierLinux:
    def test_progress_stores_id_and_replaces(self, fake_run: _FakeRun):
        """The live timer updates one bubble across renders."""
        kv = MemoryKeyValueStore()
        notifier = DesktopNotifier(kv, platform="linux")
        assert notifier.render(_progress())
        assert kv.data[NOTIFICATION_ID_KEY] == "42"
        assert not any(arg.startswith("--replace-id") for arg in fake_run.calls[0])

        assert notifier.render(_progress())
        assert "--replace-id=42" in fake_run.calls[1]
        assert "--urgency=low" in fake_run.calls[1]
        assert "--hint=boolean:suppress-sound:true" in fake_run.calls[1]

    def test_completion_is_separate_and_urgent(self, fake_run: _FakeRun):
        kv = MemoryKeyValueStore()
        kv.set(NOTIFICATION_ID_KEY, "7")
        notifier = DesktopNotifier(kv, platform="linux")
        notification = build_completion_notification(_running(), DEEP_WORK, T0)
        assert notifier.render(notification)
        cmd = fake_run.calls[0]
        assert "--urgency=critical" in cmd
        assert not any(arg.startswith("--replace-id") for arg in cmd)
        assert cmd[-2:] == [notification.title, notification.body]
        assert kv.data[NOTIFICATION_ID_KEY] == "7"

    def test_missing_binary_reports_failure(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr("mb_focus.notification.subprocess.run", _FakeRun(error=FileNotFoundError("notify-send")))
        assert not DesktopNotifier(MemoryKeyValueStore(), platform="linux").render(_progress())

    def test_nonzero_exit_reports_failure(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr("mb_focus.notification.subprocess.run", _FakeRun(returncode=1))
        assert not DesktopNotifier(platform="linux").render(_progress())

    def test_timeout_reports_failure(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(
            "mb_focus.notification.subprocess.run", _FakeRun(error=subprocess.TimeoutExpired("notify-send", 5))
        )
        assert not DesktopNotifier(platform="linux").render(_progress())

    def test_dismiss_closes_stored_notification(self, fake_run: _FakeRun):
        kv = MemoryKeyValueStore()
        kv.set(NOTIFICATION_ID_KEY, "42")
        notifier = DesktopNotifier(kv, platform="linux")
        assert notifier.dismiss()
        assert fake_run.calls[0][0] == "gdbus"
        assert fake_run.calls[0][-1] == "uint32 42"
        assert NOTIFICATION_ID_KEY not in kv.data

    def test_dismiss_without_notification(self, fake_run: _FakeRun):
        assert not DesktopNotifier(MemoryKeyValueStore(), platform="linux").dismiss()
        assert fake_run.calls == []


class TestDesktopNotifierMacOS:
    def test_osascript(self, fake_run: _FakeRun):
        notification = Notification(title='Say "hi"', body="Done", data={"kind": NotificationKind.COMPLETION})
        assert DesktopNotifier(platform="darwin").render(notification)
        cmd = fake_run.calls[0]
        assert cmd[:2] == ["osascript", "-e"]
        assert cmd[2] == 'display notification "Done" with title "Say \\"hi\\"" sound name "Glass"'

    def test_silent_has_no_sound(self, fake_run: _FakeRun):
        assert DesktopNotifier(platform="darwin").render(_progress())
        assert "sound name" not in fake_run.calls[0][2]
