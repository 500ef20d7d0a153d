"""Notification payloads and the desktop rendering backend."""

import logging
import random
import subprocess  # nosec B404
import sys
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from mb_focus.activities import Activity
from mb_focus.errors import PersistenceFailure
from mb_focus.models import SessionRecord
from mb_focus.store import KeyValueStore
from mb_focus.time_utils import format_remaining, progress_bar
from mb_focus.timer import elapsed, progress_percent, remaining

logger = logging.getLogger(__name__)

NOTIFICATION_ID_KEY = "notification_id"
_COMMAND_TIMEOUT_SEC = 5

_MILESTONE_MESSAGES: tuple[tuple[str, str], ...] = (
    ("Great start!", "You're 10% into your {activity} session. Keep the momentum going."),
    ("You're in the zone", "The hardest part is behind you. Stay with {activity}."),
    ("Focus is building", "10% done. Every minute of {activity} counts."),
    ("Nice rhythm", "You've settled into {activity}. Protect this focus."),
)


class NotificationKind(StrEnum):
    """Which event a notification reports. Stored under `data['kind']`."""

    PROGRESS = "progress"
    MILESTONE = "milestone"
    COMPLETION = "completion"
    ACKNOWLEDGMENT = "acknowledgment"


@dataclass(frozen=True, slots=True)
class Notification:
    """Platform-neutral notification payload."""

    title: str
    body: str
    data: dict[str, object] = field(default_factory=dict)
    silent: bool = False

    @property
    def kind(self) -> str | None:
        kind = self.data.get("kind")
        return kind if isinstance(kind, str) else None


_URGENCY: dict[str, str] = {
    NotificationKind.PROGRESS: "low",
    NotificationKind.COMPLETION: "critical",
    NotificationKind.ACKNOWLEDGMENT: "critical",
}


class Notifier(Protocol):
    """Renders notifications. Implementations report failure by returning False, never by raising."""

    def render(self, notification: Notification) -> bool: ...

    def dismiss(self) -> bool:
        """Remove the live progress notification, if any."""
        ...


# --- Payload builders ---


def build_progress_notification(record: SessionRecord, activity: Activity, now: int) -> Notification:
    """Live timer notification: time left, text progress bar, minutes done."""
    time_left = remaining(record, now)
    percent = progress_percent(record, now)
    status = f"{format_remaining(time_left)} remaining"
    if record.is_paused:
        status = f"PAUSED - {status}"
    done_min = elapsed(record, now) // 60_000
    total_min = record.duration_ms // 60_000
    body = f"{status}\n{progress_bar(percent)} {percent}%\n{done_min} of {total_min} minutes"
    return Notification(
        title=f"Focus: {activity.name}",
        body=body,
        data={
            "kind": NotificationKind.PROGRESS,
            "start_time": record.start_time,
            "remaining_ms": time_left,
            "percent": percent,
            "is_paused": record.is_paused,
            "color": activity.color,
        },
        silent=True,
    )


def build_milestone_notification(record: SessionRecord, activity: Activity, rng: random.Random | None = None) -> Notification:
    """One-time encouragement sent when the session crosses the milestone window."""
    title, body = (rng or random).choice(_MILESTONE_MESSAGES)
    return Notification(
        title=title,
        body=body.format(activity=activity.name),
        data={"kind": NotificationKind.MILESTONE, "start_time": record.start_time, "color": activity.color},
    )


def build_completion_notification(record: SessionRecord, activity: Activity, completed_at: int) -> Notification:
    """Prominent notification announcing the end of a session."""
    minutes = record.duration_ms // 60_000
    length = f"{minutes}-minute" if minutes > 0 else f"{record.duration_ms // 1000}-second"
    return Notification(
        title="Focus Session Complete!",
        body=f"Great job! Your {length} {activity.name} session has ended.",
        data={
            "kind": NotificationKind.COMPLETION,
            "start_time": record.start_time,
            "completed_at": completed_at,
            "activity_id": record.activity_id,
            "color": activity.color,
        },
    )


# --- Desktop backend ---


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class DesktopNotifier:
    """Desktop notifications via notify-send (Linux) or osascript (macOS).

    On Linux the live progress notification is replaced in place: its id is kept in
    the key-value store so every process (CLI, worker) updates the same bubble.
    """

    def __init__(self, kv: KeyValueStore | None = None, platform: str = sys.platform) -> None:
        self._kv = kv
        self._platform = platform

    def render(self, notification: Notification) -> bool:
        if self._platform == "darwin":
            return self._render_macos(notification)
        return self._render_freedesktop(notification)

    def dismiss(self) -> bool:
        notification_id = self._load_id()
        if notification_id is None:
            return False
        self._store_id(None)
        ok = self._run(
            [
                "gdbus", "call", "--session",
                "--dest", "org.freedesktop.Notifications",
                "--object-path", "/org/freedesktop/Notifications",
                "--method", "org.freedesktop.Notifications.CloseNotification",
                f"uint32 {notification_id}",
            ]
        )  # fmt: skip
        return ok is not None

    def _render_freedesktop(self, notification: Notification) -> bool:
        urgency = _URGENCY.get(notification.kind or "", "normal")
        cmd = ["notify-send", "--app-name=mb-focus", "--print-id", f"--urgency={urgency}"]
        replace_id = self._load_id() if notification.kind == NotificationKind.PROGRESS else None
        if replace_id is not None:
            cmd.append(f"--replace-id={replace_id}")
        if notification.silent:
            cmd.append("--hint=boolean:suppress-sound:true")
        cmd.extend([notification.title, notification.body])

        stdout = self._run(cmd)
        if stdout is None:
            return False
        if notification.kind == NotificationKind.PROGRESS and stdout.strip().isdigit():
            self._store_id(stdout.strip())
        return True

    def _render_macos(self, notification: Notification) -> bool:
        body, title = _applescript_quote(notification.body), _applescript_quote(notification.title)
        script = f"display notification {body} with title {title}"
        if not notification.silent:
            script += ' sound name "Glass"'
        return self._run(["osascript", "-e", script]) is not None

    def _run(self, cmd: list[str]) -> str | None:
        """Run a notification command. Return stdout on success, None on any failure."""
        try:
            # S603: args are built from controlled literals and notification text, no shell involved
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=_COMMAND_TIMEOUT_SEC, check=False)  # noqa: S603  # nosec B603
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Notification command %s failed: %s", cmd[0], e)
            return None
        if result.returncode != 0:
            logger.warning("Notification command %s exited with %d: %s", cmd[0], result.returncode, result.stderr.strip())
            return None
        return result.stdout

    def _load_id(self) -> str | None:
        if self._kv is None:
            return None
        try:
            return self._kv.get(NOTIFICATION_ID_KEY)
        except PersistenceFailure:
            logger.warning("Cannot read notification id", exc_info=True)
            return None

    def _store_id(self, notification_id: str | None) -> None:
        if self._kv is None:
            return
        try:
            if notification_id is None:
                self._kv.delete(NOTIFICATION_ID_KEY)
            else:
                self._kv.set(NOTIFICATION_ID_KEY, notification_id)
        except PersistenceFailure:
            logger.warning("Cannot persist notification id", exc_info=True)
