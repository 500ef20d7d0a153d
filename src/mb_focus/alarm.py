"""Completion alarm: sound, vibration and a visual acknowledgment, each allowed to fail on its own."""

import logging
import random
import shutil
import subprocess  # nosec B404
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Protocol, TypeAlias

from mb_focus.errors import PlaybackDegraded
from mb_focus.notification import Notification, NotificationKind, Notifier

logger = logging.getLogger(__name__)

VIBRATION_PATTERN: tuple[int, ...] = (0, 400, 200, 400, 200, 600)

_CELEBRATION_TITLES = (
    "Outstanding Work!",
    "Session Complete!",
    "Focus Achieved!",
    "Well Done!",
    "Success!",
)

_CELEBRATION_MESSAGES = (
    "You just completed a deep work session! Your dedication is building powerful focus habits.",
    "Another successful session completed! You're making real progress toward your goals.",
    "Excellent concentration! You're developing the discipline that leads to breakthrough results.",
    "Session finished! Take a moment to appreciate this accomplishment.",
    "Outstanding focus! You're proving that deep work creates extraordinary outcomes.",
)

_FALLBACK_TITLE = "Session Complete!"
_FALLBACK_MESSAGE = "Excellent work on your focus session!"

_SYSTEM_SOUNDS = {
    "darwin": Path("/System/Library/Sounds/Glass.aiff"),
    "linux": Path("/usr/share/sounds/freedesktop/stereo/complete.oga"),
}

_STOP_WAIT_SEC = 1


class AlarmLayer(StrEnum):
    """Feedback channels, in the order they are attempted."""

    AUDIO = "audio"
    HAPTIC = "haptic"
    VISUAL = "visual"


@dataclass(frozen=True, slots=True)
class AlarmResult:
    """Which layers delivered feedback and which degraded."""

    succeeded: tuple[AlarmLayer, ...]
    failed: tuple[AlarmLayer, ...]
    title: str | None = None
    message: str | None = None

    @property
    def any_succeeded(self) -> bool:
        return bool(self.succeeded)


class AudioPlayer(Protocol):
    def play(self, volume: float) -> None:
        """Start one-shot playback. Raises PlaybackDegraded when sound cannot be played."""
        ...

    def stop(self) -> None: ...


class Vibrator(Protocol):
    def vibrate(self, pattern: Sequence[int]) -> None:
        """Run a pulse pattern (alternating wait/vibrate ms). Raises PlaybackDegraded without hardware."""
        ...

    def cancel(self) -> None: ...


class Acknowledger(Protocol):
    def show(self, title: str, message: str) -> None:
        """Surface a completion acknowledgment to the user. Raises on failure."""
        ...


# --- Default layer implementations ---


def _player_command(platform: str, sound: Path, volume: float) -> list[str] | None:
    """Build the playback command for the first available player, or None."""
    if platform == "darwin":
        return ["afplay", "-v", f"{volume:.2f}", str(sound)] if shutil.which("afplay") else None
    if shutil.which("paplay"):
        return ["paplay", f"--volume={int(volume * 65536)}", str(sound)]
    if shutil.which("mpg123"):
        return ["mpg123", "-q", "-f", str(int(volume * 32767)), str(sound)]
    if shutil.which("ffplay"):
        return ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", "-volume", str(int(volume * 100)), str(sound)]
    return None


class SystemSoundPlayer:
    """Plays a sound file once through the platform's command-line player."""

    def __init__(self, sound_path: Path | None = None, platform: str = sys.platform) -> None:
        self._sound_path = sound_path
        self._platform = platform
        self._process: subprocess.Popen[bytes] | None = None

    def play(self, volume: float) -> None:
        sound = self._sound_path or _SYSTEM_SOUNDS.get(self._platform)
        if sound is None or not sound.is_file():
            raise PlaybackDegraded(f"Sound asset not found: {sound}")
        cmd = _player_command(self._platform, sound, volume)
        if cmd is None:
            raise PlaybackDegraded("No audio player available")
        try:
            # S603: the player binary comes from a fixed list; no shell involved
            self._process = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)  # noqa: S603  # nosec B603
        except OSError as e:
            raise PlaybackDegraded(f"Audio player failed to start: {e}") from e

    def stop(self) -> None:
        process, self._process = self._process, None
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=_STOP_WAIT_SEC)
        except subprocess.TimeoutExpired:
            process.kill()


class NoVibrator:
    """Vibrator for hosts without vibration hardware."""

    def vibrate(self, pattern: Sequence[int]) -> None:
        raise PlaybackDegraded("No vibration hardware on this host")

    def cancel(self) -> None:
        pass


class NotificationAcknowledger:
    """Shows the acknowledgment as a high-urgency notification."""

    def __init__(self, notifier: Notifier) -> None:
        self._notifier = notifier

    def show(self, title: str, message: str) -> None:
        notification = Notification(title=title, body=message, data={"kind": NotificationKind.ACKNOWLEDGMENT})
        if not self._notifier.render(notification):
            raise PlaybackDegraded("Acknowledgment notification was not rendered")


# --- Engine ---


_Step: TypeAlias = tuple[AlarmLayer, Callable[[], object]]


def _run_layers(steps: Sequence[_Step]) -> tuple[list[AlarmLayer], list[AlarmLayer], dict[AlarmLayer, object]]:
    """Run each step inside its own failure boundary. A failing step never prevents the next one."""
    succeeded: list[AlarmLayer] = []
    failed: list[AlarmLayer] = []
    values: dict[AlarmLayer, object] = {}
    for layer, step in steps:
        try:
            values[layer] = step()
        except PlaybackDegraded as e:
            logger.warning("Alarm layer %s degraded: %s", layer, e)
            failed.append(layer)
        except Exception:
            logger.exception("Alarm layer %s failed", layer)
            failed.append(layer)
        else:
            succeeded.append(layer)
    return succeeded, failed, values


class AlarmEngine:
    """Plays the completion alarm and stops it after a bounded time or on dismissal."""

    def __init__(
        self,
        audio: AudioPlayer,
        vibrator: Vibrator,
        acknowledger: Acknowledger,
        *,
        volume: float = 0.7,
        auto_stop_sec: float = 10.0,
        rng: random.Random | None = None,
    ) -> None:
        self._audio = audio
        self._vibrator = vibrator
        self._acknowledger = acknowledger
        self._volume = volume
        self._auto_stop_sec = auto_stop_sec
        self._rng = rng or random.Random()  # nosec B311
        self._lock = threading.Lock()
        self._auto_stop: threading.Timer | None = None
        self._playing = False
        self._stopped = threading.Event()
        self._stopped.set()

    @property
    def is_playing(self) -> bool:
        return self._playing

    def play_completion_alarm(self, *, volume: float | None = None, auto_stop_sec: float | None = None) -> AlarmResult:
        """Attempt audio, then haptics, then the visual acknowledgment. Never raises."""
        try:
            self.stop_alarm()
            vol = self._volume if volume is None else volume
            steps: list[_Step] = [
                (AlarmLayer.AUDIO, lambda: self._audio.play(vol)),
                (AlarmLayer.HAPTIC, lambda: self._vibrator.vibrate(VIBRATION_PATTERN)),
                (AlarmLayer.VISUAL, self._acknowledge),
            ]
            succeeded, failed, values = _run_layers(steps)

            if AlarmLayer.AUDIO in succeeded or AlarmLayer.HAPTIC in succeeded:
                self._start_auto_stop(self._auto_stop_sec if auto_stop_sec is None else auto_stop_sec)

            title, message = None, None
            ack = values.get(AlarmLayer.VISUAL)
            if isinstance(ack, tuple):
                title, message = ack
            result = AlarmResult(succeeded=tuple(succeeded), failed=tuple(failed), title=title, message=message)
        except Exception:
            logger.exception("Completion alarm crashed")
            return AlarmResult(succeeded=(), failed=tuple(AlarmLayer))
        if not result.any_succeeded:
            logger.error("Completion alarm: every feedback layer failed")
        else:
            logger.info("Completion alarm played: ok=%s degraded=%s", list(result.succeeded), list(result.failed))
        return result

    def test_alarm(self) -> AlarmResult:
        """Play the alarm at a lower volume with a short auto-stop."""
        return self.play_completion_alarm(volume=0.6, auto_stop_sec=3)

    def dismiss(self) -> None:
        """User acknowledged completion: stop feedback early."""
        self.stop_alarm()

    def stop_alarm(self) -> None:
        """Cancel the auto-stop timer and stop audio and haptics. Idempotent."""
        with self._lock:
            timer, self._auto_stop = self._auto_stop, None
            was_playing, self._playing = self._playing, False
        if timer is not None:
            timer.cancel()
        if was_playing:
            for stop in (self._audio.stop, self._vibrator.cancel):
                try:
                    stop()
                except Exception:
                    logger.warning("Error while stopping alarm feedback", exc_info=True)
            logger.info("Alarm stopped")
        self._stopped.set()

    def wait_until_stopped(self, timeout: float | None = None) -> bool:
        """Block until feedback stops (auto-stop or dismissal). Return False on timeout."""
        return self._stopped.wait(timeout)

    def _acknowledge(self) -> tuple[str, str]:
        title = self._rng.choice(_CELEBRATION_TITLES)
        message = self._rng.choice(_CELEBRATION_MESSAGES)
        try:
            self._acknowledger.show(title, message)
        except Exception as e:
            logger.warning("Celebration acknowledgment failed (%s), showing basic message", e)
            self._acknowledger.show(_FALLBACK_TITLE, _FALLBACK_MESSAGE)
            return _FALLBACK_TITLE, _FALLBACK_MESSAGE
        return title, message

    def _start_auto_stop(self, delay_sec: float) -> None:
        timer = threading.Timer(delay_sec, self._on_auto_stop)
        timer.daemon = True
        with self._lock:
            self._playing = True
            self._auto_stop = timer
            self._stopped.clear()
        timer.start()

    def _on_auto_stop(self) -> None:
        logger.debug("Alarm auto-stop fired")
        self.stop_alarm()
