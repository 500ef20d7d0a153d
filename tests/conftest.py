"""Shared fixtures and fakes for mb-focus tests."""

from collections.abc import Iterator, Sequence

import pytest

from mb_focus.activities import Activity, CatalogActivityLookup
from mb_focus.alarm import AlarmEngine
from mb_focus.errors import PlaybackDegraded
from mb_focus.notification import Notification
from mb_focus.service import FocusTimer
from mb_focus.store import MemoryKeyValueStore, SessionStore

T0 = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingNotifier:
    """Notifier that records every payload instead of showing it."""

    def __init__(self, *, ok: bool = True) -> None:
        self.ok = ok
        self.rendered: list[Notification] = []
        self.dismissed = 0

    def render(self, notification: Notification) -> bool:
        self.rendered.append(notification)
        return self.ok

    def dismiss(self) -> bool:
        self.dismissed += 1
        return True

    def of_kind(self, kind: str) -> list[Notification]:
        return [n for n in self.rendered if n.kind == kind]


class FakeAudio:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.volumes: list[float] = []
        self.stops = 0

    def play(self, volume: float) -> None:
        if self.error is not None:
            raise self.error
        self.volumes.append(volume)

    def stop(self) -> None:
        self.stops += 1


class FakeVibrator:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.patterns: list[tuple[int, ...]] = []
        self.cancels = 0

    def vibrate(self, pattern: Sequence[int]) -> None:
        if self.error is not None:
            raise self.error
        self.patterns.append(tuple(pattern))

    def cancel(self) -> None:
        self.cancels += 1


class FakeAcknowledger:
    """Records acknowledgments. `failures` makes the first N calls raise."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.shown: list[tuple[str, str]] = []

    def show(self, title: str, message: str) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise PlaybackDegraded("alert surface unavailable")
        self.shown.append((title, message))


ACTIVITIES = {"deep-work": Activity(name="Deep Work", color="#4ADE80")}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv: MemoryKeyValueStore) -> SessionStore:
    return SessionStore(kv)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def audio() -> FakeAudio:
    return FakeAudio()


@pytest.fixture
def vibrator() -> FakeVibrator:
    return FakeVibrator()


@pytest.fixture
def acknowledger() -> FakeAcknowledger:
    return FakeAcknowledger()


@pytest.fixture
def alarm(audio: FakeAudio, vibrator: FakeVibrator, acknowledger: FakeAcknowledger) -> Iterator[AlarmEngine]:
    engine = AlarmEngine(audio, vibrator, acknowledger, auto_stop_sec=60)
    yield engine
    engine.stop_alarm()


@pytest.fixture
def focus_timer(store: SessionStore, notifier: RecordingNotifier, alarm: AlarmEngine, clock: FakeClock) -> FocusTimer:
    return FocusTimer(store, notifier, alarm, CatalogActivityLookup(ACTIVITIES), clock=clock)
