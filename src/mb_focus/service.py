"""Focus session lifecycle and the background re-evaluation entry point.

All state lives in the SessionStore; FocusTimer holds only collaborators. Any number of
processes may run these operations concurrently: exactly-once milestone and completion
events come from conditional writes in the store, not from locks.
"""

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeAlias

from mb_focus.activities import ActivityLookup, resolve_activity
from mb_focus.alarm import AlarmEngine, AlarmResult
from mb_focus.errors import InvalidDuration, NoActiveSession, PersistenceFailure, SessionAlreadyActive
from mb_focus.evaluator import DEFAULT_WINDOW, Action, MilestoneWindow, evaluate
from mb_focus.models import SessionRecord
from mb_focus.notification import (
    Notification,
    Notifier,
    build_completion_notification,
    build_milestone_notification,
    build_progress_notification,
)
from mb_focus.store import SessionStore
from mb_focus.time_utils import now_ms
from mb_focus.timer import pause, remaining, resume

logger = logging.getLogger(__name__)

Clock: TypeAlias = Callable[[], int]

_ALARM_POLL_SEC = 0.5


class TickOutcome(StrEnum):
    """Background tick result reported to the host scheduler."""

    NO_DATA = "no_data"
    NEW_DATA = "new_data"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class TickResult:
    """Outcome of one background re-evaluation."""

    outcome: TickOutcome
    action: Action = Action.NONE
    alarm: AlarmResult | None = None


class FocusTimer:
    """Public API of the focus timer core."""

    def __init__(
        self,
        store: SessionStore,
        notifier: Notifier,
        alarm: AlarmEngine,
        activities: ActivityLookup,
        *,
        window: MilestoneWindow = DEFAULT_WINDOW,
        clock: Clock = now_ms,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._alarm = alarm
        self._activities = activities
        self._window = window
        self._clock = clock
        self._rng = rng

    def start(self, duration_ms: int, activity_id: str, music_choice: str = "none") -> SessionRecord:
        """Create and persist a new running session, then render the live timer.

        Raises InvalidDuration before touching storage, SessionAlreadyActive if a session exists.
        """
        if duration_ms <= 0:
            raise InvalidDuration(duration_ms)
        if self._store.load_session() is not None:
            raise SessionAlreadyActive

        record = SessionRecord(
            start_time=self._clock(),
            duration_ms=duration_ms,
            activity_id=activity_id,
            music_choice=music_choice,
        )
        self._store.clear_progress_flags()
        if not self._store.create_session(record):
            raise SessionAlreadyActive

        logger.info("Session started start_time=%d duration=%dms activity=%s", record.start_time, duration_ms, activity_id)
        self._render_progress(record)
        return record

    def pause(self) -> SessionRecord:
        """Freeze the active session. Pausing a paused session is a no-op.

        The paused record replaces exactly the record that was read, so a completion or stop
        made meanwhile by another process is never undone.
        """
        # A running record only changes by being paused or deleted, so the loop settles on re-read
        while True:
            record = self._require_session()
            if record.is_paused:
                return record

            now = self._clock()
            if remaining(record, now) <= 0:
                # Already over: finish it instead of freezing a zero countdown
                if self._store.claim_completion(record):
                    self._complete(record, now)
                raise NoActiveSession

            paused = pause(record, now)
            if self._store.replace_session(record, paused):
                break
            logger.info("Session changed during pause start_time=%d, re-reading", record.start_time)

        logger.info("Session paused start_time=%d remaining=%dms", paused.start_time, paused.remaining_at_pause)
        self._render_progress(paused)
        return paused

    def resume(self) -> SessionRecord:
        """Resume a paused session by re-anchoring start_time. Resuming a running session is a no-op.

        The dedup flag is copied to the new anchor before the record is swapped, so no
        evaluation ever sees the new anchor without its flag.
        """
        # A paused record only changes by being resumed or deleted, so the loop settles on re-read
        while True:
            record = self._require_session()
            if not record.is_paused:
                return record

            resumed = resume(record, self._clock())
            created = self._store.copy_progress_flag(record.start_time, resumed.start_time)
            if self._store.replace_session(record, resumed):
                break
            if created:
                self._store.delete_progress_flag(resumed.start_time)
            logger.info("Session changed during resume start_time=%d, re-reading", record.start_time)

        if record.start_time != resumed.start_time:
            try:
                self._store.delete_progress_flag(record.start_time)
            except PersistenceFailure:
                logger.warning("Cannot remove dedup flag of old anchor %d", record.start_time, exc_info=True)
        logger.info(
            "Session resumed start_time=%d->%d remaining=%dms", record.start_time, resumed.start_time, record.remaining_at_pause
        )
        self._render_progress(resumed)
        return resumed

    def stop(self) -> bool:
        """Cancel alarm feedback, delete the session and its dedup flag, clear the notification.

        Alarm feedback playing in another process (worker, tick) is asked to stop through the store.
        Idempotent. Return True if a session was actually stopped.
        """
        self._alarm.stop_alarm()
        existed = self._store.delete_session()
        try:
            self._store.request_alarm_stop()
        except PersistenceFailure:
            logger.warning("Cannot request alarm stop", exc_info=True)
        self._notifier.dismiss()
        if existed:
            logger.info("Session stopped")
        return existed

    def get_current_session(self) -> SessionRecord | None:
        """Read-only snapshot of the active session."""
        return self._store.load_session()

    def remaining_now(self) -> int | None:
        """Remaining ms of the active session at the current time, or None."""
        record = self._store.load_session()
        return remaining(record, self._clock()) if record is not None else None

    def wait_for_alarm(self, timeout: float, poll_sec: float = _ALARM_POLL_SEC) -> bool:
        """Block until alarm feedback ends by auto-stop, or dismiss it when another process requests a stop.

        Return False if feedback is still playing after `timeout` seconds.
        """
        deadline = time.monotonic() + timeout
        while (left := deadline - time.monotonic()) > 0:
            if self._alarm.wait_until_stopped(min(poll_sec, left)):
                return True
            if self._store.alarm_stop_requested():
                logger.info("Alarm stop requested by another process")
                self._alarm.dismiss()
                return True
        return False

    def on_background_tick(self) -> TickResult:
        """Re-evaluate the active session. Safe under at-least-once invocation; never raises."""
        try:
            return self._tick()
        except Exception:
            logger.exception("Background tick failed")
            return TickResult(TickOutcome.FAILED)

    def _tick(self) -> TickResult:
        record = self._store.load_session()
        if record is None:
            return TickResult(TickOutcome.NO_DATA)

        if record.is_paused:
            self._render_progress(record)
            return TickResult(TickOutcome.NEW_DATA)

        now = self._clock()
        evaluation = evaluate(record, now, self._store.has_progress_flag(record.start_time), self._window)

        if evaluation.action == Action.COMPLETE:
            if not self._store.claim_completion(record):
                logger.warning("Completion race lost for session start_time=%d", record.start_time)
                return TickResult(TickOutcome.NO_DATA)
            alarm = self._complete(record, now)
            return TickResult(TickOutcome.NEW_DATA, Action.COMPLETE, alarm)

        action = evaluation.action
        if action == Action.PROGRESS:
            if self._store.claim_progress_flag(record.start_time):
                activity = resolve_activity(self._activities, record.activity_id)
                self._dispatch(build_milestone_notification(record, activity, self._rng))
                logger.info("Milestone notification sent start_time=%d", record.start_time)
            else:
                logger.debug("Milestone already claimed start_time=%d", record.start_time)
                action = Action.NONE

        self._render_progress(record)
        return TickResult(TickOutcome.NEW_DATA, action)

    def _complete(self, record: SessionRecord, now: int) -> AlarmResult:
        """Completion path. The caller must already have removed the record."""
        logger.info("Session completed start_time=%d duration=%dms", record.start_time, record.duration_ms)
        activity = resolve_activity(self._activities, record.activity_id)
        self._notifier.dismiss()
        self._store.clear_alarm_stop_request()
        alarm = self._alarm.play_completion_alarm()
        self._dispatch(build_completion_notification(record, activity, now))
        return alarm

    def _require_session(self) -> SessionRecord:
        record = self._store.load_session()
        if record is None:
            raise NoActiveSession
        return record

    def _render_progress(self, record: SessionRecord) -> None:
        activity = resolve_activity(self._activities, record.activity_id)
        self._dispatch(build_progress_notification(record, activity, self._clock()))

    def _dispatch(self, notification: Notification) -> bool:
        try:
            ok = self._notifier.render(notification)
        except Exception:
            logger.warning("Notifier raised while rendering %s", notification.kind, exc_info=True)
            return False
        if not ok:
            logger.warning("Notification not rendered: %s", notification.kind)
        return ok
