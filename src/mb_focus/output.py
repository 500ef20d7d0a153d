"""Structured output for CLI and JSON modes."""

# ruff: noqa: T201 - output layer, print() is how results reach the terminal.

import json
import logging
import sys
from dataclasses import asdict, dataclass
from typing import NoReturn

import typer

from mb_focus.time_utils import format_mmss, progress_bar

logger = logging.getLogger(__name__)


def _mmss(ms: int) -> str:
    return format_mmss(ms // 1000)


@dataclass(frozen=True, slots=True)
class StartResult:
    """Result of a successful session start."""

    start_time: int
    duration_ms: int
    activity_id: str
    music_choice: str


@dataclass(frozen=True, slots=True)
class PauseResult:
    """Result of a session pause."""

    start_time: int
    remaining_ms: int


@dataclass(frozen=True, slots=True)
class ResumeResult:
    """Result of a session resume."""

    start_time: int
    remaining_ms: int


@dataclass(frozen=True, slots=True)
class StopResult:
    """Result of a stop request."""

    stopped: bool


@dataclass(frozen=True, slots=True)
class StatusActiveResult:
    """Result of a status check when a session is active."""

    status: str
    activity_id: str
    activity_name: str
    duration_ms: int
    elapsed_ms: int
    remaining_ms: int
    percent: int
    start_time: int


@dataclass(frozen=True, slots=True)
class StatusInactiveResult:
    """Result of a status check when no session is active."""


@dataclass(frozen=True, slots=True)
class TickOutput:
    """Result of a single background re-evaluation."""

    outcome: str
    action: str
    alarm_succeeded: list[str]
    alarm_failed: list[str]


@dataclass(frozen=True, slots=True)
class AlarmTestResult:
    """Result of an alarm test."""

    succeeded: list[str]
    failed: list[str]
    message: str | None


class Output:
    """Handles all CLI output in JSON or human-readable format."""

    def __init__(self, *, json_mode: bool) -> None:
        """Initialize output handler.

        Args:
            json_mode: If True, output JSON envelopes; otherwise human-readable text.

        """
        self._json_mode = json_mode

    def _success(self, data: dict[str, object], message: str) -> None:
        """Print a success result in JSON or human-readable format."""
        if self._json_mode:
            print(json.dumps({"ok": True, "data": data}))
        else:
            print(message)

    def print_error_and_exit(self, code: str, message: str) -> NoReturn:
        """Print an error in JSON or human-readable format and exit with code 1."""
        logger.error("Command error: [%s] %s", code, message)
        if self._json_mode:
            print(json.dumps({"ok": False, "error": code, "message": message}))
        else:
            print(f"Error: {message}", file=sys.stderr)
        raise typer.Exit(code=1)

    def print_started(self, result: StartResult) -> None:
        """Print session start confirmation."""
        self._success(asdict(result), f"Focus session started: {_mmss(result.duration_ms)} ({result.activity_id}).")

    def print_paused(self, result: PauseResult) -> None:
        """Print session pause confirmation."""
        self._success(asdict(result), f"Paused. Left: {_mmss(result.remaining_ms)}.")

    def print_resumed(self, result: ResumeResult) -> None:
        """Print session resume confirmation."""
        self._success(asdict(result), f"Resumed. Left: {_mmss(result.remaining_ms)}.")

    def print_stopped(self, result: StopResult) -> None:
        """Print stop confirmation."""
        self._success(asdict(result), "Session stopped." if result.stopped else "No active session.")

    def print_tick(self, result: TickOutput) -> None:
        """Print the outcome of a background tick."""
        message = f"Tick: {result.outcome} (action: {result.action})."
        if result.alarm_succeeded or result.alarm_failed:
            ok = ", ".join(result.alarm_succeeded) or "-"
            degraded = ", ".join(result.alarm_failed) or "-"
            message += f" Alarm ok: {ok}; degraded: {degraded}."
        self._success(asdict(result), message)

    def print_alarm_test(self, result: AlarmTestResult) -> None:
        """Print alarm test results."""
        lines = [
            f"Alarm layers ok: {', '.join(result.succeeded) or '-'}",
            f"Alarm layers degraded: {', '.join(result.failed) or '-'}",
        ]
        if result.message:
            lines.append(result.message)
        self._success(asdict(result), "\n".join(lines))

    def print_status(self, result: StatusActiveResult | StatusInactiveResult) -> None:
        """Print current session status."""
        if isinstance(result, StatusInactiveResult):
            self._success({"active": False}, "No active session.")
            return

        self._success(
            {"active": True, **asdict(result)},
            f"Activity: {result.activity_name}\n"
            f"Status:   {result.status}\n"
            f"Duration: {_mmss(result.duration_ms)}\n"
            f"Elapsed:  {_mmss(result.elapsed_ms)}\n"
            f"Left:     {_mmss(result.remaining_ms)}\n"
            f"Progress: {progress_bar(result.percent)} {result.percent}%",
        )
