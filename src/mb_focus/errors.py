"""Typed failures surfaced by the focus timer core."""


class FocusError(Exception):
    """Base class for expected, user-facing failures. `code` feeds the CLI error envelope."""

    code = "FOCUS_ERROR"


class InvalidDuration(FocusError):
    """Session duration is not a positive number of milliseconds."""

    code = "INVALID_DURATION"

    def __init__(self, duration_ms: int) -> None:
        super().__init__(f"Invalid duration: {duration_ms} ms. Duration must be positive.")
        self.duration_ms = duration_ms


class SessionAlreadyActive(FocusError):
    """A session is already running or paused."""

    code = "ACTIVE_SESSION_EXISTS"

    def __init__(self) -> None:
        super().__init__("An active session already exists. Stop it first.")


class NoActiveSession(FocusError):
    """There is no session to pause or resume."""

    code = "NO_ACTIVE_SESSION"

    def __init__(self) -> None:
        super().__init__("No active session.")


class PersistenceFailure(FocusError):
    """Key-value storage read or write failed."""

    code = "PERSISTENCE_FAILURE"


class PlaybackDegraded(Exception):
    """A single alarm feedback layer could not run. Always absorbed by the alarm engine."""
