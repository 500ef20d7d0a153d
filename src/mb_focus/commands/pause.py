"""Pause the active focus session."""

import typer

from mb_focus.app_context import use_context
from mb_focus.errors import FocusError
from mb_focus.output import PauseResult


def pause(ctx: typer.Context) -> None:
    """Pause the active focus session."""
    app = use_context(ctx)

    try:
        record = app.timer.pause()
    except FocusError as e:
        app.out.print_error_and_exit(e.code, str(e))

    app.out.print_paused(PauseResult(start_time=record.start_time, remaining_ms=record.remaining_at_pause or 0))
