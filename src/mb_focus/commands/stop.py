"""Stop the active focus session."""

import typer

from mb_focus.app_context import use_context
from mb_focus.errors import FocusError
from mb_focus.output import StopResult


def stop(ctx: typer.Context) -> None:
    """Stop the active focus session. Does nothing if there is none."""
    app = use_context(ctx)

    try:
        stopped = app.timer.stop()
    except FocusError as e:
        app.out.print_error_and_exit(e.code, str(e))

    app.out.print_stopped(StopResult(stopped=stopped))
