"""Resume a paused focus session."""

import typer

from mb_focus.app_context import use_context
from mb_focus.errors import FocusError
from mb_focus.output import ResumeResult
from mb_focus.recovery import spawn_worker
from mb_focus.time_utils import now_ms
from mb_focus.timer import remaining


def resume(ctx: typer.Context) -> None:
    """Resume a paused focus session."""
    app = use_context(ctx)

    try:
        record = app.timer.resume()
    except FocusError as e:
        app.out.print_error_and_exit(e.code, str(e))

    spawn_worker(app)

    app.out.print_resumed(ResumeResult(start_time=record.start_time, remaining_ms=remaining(record, now_ms())))
