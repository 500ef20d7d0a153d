"""Show current focus session status."""

import typer

from mb_focus.activities import CatalogActivityLookup, resolve_activity
from mb_focus.app_context import use_context
from mb_focus.output import StatusActiveResult, StatusInactiveResult
from mb_focus.time_utils import now_ms
from mb_focus.timer import elapsed, progress_percent, remaining


def status(ctx: typer.Context) -> None:
    """Show current focus session status."""
    app = use_context(ctx)

    record = app.timer.get_current_session()
    if record is None:
        app.out.print_status(StatusInactiveResult())
        return

    now = now_ms()
    activity = resolve_activity(CatalogActivityLookup(app.cfg.activities), record.activity_id)
    app.out.print_status(
        StatusActiveResult(
            status="paused" if record.is_paused else "running",
            activity_id=record.activity_id,
            activity_name=activity.name,
            duration_ms=record.duration_ms,
            elapsed_ms=elapsed(record, now),
            remaining_ms=remaining(record, now),
            percent=progress_percent(record, now),
            start_time=record.start_time,
        )
    )
