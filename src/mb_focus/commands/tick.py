"""Run one background re-evaluation of the active session."""

import typer

from mb_focus.app_context import use_context
from mb_focus.evaluator import Action
from mb_focus.output import TickOutput
from mb_focus.service import TickOutcome


def tick(ctx: typer.Context) -> None:
    """Re-evaluate the active session once. Entry point for cron, launchd or systemd timers."""
    app = use_context(ctx)

    result = app.timer.on_background_tick()
    if result.action == Action.COMPLETE:
        # Stay alive until auto-stop or a `stop` from another process ends alarm feedback
        app.timer.wait_for_alarm(app.cfg.alarm_auto_stop_sec + 1)

    app.out.print_tick(
        TickOutput(
            outcome=result.outcome,
            action=result.action,
            alarm_succeeded=[str(layer) for layer in result.alarm.succeeded] if result.alarm else [],
            alarm_failed=[str(layer) for layer in result.alarm.failed] if result.alarm else [],
        )
    )
    if result.outcome == TickOutcome.FAILED:
        raise typer.Exit(code=1)
