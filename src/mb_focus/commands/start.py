"""Start a new focus session."""

import logging
from typing import Annotated

import typer

from mb_focus.app_context import use_context
from mb_focus.errors import FocusError
from mb_focus.output import StartResult
from mb_focus.recovery import spawn_worker
from mb_focus.time_utils import parse_duration

logger = logging.getLogger(__name__)


def start(
    ctx: typer.Context,
    duration: Annotated[str | None, typer.Argument(help="Duration: 25 (minutes), 25m, 90s, 10m30s. Default from config.")] = None,
    activity: Annotated[str, typer.Option("--activity", "-a", help="Activity id (see [activities] in config.toml).")] = "focus",
    music: Annotated[str, typer.Option("--music", "-m", help="Music choice, stored with the session.")] = "none",
) -> None:
    """Start a new focus session."""
    app = use_context(ctx)

    if duration is None:
        duration = app.cfg.default_duration
    duration_sec = parse_duration(duration)
    if duration_sec is None or duration_sec <= 0:
        logger.warning("Invalid duration input: %s", duration)
        app.out.print_error_and_exit("INVALID_DURATION", f"Invalid duration: {duration}. Examples: 25, 25m, 90s, 10m30s.")

    try:
        record = app.timer.start(duration_sec * 1000, activity, music)
    except FocusError as e:
        app.out.print_error_and_exit(e.code, str(e))

    spawn_worker(app)

    app.out.print_started(
        StartResult(
            start_time=record.start_time,
            duration_ms=record.duration_ms,
            activity_id=record.activity_id,
            music_choice=record.music_choice,
        )
    )
