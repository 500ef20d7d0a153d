"""CLI entry point for mb-focus."""

import os
from importlib.metadata import version
from pathlib import Path
from typing import Annotated

import typer

from mb_focus.app_context import AppContext
from mb_focus.commands.alarm_test import alarm_test
from mb_focus.commands.pause import pause
from mb_focus.commands.resume import resume
from mb_focus.commands.start import start
from mb_focus.commands.status import status
from mb_focus.commands.stop import stop
from mb_focus.commands.tick import tick
from mb_focus.commands.worker import worker
from mb_focus.config import DEFAULT_DATA_DIR, Config
from mb_focus.errors import PersistenceFailure
from mb_focus.log import setup_logging
from mb_focus.output import Output
from mb_focus.recovery import recover_worker

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(version("mb-focus"))
        raise typer.Exit


@app.callback()
def main(
    ctx: typer.Context,
    *,
    version: Annotated[
        bool | None, typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit.")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output results as JSON.")] = False,
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", help="Application data directory (db, pid, log). Allows running multiple instances."),
    ] = None,
) -> None:
    """Focus session timer with background notifications."""
    _ = version
    if data_dir is not None:
        resolved_dir = data_dir
    elif env_dir := os.environ.get("MB_FOCUS_DATA_DIR"):
        resolved_dir = Path(env_dir)
    else:
        resolved_dir = DEFAULT_DATA_DIR
    cfg = Config.build(resolved_dir.resolve())
    cfg.data_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(cfg.log_path)

    out = Output(json_mode=json_output)
    try:
        app_ctx = AppContext.build(cfg, out)
    except PersistenceFailure as e:
        out.print_error_and_exit(e.code, str(e))
    ctx.call_on_close(app_ctx.close)
    if ctx.invoked_subcommand not in {"worker", "tick", "stop"}:
        recover_worker(app_ctx)
    ctx.obj = app_ctx


app.command()(start)
app.command()(pause)
app.command()(resume)
app.command()(stop)
app.command()(status)
app.command()(tick)
app.command(name="alarm-test")(alarm_test)
app.command(hidden=True)(worker)
