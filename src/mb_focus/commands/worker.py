"""Background timer worker CLI command."""

import logging
import math
import os
import time

import typer
from mm_clikit import is_process_running, write_pid_file

from mb_focus.app_context import use_context
from mb_focus.evaluator import Action
from mb_focus.service import TickOutcome
from mb_focus.time_utils import now_ms
from mb_focus.timer import remaining

logger = logging.getLogger(__name__)

_MAX_CONSECUTIVE_FAILURES = 20


def worker(ctx: typer.Context) -> None:
    """Run background timer worker. Not intended for manual use."""
    app = use_context(ctx)
    cfg = app.cfg

    if is_process_running(cfg.worker_pid_path, command_contains="mb-focus"):
        logger.info("Worker not started: another worker is running")
        return

    logger.info("Worker started pid=%d", os.getpid())
    try:
        write_pid_file(cfg.worker_pid_path)
        try:
            failures = 0
            while True:
                result = app.timer.on_background_tick()

                if result.action == Action.COMPLETE:
                    app.timer.wait_for_alarm(cfg.alarm_auto_stop_sec + 1)
                    logger.info("Worker exiting: session completed")
                    break
                if result.outcome == TickOutcome.NO_DATA:
                    logger.info("Worker exiting: no active session")
                    break
                if result.outcome == TickOutcome.FAILED:
                    failures += 1
                    if failures >= _MAX_CONSECUTIVE_FAILURES:
                        logger.error("Worker exiting: %d consecutive tick failures", failures)
                        break
                else:
                    failures = 0

                record = app.timer.get_current_session()
                if record is not None and record.is_paused:
                    logger.info("Worker exiting: session paused")
                    break

                # Wake up no later than the expected completion
                delay = cfg.tick_interval_sec
                if record is not None:
                    delay = min(delay, max(1, math.ceil(remaining(record, now_ms()) / 1000)))
                time.sleep(delay)
        finally:
            cfg.worker_pid_path.unlink(missing_ok=True)
            logger.debug("Worker cleanup: removed PID file")
    except Exception:
        logger.exception("Worker crashed")
        raise
