"""Timer worker supervision: spawning and recovery after crashes or restarts."""

import logging
import time

from mm_clikit import is_process_running, spawn_detached

from mb_focus.app_context import AppContext
from mb_focus.errors import PersistenceFailure

logger = logging.getLogger(__name__)

WORKER_SPAWNED_KEY = "worker_spawned_at"

# Grace period for worker startup: covers Python interpreter launch, imports,
# config loading, and PID file write. Skips respawning a worker that may not
# have written its PID file yet.
_STARTUP_GRACE_SEC = 15


def spawn_worker(app: AppContext) -> None:
    """Launch the timer worker as a detached background process."""
    try:
        app.kv.set(WORKER_SPAWNED_KEY, str(int(time.time())))
    except PersistenceFailure:
        logger.warning("Cannot record worker spawn time", exc_info=True)
    spawn_detached([*app.cfg.cli_base_args(), "worker"])
    logger.debug("Timer worker spawned")


def _recently_spawned(app: AppContext, now: int) -> bool:
    try:
        raw = app.kv.get(WORKER_SPAWNED_KEY)
    except PersistenceFailure:
        return False
    return raw is not None and raw.isdigit() and now - int(raw) < _STARTUP_GRACE_SEC


def recover_worker(app: AppContext) -> None:
    """Detect a running session with a dead worker: catch up with one tick, then respawn the worker."""
    record = app.timer.get_current_session()
    if record is None or record.is_paused:
        return

    if is_process_running(app.cfg.worker_pid_path, command_contains="mb-focus"):
        return

    now = int(time.time())
    if _recently_spawned(app, now):
        logger.debug("Skipping recovery: worker spawned less than %ds ago", _STARTUP_GRACE_SEC)
        return

    logger.warning("Running session start_time=%d has no worker, catching up", record.start_time)
    result = app.timer.on_background_tick()
    logger.info("Catch-up tick: outcome=%s action=%s", result.outcome, result.action)

    # Remove stale PID file
    app.cfg.worker_pid_path.unlink(missing_ok=True)

    record = app.timer.get_current_session()
    if record is not None and not record.is_paused:
        spawn_worker(app)
