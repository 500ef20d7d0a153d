"""Per-invocation application context shared by CLI commands."""

from dataclasses import dataclass

import typer

from mb_focus.activities import CatalogActivityLookup
from mb_focus.alarm import AlarmEngine, NotificationAcknowledger, NoVibrator, SystemSoundPlayer
from mb_focus.config import Config
from mb_focus.evaluator import MilestoneWindow
from mb_focus.notification import DesktopNotifier
from mb_focus.output import Output
from mb_focus.service import FocusTimer
from mb_focus.store import SessionStore, SqliteKeyValueStore


@dataclass(frozen=True, slots=True)
class AppContext:
    """Wired collaborators for one CLI process."""

    out: Output
    cfg: Config
    kv: SqliteKeyValueStore
    store: SessionStore
    alarm: AlarmEngine
    timer: FocusTimer

    @staticmethod
    def build(cfg: Config, out: Output) -> "AppContext":
        """Open storage and wire the timer with desktop notification and alarm backends."""
        kv = SqliteKeyValueStore(cfg.db_path)
        store = SessionStore(kv)
        notifier = DesktopNotifier(kv)
        alarm = AlarmEngine(
            SystemSoundPlayer(cfg.alarm_sound_path),
            NoVibrator(),
            NotificationAcknowledger(notifier),
            volume=cfg.alarm_volume,
            auto_stop_sec=cfg.alarm_auto_stop_sec,
        )
        timer = FocusTimer(
            store,
            notifier,
            alarm,
            CatalogActivityLookup(cfg.activities),
            window=MilestoneWindow(cfg.milestone_start, cfg.milestone_end),
        )
        return AppContext(out=out, cfg=cfg, kv=kv, store=store, alarm=alarm, timer=timer)

    def close(self) -> None:
        self.kv.close()


def use_context(ctx: typer.Context) -> AppContext:
    """Return the AppContext stored on the Typer context by the root callback."""
    app = ctx.obj
    if not isinstance(app, AppContext):
        raise RuntimeError("AppContext is not initialized")
    return app
