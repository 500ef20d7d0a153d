"""Remaining-time arithmetic and pause/resume time-anchor adjustment.

Everything here is pure: functions take a SessionRecord and a `now` in epoch ms
and return values or new records. Persistence happens in the service layer.
"""

from mb_focus.models import SessionRecord


def remaining(record: SessionRecord, now: int) -> int:
    """Time remaining in ms, within [0, duration_ms]. Frozen while paused, otherwise recomputed from the start_time anchor.

    A wall clock stepped back behind the anchor yields the full duration, never more.
    """
    if record.is_paused:
        return record.remaining_at_pause or 0
    return min(record.duration_ms, max(0, record.duration_ms - (now - record.start_time)))


def elapsed(record: SessionRecord, now: int) -> int:
    """Focused time in ms, clamped to [0, duration_ms]."""
    return record.duration_ms - remaining(record, now)


def elapsed_ratio(record: SessionRecord, now: int) -> float:
    """Fraction of the session elapsed. Not clamped while running, frozen while paused."""
    if record.is_paused:
        return elapsed(record, now) / record.duration_ms
    return (now - record.start_time) / record.duration_ms


def progress_percent(record: SessionRecord, now: int) -> int:
    """Percent complete, rounded and clamped to 0..100."""
    return round(100 * elapsed(record, now) / record.duration_ms)


def pause(record: SessionRecord, now: int) -> SessionRecord:
    """Freeze remaining time at `now`. Pausing a paused record returns it unchanged."""
    if record.is_paused:
        return record
    return record.model_copy(
        update={"is_paused": True, "paused_at": now, "remaining_at_pause": remaining(record, now)},
    )


def resume(record: SessionRecord, now: int) -> SessionRecord:
    """Re-anchor start_time so that remaining time right after resume equals the paused snapshot."""
    if not record.is_paused:
        return record
    remaining_at_pause = record.remaining_at_pause or 0
    new_start_time = now - (record.duration_ms - remaining_at_pause)
    return record.model_copy(
        update={"is_paused": False, "paused_at": None, "remaining_at_pause": None, "start_time": new_start_time},
    )
