"""Time parsing, formatting, and clock utilities."""

import re
import time

_DURATION_RE = re.compile(r"(?:(\d+)m)?(?:(\d+)s)?")

_BAR_FILLED = "▓"
_BAR_EMPTY = "░"


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def parse_duration(raw: str) -> int | None:
    """Parse a duration string into seconds.

    Supported formats: '25' (minutes), '25m', '90s', '10m30s'.
    Returns None on invalid input.
    """
    if raw.isdigit():
        return int(raw) * 60

    m = _DURATION_RE.fullmatch(raw)
    if not m or not any(m.groups()):
        return None

    minutes = int(m.group(1) or 0)
    seconds = int(m.group(2) or 0)
    return minutes * 60 + seconds


def format_mmss(seconds: int) -> str:
    """Format seconds as MM:SS."""
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_remaining(ms: int) -> str:
    """Format milliseconds as M:SS, truncating sub-second precision."""
    total_sec = max(0, ms) // 1000
    return f"{total_sec // 60}:{total_sec % 60:02d}"


def progress_bar(percent: int, length: int = 10) -> str:
    """Render a text progress bar, e.g. '▓▓▓░░░░░░░' for 30%."""
    percent = max(0, min(100, percent))
    filled = length * percent // 100
    return _BAR_FILLED * filled + _BAR_EMPTY * (length - filled)
