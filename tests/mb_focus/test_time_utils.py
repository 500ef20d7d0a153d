"""Tests for time_utils module."""

import pytest

from mb_focus.time_utils import format_mmss, format_remaining, now_ms, parse_duration, progress_bar


class TestParseDuration:
    """Tests for parse_duration function."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("25", 1500),
            ("1", 60),
            ("0", 0),
            ("25m", 1500),
            ("90s", 90),
            ("10m30s", 630),
            ("0m30s", 30),
        ],
    )
    def test_valid(self, raw: str, expected: int):
        """Valid duration strings are parsed correctly."""
        assert parse_duration(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "-5", "2.5", "5m30", "m", "s", "30s10m", "10 m", "1h"])
    def test_invalid(self, raw: str):
        """Invalid duration strings return None."""
        assert parse_duration(raw) is None


class TestFormatMmss:
    """Tests for format_mmss function."""

    @pytest.mark.parametrize(("seconds", "expected"), [(0, "00:00"), (45, "00:45"), (1500, "25:00"), (3661, "61:01")])
    def test_format(self, seconds: int, expected: str):
        """Seconds are formatted as MM:SS."""
        assert format_mmss(seconds) == expected


class TestFormatRemaining:
    """Tests for format_remaining function."""

    @pytest.mark.parametrize(
        ("ms", "expected"),
        [(0, "0:00"), (999, "0:00"), (1_000, "0:01"), (200_000, "3:20"), (1_500_000, "25:00"), (-5_000, "0:00")],
    )
    def test_format(self, ms: int, expected: str):
        """Milliseconds are formatted as M:SS with sub-second precision dropped."""
        assert format_remaining(ms) == expected


class TestProgressBar:
    """Tests for progress_bar function."""

    @pytest.mark.parametrize(
        ("percent", "expected"),
        [(0, "░" * 10), (12, "▓" + "░" * 9), (50, "▓" * 5 + "░" * 5), (100, "▓" * 10), (150, "▓" * 10), (-10, "░" * 10)],
    )
    def test_bar(self, percent: int, expected: str):
        """Filled cells are proportional to percent, clamped to the bar length."""
        assert progress_bar(percent) == expected

    def test_custom_length(self):
        """Bar length is configurable."""
        assert len(progress_bar(40, length=20)) == 20


def test_now_ms_is_epoch_milliseconds():
    """Clock returns milliseconds, not seconds."""
    assert now_ms() > 1_600_000_000_000
