"""Tests for core formatting utilities."""

import pytest

from kmsbulk.core.formatting import (
    format_duration,
    format_file_size,
    render_progress_bar,
)


class TestFormatFileSize:
    """Tests for format_file_size function."""

    def test_bytes(self):
        """format_file_size returns bytes for small sizes."""
        assert format_file_size(0) == "0 B"
        assert format_file_size(1023) == "1023 B"

    def test_kilobytes(self):
        """format_file_size returns KB for kilobyte sizes."""
        assert format_file_size(1536) == "1.5 KB"

    def test_megabytes(self):
        """format_file_size returns MB for megabyte sizes."""
        assert format_file_size(128 * 1024**2) == "128.0 MB"

    def test_gigabytes(self):
        """format_file_size returns GB for gigabyte sizes."""
        assert format_file_size(int(4.2 * 1024**3)) == "4.2 GB"


class TestFormatDuration:
    """Tests for format_duration function."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "0s"),
            (45.9, "45s"),
            (60, "1m 00s"),
            (192, "3m 12s"),
            (3720, "1h 02m"),
            (-5, "0s"),
        ],
    )
    def test_formats(self, seconds, expected):
        """format_duration picks the largest useful unit."""
        assert format_duration(seconds) == expected


class TestRenderProgressBar:
    """Tests for render_progress_bar function."""

    def test_empty(self):
        """render_progress_bar shows an empty bar at zero."""
        assert render_progress_bar(0, 4, width=4) == "[....] 0% (0/4)"

    def test_half(self):
        """render_progress_bar fills proportionally."""
        assert render_progress_bar(2, 4, width=4) == "[==..] 50% (2/4)"

    def test_complete(self):
        """render_progress_bar is full at the total."""
        assert render_progress_bar(20, 20) == "[" + "=" * 20 + "] 100% (20/20)"

    def test_zero_total(self):
        """render_progress_bar treats an empty job as complete."""
        assert render_progress_bar(0, 0, width=2) == "[==] 100% (0/0)"
