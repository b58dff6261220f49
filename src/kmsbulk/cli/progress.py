"""Progress display for bulk runs."""

from __future__ import annotations

import sys
import threading
from typing import TextIO

from kmsbulk.core.formatting import render_progress_bar

_PHASE_LABELS = {
    "encrypt": "Progress",
    "upload": "Uploading",
}


class ProgressTracker:
    """Thread-safe progress bar for parallel file processing.

    Displays one in-place bar per phase on stderr, e.g.
    "Progress: [=====...............] 25% (5/20)".
    """

    def __init__(
        self,
        enabled: bool = True,
        width: int = 20,
        stream: TextIO | None = None,
    ) -> None:
        """Initialize progress tracker.

        Args:
            enabled: If False, suppresses output (for JSON mode).
            width: Number of cells in the bar.
            stream: Output stream (stderr by default).
        """
        self.enabled = enabled
        self.width = width
        self.label = _PHASE_LABELS["encrypt"]
        self.total = 0
        self.completed = 0
        self._stream = stream
        self._lock = threading.Lock()

    def start_phase(self, name: str, total: int) -> None:
        """Reset the bar for a new phase."""
        with self._lock:
            self.label = _PHASE_LABELS.get(name, name.capitalize())
            self.total = total
            self.completed = 0
        if total:
            self._update_display(0, total)

    def item_done(self) -> None:
        """Mark one file as finished."""
        with self._lock:
            self.completed += 1
            completed, total = self.completed, self.total
        # I/O outside lock to avoid blocking workers if stderr is slow
        self._update_display(completed, total)

    def _update_display(self, completed: int, total: int) -> None:
        if self.enabled:
            bar = render_progress_bar(completed, total, self.width)
            stream = self._stream or sys.stderr
            stream.write(f"\r{self.label}: {bar}")
            stream.flush()

    def finish(self) -> None:
        """Complete progress display with newline."""
        if self.enabled and self.total:
            stream = self._stream or sys.stderr
            stream.write("\n")
            stream.flush()
