"""Tests for the CLI progress tracker."""

import io
import threading

from kmsbulk.cli.progress import ProgressTracker


class TestProgressTracker:
    """Tests for ProgressTracker."""

    def test_draws_phase_bars(self) -> None:
        """Each phase redraws in place with its own label."""
        stream = io.StringIO()
        tracker = ProgressTracker(width=4, stream=stream)

        tracker.start_phase("encrypt", 2)
        tracker.item_done()
        tracker.item_done()
        tracker.finish()
        tracker.start_phase("upload", 1)
        tracker.item_done()
        tracker.finish()

        output = stream.getvalue()
        assert "\rProgress: [....] 0% (0/2)" in output
        assert "\rProgress: [==..] 50% (1/2)" in output
        assert "\rProgress: [====] 100% (2/2)\n" in output
        assert "\rUploading: [====] 100% (1/1)\n" in output

    def test_disabled_is_silent(self) -> None:
        """A disabled tracker writes nothing but still counts."""
        stream = io.StringIO()
        tracker = ProgressTracker(enabled=False, stream=stream)
        tracker.start_phase("encrypt", 3)
        tracker.item_done()
        tracker.finish()
        assert stream.getvalue() == ""
        assert tracker.completed == 1

    def test_empty_phase_draws_nothing(self) -> None:
        """A phase with no items produces no output."""
        stream = io.StringIO()
        tracker = ProgressTracker(stream=stream)
        tracker.start_phase("upload", 0)
        tracker.finish()
        assert stream.getvalue() == ""

    def test_thread_safe_counting(self) -> None:
        """Concurrent item_done calls are all counted."""
        tracker = ProgressTracker(enabled=False)
        tracker.start_phase("encrypt", 400)

        def work() -> None:
            for _ in range(100):
                tracker.item_done()

        threads = [threading.Thread(target=work) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert tracker.completed == 400
