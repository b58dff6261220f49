"""Tests for shared CLI option helpers."""

import logging
from pathlib import Path

import click
import pytest

from kmsbulk.cli.options import (
    MAX_WORKERS,
    _validate_positive,
    directory_or_exit,
    resolve_worker_count,
)


class TestResolveWorkerCount:
    """Tests for resolve_worker_count."""

    def test_cli_value_wins(self) -> None:
        """The requested count beats the configured default."""
        assert resolve_worker_count(4, 2) == 4

    def test_uses_config_default(self) -> None:
        """None falls back to the configured default."""
        assert resolve_worker_count(None, 3) == 3

    def test_caps_and_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Counts above the cap are reduced with a warning."""
        with caplog.at_level(logging.WARNING):
            assert resolve_worker_count(500, 1) == MAX_WORKERS
        assert "exceeds cap" in caplog.text


class TestValidatePositive:
    """Tests for _validate_positive."""

    def test_accepts_positive_and_none(self) -> None:
        """Valid values pass through."""
        assert _validate_positive(None, None, 1) == 1
        assert _validate_positive(None, None, None) is None

    def test_rejects_zero(self) -> None:
        """Zero is rejected."""
        with pytest.raises(click.BadParameter):
            _validate_positive(None, None, 0)


class TestDirectoryOrExit:
    """Tests for directory_or_exit."""

    def test_returns_resolved_directory(self, tmp_path: Path) -> None:
        """An existing directory is resolved."""
        assert directory_or_exit(tmp_path, False) == tmp_path.resolve()

    def test_missing_directory_exits(self, tmp_path: Path) -> None:
        """A missing directory exits with TARGET_NOT_FOUND."""
        with pytest.raises(SystemExit) as exc_info:
            directory_or_exit(tmp_path / "missing", False)
        assert exc_info.value.code == 20

    def test_file_exits(self, tmp_path: Path) -> None:
        """A file is not a directory."""
        path = tmp_path / "f"
        path.write_text("x")
        with pytest.raises(SystemExit) as exc_info:
            directory_or_exit(path, True)
        assert exc_info.value.code == 20
