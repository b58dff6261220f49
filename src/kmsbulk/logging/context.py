"""Run and per-file logging context.

Context variables carry the run id and pipeline phase for a whole run, and
the worker slot, the file's sequence id and its path while a file moves
through the pipeline, so log lines from parallel workers can be told apart.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_worker_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "worker_id", default=None
)
_file_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_id", default=None
)
_file_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_path", default=None
)


def set_file_context(
    worker_id: str,
    file_id: str | None = None,
    file_path: Path | str | None = None,
) -> None:
    """Set the current file context.

    Args:
        worker_id: Worker slot (e.g., "01").
        file_id: File sequence id (e.g., "F003").
        file_path: Path of the file being processed.
    """
    _worker_id.set(worker_id)
    _file_id.set(file_id)
    _file_path.set(str(file_path) if file_path is not None else None)


def clear_file_context() -> None:
    """Clear the current file context."""
    _worker_id.set(None)
    _file_id.set(None)
    _file_path.set(None)


@contextmanager
def file_context(
    worker_id: str,
    file_id: str | None = None,
    file_path: Path | str | None = None,
) -> Generator[None, None, None]:
    """Set the file context for the duration of a block.

    The previous context is restored on exit, so nested use is safe.

    Example:
        with file_context("01", "F003", "/data/inbox/1."):
            logger.info("Encrypting")  # tagged [W01:F003]
    """
    previous = (_worker_id.get(), _file_id.get(), _file_path.get())
    try:
        set_file_context(worker_id, file_id, file_path)
        yield
    finally:
        _worker_id.set(previous[0])
        _file_id.set(previous[1])
        _file_path.set(previous[2])


def get_file_context() -> tuple[str | None, str | None, str | None]:
    """Get the current file context.

    Returns:
        Tuple of (worker_id, file_id, file_path), any may be None.
    """
    return _worker_id.get(), _file_id.get(), _file_path.get()


_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)


@contextmanager
def run_context(run_id: str) -> Generator[None, None, None]:
    """Tag every record logged in the block with a run id.

    Worker threads only see the run id when their task runs in a copy of
    the submitting context (contextvars.copy_context().run).
    """
    token = _run_id.set(run_id)
    try:
        yield
    finally:
        _run_id.reset(token)


@contextmanager
def phase_context(phase: str) -> Generator[None, None, None]:
    """Tag every record logged in the block with the pipeline phase."""
    token = _phase.set(phase)
    try:
        yield
    finally:
        _phase.reset(token)


def get_run_context() -> tuple[str | None, str | None]:
    """Get the current (run_id, phase); either may be None."""
    return _run_id.get(), _phase.get()


class FileContextFilter(logging.Filter):
    """Logging filter that copies the file context onto log records.

    Adds run_id, phase, worker_id, file_id and file_path attributes, plus
    a compact worker_tag such as "[W01:F003] " for the text format.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        worker_id, file_id, file_path = get_file_context()
        record.run_id, record.phase = get_run_context()

        record.worker_id = worker_id
        record.file_id = file_id
        record.file_path = file_path

        if worker_id:
            if file_id:
                record.worker_tag = f"[W{worker_id}:{file_id}] "
            else:
                record.worker_tag = f"[W{worker_id}] "
        else:
            record.worker_tag = ""

        return True
