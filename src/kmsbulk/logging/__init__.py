"""Structured logging for kmsbulk.

Text or JSON lines, optionally to a rotating file. Records are tagged with
the run id and phase, and with the worker and file while a file is being
processed.
"""

from kmsbulk.logging.context import (
    FileContextFilter,
    clear_file_context,
    file_context,
    get_file_context,
    get_run_context,
    phase_context,
    run_context,
    set_file_context,
)
from kmsbulk.logging.formatters import JSONFormatter, TextFormatter
from kmsbulk.logging.setup import configure_logging

__all__ = [
    "FileContextFilter",
    "JSONFormatter",
    "TextFormatter",
    "clear_file_context",
    "configure_logging",
    "file_context",
    "get_file_context",
    "get_run_context",
    "phase_context",
    "run_context",
    "set_file_context",
]
