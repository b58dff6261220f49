"""Install kmsbulk's log handlers on the root logger."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

from kmsbulk.logging.context import FileContextFilter
from kmsbulk.logging.formatters import JSONFormatter, TextFormatter

if TYPE_CHECKING:
    from kmsbulk.config.models import LoggingConfig

logger = logging.getLogger(__name__)

# Libraries that log every HTTP request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def _open_log_file(config: LoggingConfig) -> RotatingFileHandler | None:
    assert config.file is not None  # nosec B101 - checked by caller
    path = config.file.expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        # Reported once the stderr handler exists
        logger.debug("Cannot open %s: %s", path, e)
        return None


def configure_logging(config: LoggingConfig) -> None:
    """Replace the root logger's handlers according to config.

    A configured file gets a rotating handler. Logs also go to stderr when
    include_stderr is set, when no file is configured, or when the file
    cannot be opened. Every handler tags records with the run and file
    context.
    """
    level = logging.getLevelName(config.level.upper())
    formatter: logging.Formatter = (
        JSONFormatter() if config.format.lower() == "json" else TextFormatter()
    )
    context_filter = FileContextFilter()

    handlers: list[logging.Handler] = []
    file_handler = _open_log_file(config) if config.file else None
    if file_handler is not None:
        handlers.append(file_handler)
    if config.include_stderr or file_handler is None:
        handlers.append(logging.StreamHandler(sys.stderr))

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root.addHandler(handler)

    quiet_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    if config.file and file_handler is None:
        logger.warning("Could not open log file %s; logging to stderr", config.file)
