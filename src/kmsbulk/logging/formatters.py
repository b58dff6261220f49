"""Text and JSON line formats for kmsbulk logs."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

TEXT_FORMAT = "%(asctime)s - %(worker_tag)s%(name)s - %(levelname)s - %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Attributes every LogRecord has, plus the ones format() adds
_BUILTIN_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
}

# Set by FileContextFilter; emitted as top-level keys in this order
_RUN_FIELDS = ("run_id", "phase", "worker_id", "file_id", "file_path")


class TextFormatter(logging.Formatter):
    """One line per record, prefixed with the [Wnn:Fnnn] worker tag.

    Records that did not pass through FileContextFilter get an empty tag.
    """

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "worker_tag"):
            record.worker_tag = ""
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: timestamp (UTC), level, logger, message, then whichever of run_id,
    phase, worker_id, file_id and file_path are set, then any extra=
    attributes under "extra", and the traceback under "exception".
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _RUN_FIELDS:
            value = getattr(record, name, None)
            if value:
                entry[name] = value

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _BUILTIN_ATTRS
            and key not in _RUN_FIELDS
            and key != "worker_tag"
            and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)
