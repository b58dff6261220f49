"""Domain types for a bulk encryption run.

A FileRecord follows one source file through the run. Its state only moves
forward along the transitions in _ALLOWED; the RunSummary is derived purely
by counting record states.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from kmsbulk.config.models import DEFAULT_SUFFIX
from kmsbulk.retry import RetryPolicy


class FileState(Enum):
    """Where a file is in the encrypt-then-upload pipeline."""

    PENDING = "pending"
    ENCODED = "encoded"
    ENCRYPTED = "encrypted"
    UPLOAD_FAILED = "upload_failed"
    UPLOADED = "uploaded"
    SKIPPED_EMPTY = "skipped_empty"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {
        FileState.UPLOADED,
        FileState.FAILED,
        FileState.SKIPPED_EMPTY,
        FileState.UPLOAD_FAILED,
    }
)

_ALLOWED: dict[FileState, frozenset[FileState]] = {
    FileState.PENDING: frozenset(
        {FileState.ENCODED, FileState.SKIPPED_EMPTY, FileState.FAILED}
    ),
    FileState.ENCODED: frozenset({FileState.ENCRYPTED, FileState.FAILED}),
    FileState.ENCRYPTED: frozenset({FileState.UPLOADED, FileState.UPLOAD_FAILED}),
}


class InvalidTransitionError(Exception):
    """Raised when a record is moved to a state it cannot reach."""

    def __init__(self, current: FileState, target: FileState) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from {current.value} to {target.value}")


@dataclass
class FileRecord:
    """One discovered file and what happened to it.

    Attributes:
        path: Source file (for upload-only runs, the artifact itself).
        size: Size in bytes at discovery.
        state: Current pipeline state.
        artifact_path: Where the ciphertext was written.
        object_name: Object name the artifact was uploaded under.
        error_phase: Phase that failed (encode, encrypt, write, upload).
        error_message: Human-readable failure reason.
    """

    path: Path
    size: int = 0
    state: FileState = FileState.PENDING
    artifact_path: Path | None = None
    object_name: str | None = None
    error_phase: str | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError(f"size must not be negative, got {self.size}")

    def advance(
        self,
        target: FileState,
        *,
        phase: str | None = None,
        message: str | None = None,
    ) -> None:
        """Move to target, recording an error phase and message if given.

        Raises:
            InvalidTransitionError: If target is not reachable from the
                current state.
        """
        if target not in _ALLOWED.get(self.state, frozenset()):
            raise InvalidTransitionError(self.state, target)
        self.state = target
        if phase is not None:
            self.error_phase = phase
        if message is not None:
            self.error_message = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "size": self.size,
            "state": self.state.value,
            "artifact_path": str(self.artifact_path) if self.artifact_path else None,
            "object_name": self.object_name,
            "error_phase": self.error_phase,
            "error_message": self.error_message,
        }


_ENCRYPTED_STATES = frozenset(
    {FileState.ENCRYPTED, FileState.UPLOADED, FileState.UPLOAD_FAILED}
)
_PROBLEM_STATES = frozenset(
    {FileState.FAILED, FileState.ENCRYPTED, FileState.UPLOAD_FAILED}
)


@dataclass
class RunSummary:
    """Counts for a finished (or interrupted) run.

    `encrypted` counts every record that reached the encrypted state,
    including those uploaded or failed afterwards. A record left in
    `encrypted` never got an upload attempt and counts as upload_failed.
    `not_processed` is only non-zero for an interrupted run. `run_id` is the
    id that tags the run's log lines.
    """

    total_found: int = 0
    encrypted: int = 0
    encrypt_failed: int = 0
    skipped_empty: int = 0
    uploaded: int = 0
    upload_failed: int = 0
    not_processed: int = 0
    duration_seconds: int = 0
    interrupted: bool = False
    run_id: str | None = None
    records: list[FileRecord] = field(default_factory=list)

    @classmethod
    def from_records(
        cls, records: list[FileRecord], duration_seconds: float = 0
    ) -> RunSummary:
        """Count record states into a summary."""
        summary = cls(
            total_found=len(records),
            duration_seconds=int(duration_seconds),
            records=list(records),
        )
        for record in records:
            state = record.state
            if state in _ENCRYPTED_STATES:
                summary.encrypted += 1
                if state == FileState.UPLOADED:
                    summary.uploaded += 1
                else:
                    summary.upload_failed += 1
            elif state == FileState.FAILED:
                summary.encrypt_failed += 1
            elif state == FileState.SKIPPED_EMPTY:
                summary.skipped_empty += 1
            else:
                summary.not_processed += 1
        return summary

    @property
    def has_failures(self) -> bool:
        return bool(self.encrypt_failed or self.upload_failed or self.not_processed)

    @property
    def status(self) -> str:
        """Either "success" (nothing failed) or "partial"."""
        return "partial" if self.has_failures else "success"

    def failed_records(self) -> list[FileRecord]:
        return [r for r in self.records if r.state in _PROBLEM_STATES]

    def to_dict(self, include_records: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "total_found": self.total_found,
            "encrypted": self.encrypted,
            "encrypt_failed": self.encrypt_failed,
            "skipped_empty": self.skipped_empty,
            "uploaded": self.uploaded,
            "upload_failed": self.upload_failed,
            "not_processed": self.not_processed,
            "interrupted": self.interrupted,
            "duration_seconds": self.duration_seconds,
        }
        if include_records:
            data["records"] = [r.to_dict() for r in self.records]
        return data


class ProgressReporter(Protocol):
    """Receives progress while a run moves through its phases."""

    def start_phase(self, name: str, total: int) -> None: ...

    def item_done(self) -> None: ...

    def finish(self) -> None: ...


class NullProgress:
    """ProgressReporter that reports nothing."""

    def start_phase(self, name: str, total: int) -> None:
        pass

    def item_done(self) -> None:
        pass

    def finish(self) -> None:
        pass


@dataclass(frozen=True)
class BulkOptions:
    """Knobs for a bulk run.

    Attributes:
        suffix: Appended to a file's path to name its ciphertext artifact.
        workers: Parallel workers for the encrypt and upload phases.
        retry: Retry policy for encrypt and upload calls.
        cleanup_after_upload: Remove artifacts once they are uploaded.
    """

    suffix: str = DEFAULT_SUFFIX
    workers: int = 1
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    cleanup_after_upload: bool = False

    def __post_init__(self) -> None:
        if not self.suffix or "/" in self.suffix:
            raise ValueError(f"Invalid artifact suffix: {self.suffix!r}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
