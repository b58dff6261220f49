"""Exception hierarchy for kmsbulk.

Configuration problems are fatal and abort a run before any file is touched.
Per-file errors carry the path and the pipeline phase that failed; the
pipeline catches them at the file boundary and records them on the file's
record instead of propagating.
"""

from __future__ import annotations

from pathlib import Path


class KmsBulkError(Exception):
    """Base exception for all kmsbulk errors."""


class ConfigurationError(KmsBulkError):
    """Raised when required settings are missing or invalid.

    Attributes:
        problems: Individual problems found, one message each.
    """

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        self.problems = problems or []
        super().__init__(message)


class FileProcessingError(KmsBulkError):
    """Base exception for errors scoped to a single file.

    Attributes:
        path: The file being processed.
        phase: Pipeline phase that failed (encode, encrypt, write, upload...).
    """

    phase = "process"

    def __init__(self, path: Path, message: str, phase: str | None = None) -> None:
        self.path = path
        if phase is not None:
            self.phase = phase
        self.message = message
        super().__init__(f"{path}: {message}")


class EncodingError(FileProcessingError):
    """Raised when a file cannot be read or encodes to nothing."""

    phase = "encode"


class EncryptCallError(FileProcessingError):
    """Raised when the encrypt (or decrypt) call fails for a file."""

    phase = "encrypt"


class UploadError(FileProcessingError):
    """Raised when a ciphertext artifact cannot be uploaded."""

    phase = "upload"


class VerificationError(FileProcessingError):
    """Raised when decrypting an artifact does not reproduce the original."""

    phase = "verify"
