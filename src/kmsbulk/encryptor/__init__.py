"""Bulk and single-file encryption workflows."""

from kmsbulk.encryptor.checks import CheckResult, run_checks
from kmsbulk.encryptor.discovery import (
    artifact_path_for,
    discover_artifacts,
    discover_files,
    source_path_for,
)
from kmsbulk.encryptor.models import (
    BulkOptions,
    FileRecord,
    FileState,
    InvalidTransitionError,
    NullProgress,
    ProgressReporter,
    RunSummary,
)
from kmsbulk.encryptor.pipeline import (
    BulkEncryptor,
    remove_uploaded_artifacts,
    run_bulk_encryption,
)
from kmsbulk.encryptor.single import (
    SingleFileResult,
    decrypt_file,
    encrypt_single_file,
)

__all__ = [
    "BulkEncryptor",
    "BulkOptions",
    "CheckResult",
    "FileRecord",
    "FileState",
    "InvalidTransitionError",
    "NullProgress",
    "ProgressReporter",
    "RunSummary",
    "SingleFileResult",
    "artifact_path_for",
    "decrypt_file",
    "discover_artifacts",
    "discover_files",
    "encrypt_single_file",
    "run_bulk_encryption",
    "remove_uploaded_artifacts",
    "run_checks",
    "source_path_for",
]
