"""Bulk encrypt-then-upload pipeline.

A run has two phases. The encrypt phase walks the discovered files, encodes
each one, sends it to Cloud KMS and writes the ciphertext next to the
source. The upload phase enumerates the artifacts actually on disk and
pushes the ones produced by this run to Cloud Storage. Per-file failures
are recorded on the file's record and never abort the run; only
ConfigurationError escapes run().
"""

from __future__ import annotations

import base64
import contextvars
import logging
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from kmsbulk.auth.tokens import TokenProvider
from kmsbulk.config.models import HttpConfig
from kmsbulk.encryptor.discovery import (
    artifact_path_for,
    discover_artifacts,
    discover_files,
)
from kmsbulk.encryptor.models import (
    BulkOptions,
    FileRecord,
    FileState,
    NullProgress,
    ProgressReporter,
    RunSummary,
)
from kmsbulk.exceptions import (
    ConfigurationError,
    EncodingError,
    EncryptCallError,
    FileProcessingError,
    UploadError,
)
from kmsbulk.kms.client import KmsClient, KmsError, is_retryable_kms_error
from kmsbulk.kms.models import CryptoKeyName
from kmsbulk.logging import file_context, phase_context, run_context
from kmsbulk.retry import call_with_retry
from kmsbulk.storage.client import (
    GcsClient,
    StorageError,
    is_retryable_storage_error,
)
from kmsbulk.storage.destination import Destination

logger = logging.getLogger(__name__)

ARTIFACT_CONTENT_TYPE = "application/octet-stream"


def encode_file(path: Path) -> tuple[bytes, str]:
    """Read a file and base64 encode its bytes.

    Returns:
        Tuple of (raw bytes, base64 text).

    Raises:
        EncodingError: If the file cannot be read or encodes to nothing.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise EncodingError(path, f"cannot read file: {e.strerror or e}") from e
    encoded = base64.b64encode(data).decode("ascii")
    if data and not encoded:
        raise EncodingError(path, "encoding produced no output")
    return data, encoded


def remove_uploaded_artifacts(records: list[FileRecord]) -> int:
    """Remove the local artifacts of uploaded records only.

    Artifacts whose upload failed stay on disk. Records keep their state.

    Returns:
        Number of artifacts removed.
    """
    removed = 0
    for record in records:
        if record.state != FileState.UPLOADED or record.artifact_path is None:
            continue
        try:
            record.artifact_path.unlink()
            removed += 1
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove %s: %s", record.artifact_path, e)
    logger.info("Removed %d uploaded artifact(s)", removed)
    return removed


def write_artifact(artifact: Path, ciphertext: str) -> None:
    """Write ciphertext to artifact, removing any partial file on failure.

    Raises:
        FileProcessingError: With phase "write" if the write fails.
    """
    try:
        artifact.write_text(ciphertext + "\n", encoding="ascii")
    except OSError as e:
        if artifact.is_file():
            artifact.unlink(missing_ok=True)
        raise FileProcessingError(
            artifact, f"cannot write artifact: {e.strerror or e}", phase="write"
        ) from e


class BulkEncryptor:
    """Encrypts a directory tree and uploads the ciphertext artifacts.

    Example:
        with KmsClient(tokens) as kms, GcsClient(tokens) as storage:
            encryptor = BulkEncryptor(kms, storage, key, destination)
            summary = encryptor.run(Path("allen-p"))
    """

    def __init__(
        self,
        kms: KmsClient,
        storage: GcsClient,
        key: CryptoKeyName | None,
        destination: Destination | None,
        options: BulkOptions | None = None,
        progress: ProgressReporter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the encryptor.

        Args:
            kms: Client used for the encrypt calls.
            storage: Client used for the uploads.
            key: Crypto key to encrypt with.
            destination: Bucket and prefix for the artifacts.
            options: Suffix, workers, retry policy and cleanup flag.
            progress: Optional progress reporter.
            sleep: Sleep function used between retries, injectable for tests.
        """
        self._kms = kms
        self._storage = storage
        self._key = key
        self._destination = destination
        self._options = options or BulkOptions()
        self._progress = progress or NullProgress()
        self._sleep = sleep
        self._stop_event = threading.Event()
        self.interrupted = False
        self.run_id: str | None = None

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def run(self, root: Path) -> RunSummary:
        """Encrypt every file under root and upload the artifacts.

        Args:
            root: Directory to encrypt.

        Returns:
            RunSummary counting every discovered file.

        Raises:
            ConfigurationError: If the key, destination or root is unusable.
        """
        self._require_configured(root)
        with run_context(self._start_run()):
            started = time.monotonic()
            suffix = self._options.suffix
            paths = discover_files(root, suffix)
            logger.info("Found %d file(s) to encrypt under %s", len(paths), root)
            records = [self._new_record(path) for path in paths]

            self._fan_out(records, self._encrypt_one, phase="encrypt")
            if not self.interrupted:
                self._upload_phase(root, records)
                if self._options.cleanup_after_upload and not self.interrupted:
                    remove_uploaded_artifacts(records)

            return self._finish(records, started)

    def upload_existing(self, root: Path) -> RunSummary:
        """Upload artifacts already on disk without encrypting anything.

        Each non-empty artifact under root becomes an encrypted record that
        is then uploaded. Empty artifacts are reported as upload failures.

        Raises:
            ConfigurationError: If the destination or root is unusable.
        """
        self._require_configured(root, needs_key=False)
        with run_context(self._start_run()):
            started = time.monotonic()
            records = []
            for artifact in discover_artifacts(root, self._options.suffix):
                record = self._new_record(artifact)
                record.artifact_path = artifact
                record.state = FileState.ENCRYPTED
                records.append(record)
            logger.info(
                "Found %d artifact(s) to upload under %s", len(records), root
            )

            self._fan_out(
                records, lambda r: self._upload_one(root, r), phase="upload"
            )
            if self._options.cleanup_after_upload and not self.interrupted:
                remove_uploaded_artifacts(records)

            return self._finish(records, started)

    def _start_run(self) -> str:
        self._stop_event.clear()
        self.interrupted = False
        self.run_id = uuid.uuid4().hex[:8]
        return self.run_id

    def _finish(self, records: list[FileRecord], started: float) -> RunSummary:
        summary = RunSummary.from_records(records, time.monotonic() - started)
        summary.interrupted = self.interrupted
        summary.run_id = self.run_id
        self._log_summary(summary)
        return summary


    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _require_configured(self, root: Path, needs_key: bool = True) -> None:
        problems = []
        if needs_key and self._key is None:
            problems.append("Key identifier is not set")
        if self._destination is None:
            problems.append("Destination bucket is not set")
        if not root.exists():
            problems.append(f"Directory does not exist: {root}")
        elif not root.is_dir():
            problems.append(f"Not a directory: {root}")
        if problems:
            raise ConfigurationError("; ".join(problems), problems=problems)

    @staticmethod
    def _new_record(path: Path) -> FileRecord:
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return FileRecord(path=path, size=size)

    # -------------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------------

    def _fan_out(
        self,
        records: list[FileRecord],
        work: Callable[[FileRecord], None],
        phase: str,
    ) -> None:
        """Run work on every record, sequentially or on a thread pool.

        Each record is handled by exactly one worker. Ctrl+C cancels the
        pending records, lets running ones finish and marks the run as
        interrupted.
        """
        self._progress.start_phase(phase, len(records))
        workers = min(self._options.workers, max(1, len(records)))
        id_width = len(str(len(records)))

        def task(index: int, record: FileRecord) -> None:
            if self._stop_event.is_set():
                return
            # Worker ID is a logical slot, not the thread running the task
            worker_id = f"{((index - 1) % workers) + 1:02d}"
            file_id = f"F{index:0{id_width}d}"
            try:
                with file_context(worker_id, file_id, record.path):
                    work(record)
            finally:
                self._progress.item_done()

        try:
            with phase_context(phase):
                if workers == 1:
                    for index, record in enumerate(records, start=1):
                        task(index, record)
                else:
                    self._run_pool(records, task, workers)
        except KeyboardInterrupt:
            self._stop_event.set()
            self.interrupted = True
            logger.warning("Interrupted during %s phase", phase)
        finally:
            self._progress.finish()

    def _run_pool(
        self,
        records: list[FileRecord],
        task: Callable[[int, FileRecord], None],
        workers: int,
    ) -> None:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {}
            for index, record in enumerate(records, start=1):
                # Each task runs in its own copy of the run and phase context
                context = contextvars.copy_context()
                futures[executor.submit(context.run, task, index, record)] = record
            try:
                for future in as_completed(futures):
                    record = futures[future]
                    try:
                        future.result()
                    except Exception as e:
                        logger.exception("Unexpected error for %s: %s", record.path, e)
            except KeyboardInterrupt:
                self._stop_event.set()
                for f in futures:
                    f.cancel()
                executor.shutdown(wait=True, cancel_futures=True)
                raise

    # -------------------------------------------------------------------------
    # Encrypt phase
    # -------------------------------------------------------------------------

    def _encrypt_one(self, record: FileRecord) -> None:
        """Move one record from pending to encrypted, skipped or failed."""
        try:
            self._encrypt_record(record)
        except FileProcessingError as e:
            record.advance(FileState.FAILED, phase=e.phase, message=e.message)
            logger.warning("Failed to %s %s: %s", e.phase, record.path, e.message)
        except Exception as e:
            logger.exception("Unexpected error encrypting %s", record.path)
            record.advance(FileState.FAILED, phase="encrypt", message=str(e))

    def _encrypt_record(self, record: FileRecord) -> None:
        if record.size == 0:
            record.advance(FileState.SKIPPED_EMPTY)
            logger.info("Skipping empty file %s", record.path)
            return

        data, encoded = encode_file(record.path)
        if not data:
            # Truncated between discovery and read
            record.advance(FileState.SKIPPED_EMPTY)
            logger.info("Skipping empty file %s", record.path)
            return
        record.advance(FileState.ENCODED)

        assert self._key is not None  # nosec B101 - checked in run()
        key = self._key
        try:
            ciphertext = call_with_retry(
                lambda: self._kms.encrypt(key, encoded),
                self._options.retry,
                is_retryable=is_retryable_kms_error,
                description=f"encrypt {record.path}",
                sleep=self._sleep,
            )
        except KmsError as e:
            raise EncryptCallError(record.path, str(e)) from e

        artifact = artifact_path_for(record.path, self._options.suffix)
        write_artifact(artifact, ciphertext)
        record.artifact_path = artifact
        record.advance(FileState.ENCRYPTED)
        logger.debug("Wrote %s", artifact)

    # -------------------------------------------------------------------------
    # Upload phase
    # -------------------------------------------------------------------------

    def _upload_phase(self, root: Path, records: list[FileRecord]) -> None:
        """Upload the on-disk artifacts that belong to this run's records."""
        on_disk = {
            p.resolve(): p for p in discover_artifacts(root, self._options.suffix)
        }
        to_upload = []
        claimed = set()
        for record in records:
            if record.state != FileState.ENCRYPTED or record.artifact_path is None:
                continue
            resolved = record.artifact_path.resolve()
            if resolved not in on_disk:
                record.advance(
                    FileState.UPLOAD_FAILED,
                    phase="upload",
                    message="artifact is no longer on disk",
                )
                logger.warning("Artifact for %s disappeared", record.path)
                continue
            claimed.add(resolved)
            to_upload.append(record)

        leftovers = [p for resolved, p in on_disk.items() if resolved not in claimed]
        if leftovers:
            logger.info(
                "Leaving %d artifact(s) from earlier runs in place "
                "(use the upload command to push them)",
                len(leftovers),
            )
            for path in leftovers:
                logger.debug("Not uploading leftover artifact %s", path)

        self._fan_out(to_upload, lambda r: self._upload_one(root, r), phase="upload")

    def _upload_one(self, root: Path, record: FileRecord) -> None:
        """Move one record from encrypted to uploaded or upload_failed."""
        try:
            self._upload_record(root, record)
        except FileProcessingError as e:
            record.advance(FileState.UPLOAD_FAILED, phase=e.phase, message=e.message)
            logger.warning("Failed to upload %s: %s", record.artifact_path, e.message)
        except Exception as e:
            logger.exception("Unexpected error uploading %s", record.artifact_path)
            record.advance(FileState.UPLOAD_FAILED, phase="upload", message=str(e))

    def _upload_record(self, root: Path, record: FileRecord) -> None:
        artifact = record.artifact_path
        assert artifact is not None  # nosec B101 - set before upload
        assert self._destination is not None  # nosec B101 - checked in run()
        destination = self._destination

        try:
            data = artifact.read_bytes()
        except OSError as e:
            message = f"cannot read artifact: {e.strerror or e}"
            raise UploadError(artifact, message) from e
        if not data.strip():
            raise UploadError(artifact, "artifact is empty")

        object_name = destination.object_name_for(root, artifact)
        try:
            call_with_retry(
                lambda: self._storage.upload(
                    destination.bucket, object_name, data, ARTIFACT_CONTENT_TYPE
                ),
                self._options.retry,
                is_retryable=is_retryable_storage_error,
                description=f"upload {artifact}",
                sleep=self._sleep,
            )
        except StorageError as e:
            raise UploadError(artifact, str(e)) from e

        record.object_name = object_name
        record.advance(FileState.UPLOADED)
        logger.debug("Uploaded %s", destination.uri_for(object_name))

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    @staticmethod
    def _log_summary(summary: RunSummary) -> None:
        logger.info(
            "Run finished: found=%d encrypted=%d encrypt_failed=%d "
            "skipped_empty=%d uploaded=%d upload_failed=%d duration=%ds",
            summary.total_found,
            summary.encrypted,
            summary.encrypt_failed,
            summary.skipped_empty,
            summary.uploaded,
            summary.upload_failed,
            summary.duration_seconds,
        )


def run_bulk_encryption(
    root: Path,
    key: CryptoKeyName | None,
    destination: Destination | None,
    token_provider: TokenProvider,
    *,
    options: BulkOptions | None = None,
    http: HttpConfig | None = None,
    progress: ProgressReporter | None = None,
) -> RunSummary:
    """Encrypt root and upload the artifacts using real API clients.

    Args:
        root: Directory to encrypt.
        key: Crypto key to encrypt with.
        destination: Bucket and prefix for the artifacts.
        token_provider: Source of bearer tokens.
        options: Suffix, workers, retry policy and cleanup flag.
        http: Endpoints and timeout (defaults to the Google endpoints).
        progress: Optional progress reporter.

    Returns:
        The run's summary.

    Raises:
        ConfigurationError: If the key, destination or root is unusable.
    """
    http = http or HttpConfig()
    with KmsClient(
        token_provider, http.kms_endpoint, http.timeout_seconds
    ) as kms, GcsClient(
        token_provider, http.storage_endpoint, http.timeout_seconds
    ) as storage:
        encryptor = BulkEncryptor(
            kms, storage, key, destination, options, progress=progress
        )
        return encryptor.run(root)
