"""Unit tests for bulk run domain types."""

from __future__ import annotations

from pathlib import Path

import pytest

from kmsbulk.encryptor.models import (
    BulkOptions,
    FileRecord,
    FileState,
    InvalidTransitionError,
    RunSummary,
)


def _record(state: FileState, name: str = "f") -> FileRecord:
    return FileRecord(path=Path(name), size=1, state=state)


class TestFileRecord:
    """Tests for FileRecord state transitions."""

    def test_happy_path(self) -> None:
        """Should move pending -> encoded -> encrypted -> uploaded."""
        record = FileRecord(path=Path("a.txt"), size=10)
        record.advance(FileState.ENCODED)
        record.advance(FileState.ENCRYPTED)
        record.advance(FileState.UPLOADED)
        assert record.state.is_terminal

    def test_records_error(self) -> None:
        """Should keep the failing phase and message."""
        record = FileRecord(path=Path("b.txt"), size=10)
        record.advance(FileState.FAILED, phase="encrypt", message="403")
        assert record.error_phase == "encrypt"
        assert record.error_message == "403"

    @pytest.mark.parametrize(
        "start,target",
        [
            (FileState.PENDING, FileState.UPLOADED),
            (FileState.ENCRYPTED, FileState.FAILED),
            (FileState.UPLOADED, FileState.UPLOAD_FAILED),
            (FileState.SKIPPED_EMPTY, FileState.ENCODED),
        ],
    )
    def test_rejects_invalid_transition(
        self, start: FileState, target: FileState
    ) -> None:
        """Should refuse to skip or reverse states."""
        record = _record(start)
        with pytest.raises(InvalidTransitionError, match="Cannot move from"):
            record.advance(target)
        assert record.state == start

    def test_rejects_negative_size(self) -> None:
        """Should reject a negative size."""
        with pytest.raises(ValueError):
            FileRecord(path=Path("x"), size=-1)

    def test_to_dict(self) -> None:
        """Should serialize paths and the state value."""
        record = FileRecord(path=Path("a"), size=3, artifact_path=Path("a.encrypted"))
        data = record.to_dict()
        assert data["state"] == "pending"
        assert data["artifact_path"] == "a.encrypted"


class TestRunSummary:
    """Tests for RunSummary.from_records."""

    def test_counts_states(self) -> None:
        """Every record is counted in exactly one bucket."""
        records = [
            _record(FileState.UPLOADED, "a"),
            _record(FileState.UPLOAD_FAILED, "b"),
            _record(FileState.FAILED, "c"),
            _record(FileState.SKIPPED_EMPTY, "d"),
            _record(FileState.ENCRYPTED, "e"),
        ]
        summary = RunSummary.from_records(records, duration_seconds=12.7)

        assert summary.total_found == 5
        assert summary.encrypted == 3
        assert summary.uploaded == 1
        assert summary.upload_failed == 2
        assert summary.encrypt_failed == 1
        assert summary.skipped_empty == 1
        assert summary.not_processed == 0
        assert summary.duration_seconds == 12
        assert (
            summary.encrypted + summary.encrypt_failed + summary.skipped_empty
            == summary.total_found
        )
        assert summary.uploaded + summary.upload_failed <= summary.encrypted

    def test_success_status(self) -> None:
        """A run with only uploads and skips is a success."""
        summary = RunSummary.from_records(
            [_record(FileState.UPLOADED), _record(FileState.SKIPPED_EMPTY)]
        )
        assert summary.status == "success"
        assert not summary.has_failures
        assert summary.failed_records() == []

    def test_partial_status(self) -> None:
        """Any failure makes the run partial."""
        summary = RunSummary.from_records(
            [_record(FileState.UPLOADED), _record(FileState.FAILED, "bad")]
        )
        assert summary.status == "partial"
        assert [r.path.name for r in summary.failed_records()] == ["bad"]

    def test_pending_is_not_processed(self) -> None:
        """Pending records from an interrupted run count as not processed."""
        summary = RunSummary.from_records(
            [_record(FileState.PENDING), _record(FileState.ENCODED)]
        )
        assert summary.not_processed == 2
        assert summary.has_failures

    def test_empty_run(self) -> None:
        """An empty directory is a successful run with zero counts."""
        summary = RunSummary.from_records([])
        assert summary.total_found == 0
        assert summary.status == "success"

    def test_to_dict(self) -> None:
        """to_dict can omit records."""
        data = RunSummary.from_records([_record(FileState.UPLOADED)]).to_dict(
            include_records=False
        )
        assert data["status"] == "success"
        assert data["uploaded"] == 1
        assert "records" not in data


class TestBulkOptions:
    """Tests for BulkOptions validation."""

    def test_defaults(self) -> None:
        """Defaults match the documented behavior."""
        options = BulkOptions()
        assert options.suffix == ".encrypted"
        assert options.workers == 1
        assert options.cleanup_after_upload is False

    def test_rejects_bad_values(self) -> None:
        """Should reject an empty suffix and zero workers."""
        with pytest.raises(ValueError):
            BulkOptions(suffix="")
        with pytest.raises(ValueError):
            BulkOptions(workers=0)
