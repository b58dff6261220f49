"""Tests for run summary rendering."""

from pathlib import Path

from kmsbulk.cli.summary import format_summary, summary_to_json
from kmsbulk.encryptor.models import FileRecord, FileState, RunSummary


def _summary(**flags) -> RunSummary:
    records = [
        FileRecord(Path("allen-p/a.txt"), 120, FileState.UPLOADED),
        FileRecord(Path("allen-p/b.txt"), 0, FileState.SKIPPED_EMPTY),
        FileRecord(
            Path("allen-p/c.txt"),
            340,
            FileState.FAILED,
            error_phase="encrypt",
            error_message="Permission denied",
        ),
    ]
    summary = RunSummary.from_records(records, duration_seconds=75)
    summary.interrupted = flags.get("interrupted", False)
    summary.run_id = flags.get("run_id")
    return summary


class TestFormatSummary:
    """Tests for format_summary."""

    def test_counts_and_failures(self) -> None:
        """The block lists counts, failures and the status line."""
        text = format_summary(
            _summary(),
            destination_uri="gs://b-1/allen-p/",
            key_name="projects/p/locations/global/keyRings/test/cryptoKeys/qwiklab",
        )

        assert "BULK ENCRYPTION SUMMARY" in text
        assert "Total files found:      3" in text
        assert "Successfully encrypted: 1" in text
        assert "Failed encryptions:     1" in text
        assert "Skipped (empty):        1" in text
        assert "Uploaded:               1" in text
        assert "Duration:               1m 15s" in text
        assert "Destination:            gs://b-1/allen-p/" in text
        assert "  [encrypt] allen-p/c.txt: Permission denied" in text
        assert "Status: COMPLETED WITH SOME FAILURES" in text
        assert "Not processed" not in text
        assert "Files:" not in text

    def test_success(self) -> None:
        """A clean run reports success."""
        summary = RunSummary.from_records(
            [FileRecord(Path("a"), 1, FileState.UPLOADED)]
        )
        text = format_summary(summary, title="UPLOAD SUMMARY")
        assert "UPLOAD SUMMARY" in text
        assert "Status: ALL OPERATIONS SUCCESSFUL" in text
        assert "Failures:" not in text

    def test_verbose_lists_files(self) -> None:
        """Verbose mode lists every record."""
        text = format_summary(_summary(), verbose=True)
        assert "  skipped_empty  allen-p/b.txt" in text

    def test_interrupted(self) -> None:
        """An interrupted run says so."""
        assert "Status: INTERRUPTED" in format_summary(_summary(interrupted=True))

    def test_run_id(self) -> None:
        """The run id is shown when the run has one."""
        assert "Run ID:                 1a2b3c4d" in format_summary(
            _summary(run_id="1a2b3c4d")
        )
        assert "Run ID" not in format_summary(_summary())


class TestSummaryToJson:
    """Tests for summary_to_json."""

    def test_document(self) -> None:
        """The JSON document carries status, counts and records."""
        data = summary_to_json(_summary(), destination_uri="gs://b-1/allen-p/")
        assert data["status"] == "partial"
        assert data["destination"] == "gs://b-1/allen-p/"
        assert data["key"] is None
        assert data["summary"]["encrypt_failed"] == 1
        assert "status" not in data["summary"]
        assert len(data["records"]) == 3

    def test_interrupted_status(self) -> None:
        """Interruption wins over the partial status."""
        assert summary_to_json(_summary(interrupted=True))["status"] == "interrupted"

    def test_run_id(self) -> None:
        """The run id ties the document to the run's log lines."""
        assert summary_to_json(_summary(run_id="1a2b3c4d"))["run_id"] == "1a2b3c4d"
        assert summary_to_json(_summary())["run_id"] is None
