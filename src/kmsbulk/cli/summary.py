"""Human-readable and JSON rendering of run summaries."""

from __future__ import annotations

from typing import Any

from kmsbulk.core.formatting import format_duration
from kmsbulk.encryptor.models import RunSummary

RULE = "=" * 50


def _status_line(summary: RunSummary) -> str:
    if summary.interrupted:
        return "INTERRUPTED"
    if summary.has_failures:
        return "COMPLETED WITH SOME FAILURES"
    return "ALL OPERATIONS SUCCESSFUL"


def format_summary(
    summary: RunSummary,
    *,
    title: str = "BULK ENCRYPTION SUMMARY",
    destination_uri: str | None = None,
    key_name: str | None = None,
    verbose: bool = False,
) -> str:
    """Format the end-of-run summary block.

    Args:
        summary: Counts to display.
        title: Heading of the block.
        destination_uri: Where artifacts were uploaded.
        key_name: Crypto key resource name.
        verbose: Also list every record's final state.

    Returns:
        Multi-line summary.
    """
    lines = [
        "",
        RULE,
        title,
        RULE,
        f"Total files found:      {summary.total_found}",
        f"Successfully encrypted: {summary.encrypted}",
        f"Failed encryptions:     {summary.encrypt_failed}",
        f"Skipped (empty):        {summary.skipped_empty}",
        f"Uploaded:               {summary.uploaded}",
        f"Failed uploads:         {summary.upload_failed}",
    ]
    if summary.not_processed:
        lines.append(f"Not processed:          {summary.not_processed}")
    lines.append(f"Duration:               {format_duration(summary.duration_seconds)}")
    if destination_uri:
        lines.append(f"Destination:            {destination_uri}")
    if key_name:
        lines.append(f"Key:                    {key_name}")
    if summary.run_id:
        lines.append(f"Run ID:                 {summary.run_id}")

    failed = summary.failed_records()
    if failed:
        lines.append("")
        lines.append("Failures:")
        for record in failed:
            phase = record.error_phase or "upload"
            message = record.error_message or "not uploaded"
            lines.append(f"  [{phase}] {record.path}: {message}")

    if verbose and summary.records:
        lines.append("")
        lines.append("Files:")
        for record in summary.records:
            lines.append(f"  {record.state.value:<14} {record.path}")

    lines.append("")
    lines.append(f"Status: {_status_line(summary)}")
    lines.append(RULE)
    return "\n".join(lines)


def summary_to_json(
    summary: RunSummary,
    *,
    destination_uri: str | None = None,
    key_name: str | None = None,
) -> dict[str, Any]:
    """Build the --json document for a run."""
    status = "interrupted" if summary.interrupted else summary.status
    counts = summary.to_dict(include_records=False)
    counts.pop("status")
    return {
        "status": status,
        "run_id": summary.run_id,
        "destination": destination_uri,
        "key": key_name,
        "summary": counts,
        "records": [r.to_dict() for r in summary.records],
    }
