"""CLI commands for bulk encryption and upload-only runs."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from kmsbulk.cli.exit_codes import ExitCode
from kmsbulk.cli.options import (
    _is_interactive,
    _validate_positive,
    build_clients,
    destination_options,
    destination_or_exit,
    directory_or_exit,
    json_option,
    key_options,
    key_or_exit,
    load_config_or_exit,
    require_settings_or_exit,
    resolve_worker_count,
    token_provider_or_exit,
)
from kmsbulk.cli.output import config_error_exit, json_output_data, warning_output
from kmsbulk.cli.progress import ProgressTracker
from kmsbulk.cli.summary import format_summary, summary_to_json
from kmsbulk.config import ConfigSource, KmsBulkConfig
from kmsbulk.encryptor import (
    BulkEncryptor,
    BulkOptions,
    RunSummary,
    remove_uploaded_artifacts,
)
from kmsbulk.exceptions import ConfigurationError
from kmsbulk.retry import RetryPolicy

logger = logging.getLogger(__name__)


def _bulk_options(
    config: KmsBulkConfig, workers: int | None, cleanup: bool
) -> BulkOptions:
    return BulkOptions(
        suffix=config.encryption.suffix,
        workers=resolve_worker_count(workers, config.processing.workers),
        retry=RetryPolicy.from_config(config.retry),
        cleanup_after_upload=cleanup,
    )


def _exit_code(summary: RunSummary, strict: bool) -> ExitCode:
    if summary.interrupted:
        return ExitCode.INTERRUPTED
    if strict and summary.has_failures:
        return ExitCode.COMPLETED_WITH_FAILURES
    return ExitCode.SUCCESS


def _maybe_prompt_cleanup(summary: RunSummary) -> None:
    """Ask whether to remove uploaded artifacts (default No)."""
    if summary.interrupted or not summary.uploaded:
        return
    click.echo("")
    if click.confirm(
        f"Remove {summary.uploaded} uploaded local artifact(s) to save space?",
        default=False,
    ):
        removed = remove_uploaded_artifacts(summary.records)
        click.echo(f"Removed {removed} local artifact(s).")
    else:
        click.echo("Local artifacts preserved.")


def _report(
    summary: RunSummary,
    *,
    title: str,
    destination_uri: str,
    key_name: str | None,
    verbose: bool,
    json_output: bool,
) -> None:
    if json_output:
        json_output_data(
            summary_to_json(
                summary, destination_uri=destination_uri, key_name=key_name
            )
        )
        return
    click.echo(
        format_summary(
            summary,
            title=title,
            destination_uri=destination_uri,
            key_name=key_name,
            verbose=verbose,
        )
    )
    if summary.interrupted:
        warning_output("Interrupted: some files were not processed.")


@click.command("encrypt")
@click.argument("root", type=click.Path(path_type=Path))
@key_options
@destination_options
@click.option(
    "--suffix",
    default=None,
    help="Ciphertext artifact suffix (default: .encrypted).",
)
@click.option(
    "--workers",
    "-w",
    type=int,
    default=None,
    callback=_validate_positive,
    help="Number of parallel workers (default: from config or 1).",
)
@click.option(
    "--retries",
    type=int,
    default=None,
    callback=_validate_positive,
    help="Attempts per encrypt/upload call (1 disables retries).",
)
@click.option(
    "--cleanup/--keep",
    default=None,
    help="Remove or keep local artifacts after upload (default: ask).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit with status 60 when any file failed.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Show per-file results.",
)
@json_option
@click.pass_context
def encrypt_command(
    ctx: click.Context,
    root: Path,
    project: str | None,
    location: str | None,
    keyring: str | None,
    crypto_key: str | None,
    bucket: str | None,
    prefix: str | None,
    suffix: str | None,
    workers: int | None,
    retries: int | None,
    cleanup: bool | None,
    strict: bool,
    verbose: bool,
    json_output: bool,
) -> None:
    """Encrypt every file under ROOT and upload the ciphertext.

    Each file is base64 encoded, encrypted with the Cloud KMS key and
    written next to the original as <file>.encrypted. The artifacts are then
    uploaded to gs://BUCKET/PREFIX/<relative path>. Empty files are skipped.

    \b
    Examples:
        kmsbulk encrypt allen-p --bucket my-project-enron_corpus

    \b
        kmsbulk encrypt allen-p -w 8 --keep --json
    """
    overrides = ConfigSource(
        project=project,
        location=location,
        keyring=keyring,
        key=crypto_key,
        bucket=bucket,
        prefix=prefix,
        suffix=suffix,
        workers=workers,
        retry_max_attempts=retries,
    )
    config = load_config_or_exit(ctx, overrides, json_output)
    require_settings_or_exit(config, json_output)
    root = directory_or_exit(root, json_output)
    key = key_or_exit(config, json_output)
    destination = destination_or_exit(config, json_output)
    tokens = token_provider_or_exit(config, json_output)

    configured_cleanup = config.encryption.cleanup_after_upload
    ask_cleanup = (
        cleanup is None
        and not configured_cleanup
        and not json_output
        and _is_interactive()
    )
    options = _bulk_options(
        config, workers, cleanup if cleanup is not None else configured_cleanup
    )
    destination_uri = destination.uri_for(destination.prefix_for(root)) + "/"

    if verbose and not json_output:
        click.echo(f"Directory: {root}")
        click.echo(f"Key: {key}")
        click.echo(f"Destination: {destination_uri}")
        click.echo(f"Workers: {options.workers}")
        click.echo("")

    progress = ProgressTracker(enabled=not json_output)
    kms, storage = build_clients(config, tokens)
    with kms, storage:
        encryptor = BulkEncryptor(
            kms, storage, key, destination, options, progress=progress
        )
        try:
            summary = encryptor.run(root)
        except ConfigurationError as e:
            config_error_exit(e, json_output)

    _report(
        summary,
        title="BULK ENCRYPTION SUMMARY",
        destination_uri=destination_uri,
        key_name=str(key),
        verbose=verbose,
        json_output=json_output,
    )
    if ask_cleanup:
        _maybe_prompt_cleanup(summary)

    code = _exit_code(summary, strict)
    if code != ExitCode.SUCCESS:
        raise SystemExit(int(code))


@click.command("upload")
@click.argument("root", type=click.Path(path_type=Path))
@destination_options
@click.option(
    "--suffix",
    default=None,
    help="Ciphertext artifact suffix (default: .encrypted).",
)
@click.option(
    "--workers",
    "-w",
    type=int,
    default=None,
    callback=_validate_positive,
    help="Number of parallel workers (default: from config or 1).",
)
@click.option(
    "--retries",
    type=int,
    default=None,
    callback=_validate_positive,
    help="Attempts per upload call (1 disables retries).",
)
@click.option(
    "--cleanup/--keep",
    default=None,
    help="Remove or keep local artifacts after upload (default: keep).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit with status 60 when any upload failed.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Show per-file results.",
)
@json_option
@click.pass_context
def upload_command(
    ctx: click.Context,
    root: Path,
    bucket: str | None,
    prefix: str | None,
    suffix: str | None,
    workers: int | None,
    retries: int | None,
    cleanup: bool | None,
    strict: bool,
    verbose: bool,
    json_output: bool,
) -> None:
    """Upload ciphertext artifacts already under ROOT.

    Use this to finish a run that was interrupted before its upload phase,
    or to push artifacts left by an earlier run. Nothing is encrypted.
    """
    overrides = ConfigSource(
        bucket=bucket,
        prefix=prefix,
        suffix=suffix,
        workers=workers,
        retry_max_attempts=retries,
    )
    config = load_config_or_exit(ctx, overrides, json_output)
    root = directory_or_exit(root, json_output)
    destination = destination_or_exit(config, json_output)
    tokens = token_provider_or_exit(config, json_output)

    configured_cleanup = config.encryption.cleanup_after_upload
    options = _bulk_options(
        config, workers, cleanup if cleanup is not None else configured_cleanup
    )
    destination_uri = destination.uri_for(destination.prefix_for(root)) + "/"

    progress = ProgressTracker(enabled=not json_output)
    kms, storage = build_clients(config, tokens)
    with kms, storage:
        encryptor = BulkEncryptor(
            kms, storage, None, destination, options, progress=progress
        )
        try:
            summary = encryptor.upload_existing(root)
        except ConfigurationError as e:
            config_error_exit(e, json_output)

    _report(
        summary,
        title="UPLOAD SUMMARY",
        destination_uri=destination_uri,
        key_name=None,
        verbose=verbose,
        json_output=json_output,
    )

    code = _exit_code(summary, strict)
    if code != ExitCode.SUCCESS:
        raise SystemExit(int(code))
