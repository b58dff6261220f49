"""CLI commands for single files: encrypt-file and decrypt-file."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from kmsbulk.cli.exit_codes import ExitCode
from kmsbulk.cli.options import (
    _validate_positive,
    build_clients,
    destination_options,
    destination_or_exit,
    json_option,
    key_options,
    key_or_exit,
    load_config_or_exit,
    require_settings_or_exit,
    token_provider_or_exit,
)
from kmsbulk.cli.output import error_exit, json_output_data
from kmsbulk.config import ConfigSource
from kmsbulk.encryptor import decrypt_file, encrypt_single_file
from kmsbulk.exceptions import FileProcessingError, VerificationError
from kmsbulk.retry import RetryPolicy

logger = logging.getLogger(__name__)


@click.command("encrypt-file")
@click.argument("file", type=click.Path(path_type=Path))
@key_options
@destination_options
@click.option(
    "--suffix",
    default=None,
    help="Ciphertext artifact suffix (default: .encrypted).",
)
@click.option(
    "--no-verify",
    is_flag=True,
    default=False,
    help="Skip decrypting the artifact to check the round trip.",
)
@click.option(
    "--no-upload",
    is_flag=True,
    default=False,
    help="Only write the local artifact.",
)
@click.option(
    "--retries",
    type=int,
    default=None,
    callback=_validate_positive,
    help="Attempts per API call (1 disables retries).",
)
@json_option
@click.pass_context
def encrypt_file_command(
    ctx: click.Context,
    file: Path,
    project: str | None,
    location: str | None,
    keyring: str | None,
    crypto_key: str | None,
    bucket: str | None,
    prefix: str | None,
    suffix: str | None,
    no_verify: bool,
    no_upload: bool,
    retries: int | None,
    json_output: bool,
) -> None:
    """Encrypt FILE, verify it decrypts back, and upload the artifact.

    \b
    Examples:
        kmsbulk encrypt-file 1. --bucket my-project-enron_corpus

    \b
        kmsbulk encrypt-file notes.txt --no-upload
    """
    overrides = ConfigSource(
        project=project,
        location=location,
        keyring=keyring,
        key=crypto_key,
        bucket=bucket,
        prefix=prefix,
        suffix=suffix,
        retry_max_attempts=retries,
    )
    config = load_config_or_exit(ctx, overrides, json_output)
    require_settings_or_exit(config, json_output, needs_bucket=not no_upload)
    file = file.expanduser()
    if not file.is_file():
        error_exit(f"File not found: {file}", ExitCode.TARGET_NOT_FOUND, json_output)

    key = key_or_exit(config, json_output)
    destination = None if no_upload else destination_or_exit(config, json_output)
    tokens = token_provider_or_exit(config, json_output)

    kms, storage = build_clients(config, tokens)
    with kms, storage:
        try:
            result = encrypt_single_file(
                file,
                kms,
                key,
                suffix=config.encryption.suffix,
                storage=None if no_upload else storage,
                destination=destination,
                verify=not no_verify,
                retry=RetryPolicy.from_config(config.retry),
            )
        except VerificationError as e:
            error_exit(str(e), ExitCode.VERIFICATION_FAILED, json_output)
        except FileProcessingError as e:
            error_exit(
                f"{e.phase} failed for {e.path}: {e.message}",
                ExitCode.OPERATION_FAILED,
                json_output,
            )

    if json_output:
        json_output_data(
            {
                "status": "completed",
                "file": str(result.path),
                "artifact": str(result.artifact_path),
                "size": result.size,
                "verified": result.verified,
                "uri": result.uri,
                "key": str(key),
            }
        )
        return

    click.echo(f"Encrypted: {result.path} -> {result.artifact_path}")
    if result.verified:
        click.echo("Verified: decrypted content matches the original")
    if result.uri:
        click.echo(f"Uploaded: {result.uri}")


@click.command("decrypt-file")
@click.argument("artifact", type=click.Path(path_type=Path))
@key_options
@click.option(
    "--suffix",
    default=None,
    help="Ciphertext artifact suffix (default: .encrypted).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Plaintext output path (default: ARTIFACT without its suffix).",
)
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Overwrite an existing output file.",
)
@json_option
@click.pass_context
def decrypt_file_command(
    ctx: click.Context,
    artifact: Path,
    project: str | None,
    location: str | None,
    keyring: str | None,
    crypto_key: str | None,
    suffix: str | None,
    output: Path | None,
    force: bool,
    json_output: bool,
) -> None:
    """Decrypt a ciphertext ARTIFACT written by encrypt or encrypt-file."""
    overrides = ConfigSource(
        project=project,
        location=location,
        keyring=keyring,
        key=crypto_key,
        suffix=suffix,
    )
    config = load_config_or_exit(ctx, overrides, json_output)
    require_settings_or_exit(config, json_output, needs_bucket=False)
    artifact = artifact.expanduser()
    if not artifact.is_file():
        error_exit(
            f"File not found: {artifact}", ExitCode.TARGET_NOT_FOUND, json_output
        )

    key = key_or_exit(config, json_output)
    tokens = token_provider_or_exit(config, json_output)

    kms, storage = build_clients(config, tokens)
    with kms, storage:
        try:
            written = decrypt_file(
                artifact,
                kms,
                key,
                output=output,
                suffix=config.encryption.suffix,
                overwrite=force,
                retry=RetryPolicy.from_config(config.retry),
            )
        except ValueError as e:
            error_exit(
                f"{e}; use --output to name the plaintext file",
                ExitCode.INVALID_ARGUMENTS,
                json_output,
            )
        except FileExistsError as e:
            error_exit(
                f"{e} (use --force to replace it)",
                ExitCode.TARGET_EXISTS,
                json_output,
            )
        except FileProcessingError as e:
            error_exit(
                f"{e.phase} failed for {e.path}: {e.message}",
                ExitCode.OPERATION_FAILED,
                json_output,
            )

    if json_output:
        json_output_data(
            {"status": "completed", "artifact": str(artifact), "output": str(written)}
        )
        return
    click.echo(f"Decrypted: {artifact} -> {written}")
