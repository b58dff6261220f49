"""CLI command to verify credentials, key and bucket access."""

from __future__ import annotations

import logging

import click

from kmsbulk.cli.exit_codes import ExitCode
from kmsbulk.cli.options import (
    build_clients,
    destination_options,
    json_option,
    key_options,
    key_or_exit,
    load_config_or_exit,
    require_settings_or_exit,
    token_provider_or_exit,
)
from kmsbulk.cli.output import error_exit, json_output_data
from kmsbulk.config import ConfigSource
from kmsbulk.encryptor import run_checks
from kmsbulk.storage.destination import Destination

logger = logging.getLogger(__name__)


@click.command("check")
@key_options
@destination_options
@json_option
@click.pass_context
def check_command(
    ctx: click.Context,
    project: str | None,
    location: str | None,
    keyring: str | None,
    crypto_key: str | None,
    bucket: str | None,
    prefix: str | None,
    json_output: bool,
) -> None:
    """Check that the crypto key and the bucket are reachable.

    Obtains an access token, reads the crypto key and reads the bucket.
    Nothing is created or changed. Exits with status 30 when no access token
    can be obtained and with status 61 if any other check fails.
    """
    overrides = ConfigSource(
        project=project,
        location=location,
        keyring=keyring,
        key=crypto_key,
        bucket=bucket,
        prefix=prefix,
    )
    config = load_config_or_exit(ctx, overrides, json_output)
    require_settings_or_exit(config, json_output, needs_bucket=False)
    key = key_or_exit(config, json_output)
    tokens = token_provider_or_exit(config, json_output)

    destination = None
    if config.storage.bucket:
        try:
            destination = Destination.parse(
                config.storage.bucket, prefix=config.storage.prefix
            )
        except ValueError as e:
            error_exit(str(e), ExitCode.CONFIG_ERROR, json_output)

    kms, storage = build_clients(config, tokens)
    with kms, storage:
        results = run_checks(kms, storage, key, destination, tokens)

    all_ok = all(r.ok for r in results)
    if json_output:
        json_output_data(
            {
                "status": "ok" if all_ok else "failed",
                "checks": [r.to_dict() for r in results],
            }
        )
    else:
        for result in results:
            marker = "OK" if result.ok else "FAIL"
            click.echo(f"  [{marker}] {result.name}: {result.detail}")
        click.echo("")
        click.echo("All checks passed." if all_ok else "Some checks failed.")

    if not all_ok:
        token_failed = results[0].name == "access token" and not results[0].ok
        code = ExitCode.AUTH_UNAVAILABLE if token_failed else ExitCode.CRITICAL
        raise SystemExit(int(code))
