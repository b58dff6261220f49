"""CLI command for kmsbulk initialization.

Provides the `kmsbulk init` command to write a starter config.toml.
"""

import logging
from pathlib import Path

import click

from kmsbulk.cli.options import destination_options, key_options
from kmsbulk.config.loader import get_default_config_path
from kmsbulk.config.templates import InitResult, render_config, run_init

logger = logging.getLogger(__name__)


def _display_result(result: InitResult) -> None:
    """Display the result of initialization to the user.

    Args:
        result: The initialization result.
    """
    if not result.success:
        click.echo(f"Error: {result.error}", err=True)
        if result.config_path.exists():
            click.echo("Use --force to overwrite existing configuration.", err=True)
        return

    if result.dry_run:
        verb = "replace" if result.replaced_files else "create"
        click.echo(f"Would {verb} {result.config_path}:")
        click.echo("")
        click.echo(result.content)
        click.echo("No changes made (dry run).")
        return

    for path in result.replaced_files:
        click.echo(f"Replaced {path}")
    for path in result.created_files:
        click.echo(f"Created {path}")
    click.echo("")
    click.echo("Next steps:")
    click.echo(f"  1. Review configuration: {result.config_path}")
    click.echo("  2. Check access: kmsbulk check")
    click.echo("  3. Encrypt a directory: kmsbulk encrypt /path/to/files")


@click.command("init")
@key_options
@destination_options
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Overwrite existing configuration file.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Show what would be written without making changes.",
)
@click.pass_context
def init_command(
    ctx: click.Context,
    project: str | None,
    location: str | None,
    keyring: str | None,
    crypto_key: str | None,
    bucket: str | None,
    prefix: str | None,
    force: bool,
    dry_run: bool,
) -> None:
    """Write a kmsbulk config.toml.

    The file goes to --config if given, otherwise KMSBULK_CONFIG_PATH or
    ~/.kmsbulk/config.toml. Settings not given as options are written
    commented out.

    \b
    Examples:
        kmsbulk init --project my-project --keyring test --key qwiklab \\
            --bucket my-project-enron_corpus

    \b
        kmsbulk init --dry-run
    """
    config_path = (ctx.obj or {}).get("config_path") or get_default_config_path()

    logger.debug(
        "Init command: config_path=%s, force=%s, dry_run=%s",
        config_path,
        force,
        dry_run,
    )

    content = render_config(
        project=project,
        location=location,
        keyring=keyring,
        key=crypto_key,
        bucket=bucket,
        prefix=prefix,
    )
    result = run_init(config_path, content, force=force, dry_run=dry_run)
    _display_result(result)

    if not result.success:
        raise SystemExit(1)
