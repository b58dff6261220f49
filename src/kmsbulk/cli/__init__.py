"""CLI module for kmsbulk."""

import logging
import os
from pathlib import Path

import click

from kmsbulk.cli.output import config_error_exit
from kmsbulk.exceptions import ConfigurationError

_logging_configured: bool = False

logger = logging.getLogger(__name__)


def _configure_logging(
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Configure logging from the [logging] section and the CLI options.

    Only the first call in a process has an effect.

    Args:
        config_path: Config file given with --config (None uses default).
        log_level: Override log level (debug, info, warning, error).
        log_file: Override log file path.
        log_json: Use JSON log format.

    Raises:
        ConfigurationError: If the config file is unparseable or invalid.
    """
    global _logging_configured
    if _logging_configured:
        return

    from kmsbulk.config.loader import get_config
    from kmsbulk.logging import configure_logging

    config = get_config(config_path=config_path, strict=config_path is not None)
    try:
        logging_config = config.logging.with_overrides(
            level=log_level,
            file=log_file.expanduser() if log_file is not None else None,
            format="json" if log_json else None,
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid logging option: {e}") from e
    configure_logging(logging_config)
    _logging_configured = True


def _log_startup_settings(config_path: Path | None) -> None:
    """Log where configuration is read from."""
    from kmsbulk.config.loader import get_default_config_path

    if config_path is not None:
        source = "cli"
    elif os.environ.get("KMSBULK_CONFIG_PATH"):
        source = "env"
    else:
        source = "default"
    path = config_path or get_default_config_path()
    display = str(path).replace(str(Path.home()), "~")
    logger.debug(
        "kmsbulk starting: config=%s (%s, %s)",
        display,
        source,
        "present" if path.exists() else "missing",
    )


@click.group()
@click.version_option(package_name="kmsbulk")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Config file (default: ~/.kmsbulk/config.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """kmsbulk - Encrypt files with Cloud KMS and upload them to Cloud Storage."""
    ctx.ensure_object(dict)
    if config_path is not None:
        config_path = config_path.expanduser()
    ctx.obj["config_path"] = config_path

    # init writes the config file, so a broken or missing one must not stop it
    if ctx.invoked_subcommand == "init":
        return

    try:
        _configure_logging(config_path, log_level, log_file, log_json)
    except ConfigurationError as e:
        config_error_exit(e)
    _log_startup_settings(config_path)


# Defer import to avoid circular dependency
def _register_commands():
    from kmsbulk.cli.check import check_command
    from kmsbulk.cli.encrypt import encrypt_command, upload_command
    from kmsbulk.cli.encrypt_file import decrypt_file_command, encrypt_file_command
    from kmsbulk.cli.init import init_command

    main.add_command(check_command)
    main.add_command(decrypt_file_command)
    main.add_command(encrypt_command)
    main.add_command(encrypt_file_command)
    main.add_command(init_command)
    main.add_command(upload_command)


_register_commands()
