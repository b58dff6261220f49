"""Options and helpers shared by the kmsbulk commands."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from kmsbulk.auth.tokens import TokenError, TokenProvider, build_token_provider
from kmsbulk.cli.exit_codes import ExitCode
from kmsbulk.cli.output import config_error_exit, error_exit
from kmsbulk.config import (
    ConfigSource,
    KmsBulkConfig,
    get_config,
    require_valid_config,
)
from kmsbulk.exceptions import ConfigurationError
from kmsbulk.kms.client import KmsClient
from kmsbulk.kms.models import CryptoKeyName
from kmsbulk.storage.client import GcsClient
from kmsbulk.storage.destination import Destination

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Encrypt and upload calls are network bound, so the cap is well above the
# CPU count but keeps the request rate reasonable
MAX_WORKERS = 32


def resolve_worker_count(requested: int | None, config_default: int) -> int:
    """Resolve effective worker count with capping.

    Args:
        requested: Worker count from CLI (None if not specified).
        config_default: Default worker count from configuration.

    Returns:
        Effective worker count (capped at MAX_WORKERS).
    """
    effective = requested if requested is not None else config_default

    if effective > MAX_WORKERS:
        logger.warning(
            "Requested %d workers exceeds cap of %d. Using %d.",
            effective,
            MAX_WORKERS,
            MAX_WORKERS,
        )
        return MAX_WORKERS

    return max(1, effective)


def _validate_positive(
    ctx: click.Context, param: click.Parameter, value: int | None
) -> int | None:
    """Validate an option that must be at least 1.

    Raises:
        click.BadParameter: If value is less than 1.
    """
    if value is not None and value < 1:
        raise click.BadParameter("must be at least 1")
    return value


def _is_interactive() -> bool:
    """Check if running in interactive mode (TTY).

    This is extracted as a function to allow easier mocking in tests.

    Returns:
        True if stdin is a TTY, False otherwise.
    """
    return sys.stdin.isatty()


def key_options(func: F) -> F:
    """Add --project/--location/--keyring/--key."""
    decorators = [
        click.option(
            "--project",
            default=None,
            help="Google Cloud project (default: KMSBULK_PROJECT_ID or config).",
        ),
        click.option(
            "--location",
            default=None,
            help="KMS location (default: global).",
        ),
        click.option("--keyring", default=None, help="KMS key ring name."),
        click.option("--key", "crypto_key", default=None, help="KMS crypto key name."),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def destination_options(func: F) -> F:
    """Add --bucket/--prefix."""
    decorators = [
        click.option(
            "--bucket",
            default=None,
            help="Destination bucket, as a name or gs://bucket[/prefix].",
        ),
        click.option(
            "--prefix",
            default=None,
            help="Object name prefix (default: name of the directory).",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def json_option(func: F) -> F:
    """Add --json/-j."""
    return click.option(
        "--json",
        "-j",
        "json_output",
        is_flag=True,
        default=False,
        help="Output in JSON format.",
    )(func)


def load_config_or_exit(
    ctx: click.Context, overrides: ConfigSource, json_output: bool
) -> KmsBulkConfig:
    """Load layered configuration, exiting with CONFIG_ERROR on failure."""
    config_path = (ctx.obj or {}).get("config_path")
    try:
        return get_config(
            config_path=config_path,
            overrides=overrides,
            strict=config_path is not None,
        )
    except ConfigurationError as e:
        config_error_exit(e, json_output)


def key_or_exit(config: KmsBulkConfig, json_output: bool) -> CryptoKeyName:
    """Crypto key from configuration, exiting with CONFIG_ERROR on failure."""
    try:
        return CryptoKeyName.from_config(config.key)
    except ConfigurationError as e:
        config_error_exit(e, json_output)


def destination_or_exit(config: KmsBulkConfig, json_output: bool) -> Destination:
    """Destination from configuration, exiting with CONFIG_ERROR on failure."""
    if not config.storage.bucket:
        error_exit(
            "Destination bucket is not set (--bucket or KMSBULK_BUCKET)",
            ExitCode.CONFIG_ERROR,
            json_output,
        )
    try:
        return Destination.parse(config.storage.bucket, prefix=config.storage.prefix)
    except ValueError as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR, json_output)


def token_provider_or_exit(config: KmsBulkConfig, json_output: bool) -> TokenProvider:
    """Token provider from configuration, exiting with CONFIG_ERROR on failure."""
    try:
        return build_token_provider(config.auth)
    except TokenError as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR, json_output)


def directory_or_exit(root: Path, json_output: bool) -> Path:
    """Resolve root, exiting with TARGET_NOT_FOUND unless it is a directory."""
    root = root.expanduser()
    if not root.exists():
        error_exit(
            f"Directory not found: {root}", ExitCode.TARGET_NOT_FOUND, json_output
        )
    if not root.is_dir():
        error_exit(f"Not a directory: {root}", ExitCode.TARGET_NOT_FOUND, json_output)
    return root.resolve()


def require_settings_or_exit(
    config: KmsBulkConfig, json_output: bool, *, needs_bucket: bool = True
) -> None:
    """Exit with CONFIG_ERROR listing every required setting that is missing."""
    try:
        require_valid_config(config, needs_bucket=needs_bucket)
    except ConfigurationError as e:
        config_error_exit(e, json_output)


def build_clients(
    config: KmsBulkConfig, token_provider: TokenProvider
) -> tuple[KmsClient, GcsClient]:
    """KMS and storage clients for the configured endpoints and timeout."""
    http = config.http
    kms = KmsClient(token_provider, http.kms_endpoint, http.timeout_seconds)
    storage = GcsClient(token_provider, http.storage_endpoint, http.timeout_seconds)
    return kms, storage
