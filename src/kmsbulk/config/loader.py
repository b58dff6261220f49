"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed to get_config as a ConfigSource)
2. Environment variables (KMSBULK_*)
3. Config file (~/.kmsbulk/config.toml)
4. Default values

Environment variables:
- KMSBULK_PROJECT_ID: Google Cloud project (falls back to DEVSHELL_PROJECT_ID)
- KMSBULK_LOCATION: KMS location (default "global")
- KMSBULK_KEYRING: KMS key ring name
- KMSBULK_CRYPTOKEY: KMS crypto key name
- KMSBULK_BUCKET: Destination Cloud Storage bucket
- KMSBULK_PREFIX: Object name prefix inside the bucket
- KMSBULK_SUFFIX: Ciphertext artifact suffix (default ".encrypted")
- KMSBULK_CLEANUP: Remove local artifacts after upload
- KMSBULK_WORKERS: Number of parallel workers
- KMSBULK_RETRY_ATTEMPTS: Attempts per encrypt/upload call
- KMSBULK_HTTP_TIMEOUT: Per-request timeout in seconds
- KMSBULK_ACCESS_TOKEN: Bearer token to use instead of gcloud
- KMSBULK_GCLOUD_PATH: gcloud executable
- KMSBULK_CONFIG_PATH: Path to config file (overrides default location)
- KMSBULK_DATA_DIR: Path to data directory (overrides ~/.kmsbulk/)
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from kmsbulk.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from kmsbulk.config.env import EnvReader
from kmsbulk.config.models import KmsBulkConfig
from kmsbulk.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".kmsbulk"
CONFIG_FILE_NAME = "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


def get_data_dir() -> Path:
    """Get the kmsbulk data directory.

    Can be overridden by the KMSBULK_DATA_DIR environment variable.

    Returns:
        Path to the data directory (~/.kmsbulk/ by default).
    """
    env_path = os.environ.get("KMSBULK_DATA_DIR")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_DATA_DIR


def get_default_config_path() -> Path:
    """Get the default config file path.

    KMSBULK_CONFIG_PATH wins over the data directory.

    Returns:
        Path to config file.
    """
    env_path = os.environ.get("KMSBULK_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return get_data_dir() / CONFIG_FILE_NAME


def load_toml_file(path: Path, *, strict: bool = False) -> dict[str, Any]:
    """Parse a TOML file.

    Args:
        path: File to read. A missing file yields an empty dict.
        strict: If True, raise ConfigurationError when the file cannot be
            read or parsed. If False, log a warning and return {}.

    Returns:
        Parsed configuration dict.
    """
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return {}
    except (OSError, tomllib.TOMLDecodeError) as e:
        if strict:
            raise ConfigurationError(f"Cannot parse config file {path}: {e}") from e
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from a TOML file.

    Results are cached with mtime-based invalidation.

    Args:
        path: Path to config file. If None, uses the default location.
        strict: Passed to load_toml_file.

    Returns:
        Parsed configuration dict. Empty dict if the file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    overrides: ConfigSource | None = None,
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> KmsBulkConfig:
    """Get kmsbulk configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides KMSBULK_CONFIG_PATH).
        overrides: Values from CLI options (highest precedence).
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, an unparseable config file raises ConfigurationError.

    Returns:
        KmsBulkConfig with merged configuration.

    Raises:
        ConfigurationError: If the file is unparseable (strict) or a value
            fails validation.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(config_path, strict=strict)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config), source_name="file")
    builder.apply(source_from_env(reader), source_name="env")
    if overrides is not None:
        builder.apply(overrides, source_name="cli")

    try:
        return builder.build()
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def validate_config(config: KmsBulkConfig) -> list[str]:
    """Validate the settings a run cannot do without.

    Args:
        config: The configuration to validate.

    Returns:
        List of error strings. Empty list means the configuration is usable.
    """
    errors: list[str] = []

    if not config.key.project:
        errors.append("Project is not set (--project or KMSBULK_PROJECT_ID)")
    if not config.key.keyring:
        errors.append("Key ring is not set (--keyring or KMSBULK_KEYRING)")
    if not config.key.key:
        errors.append("Crypto key is not set (--key or KMSBULK_CRYPTOKEY)")
    if not config.storage.bucket:
        errors.append("Destination bucket is not set (--bucket or KMSBULK_BUCKET)")

    return errors


def require_valid_config(config: KmsBulkConfig, *, needs_bucket: bool = True) -> None:
    """Raise ConfigurationError when validate_config finds problems.

    Args:
        config: The configuration to check.
        needs_bucket: Whether a missing bucket counts as a problem.

    Raises:
        ConfigurationError: Listing every problem found.
    """
    problems = validate_config(config)
    if not needs_bucket:
        problems = [p for p in problems if not p.startswith("Destination bucket")]
    if problems:
        raise ConfigurationError(
            "Required settings are missing: " + "; ".join(problems),
            problems=problems,
        )
