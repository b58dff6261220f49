"""Configuration builder with explicit layering.

This module provides ConfigBuilder for building KmsBulkConfig by composing
multiple configuration sources with explicit precedence handling.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from kmsbulk.config.env import EnvReader
from kmsbulk.config.models import (
    DEFAULT_KMS_ENDPOINT,
    DEFAULT_STORAGE_ENDPOINT,
    DEFAULT_SUFFIX,
    AuthConfig,
    EncryptionConfig,
    HttpConfig,
    KeyConfig,
    KmsBulkConfig,
    LoggingConfig,
    ProcessingConfig,
    RetryConfig,
    StorageConfig,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources.
    """

    # Key identifier
    project: str | None = None
    location: str | None = None
    keyring: str | None = None
    key: str | None = None

    # Destination
    bucket: str | None = None
    prefix: str | None = None

    # Encryption
    suffix: str | None = None
    cleanup_after_upload: bool | None = None

    # Processing
    workers: int | None = None

    # Retry
    retry_max_attempts: int | None = None
    retry_base_delay: float | None = None
    retry_max_delay: float | None = None
    retry_jitter: float | None = None

    # HTTP
    http_timeout: float | None = None
    kms_endpoint: str | None = None
    storage_endpoint: str | None = None

    # Auth
    access_token: str | None = None
    gcloud_path: str | None = None
    token_refresh_seconds: int | None = None

    # Logging
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds KmsBulkConfig by layering ConfigSources with precedence.

    Later sources override earlier ones (for non-None values). Each applied
    source is remembered by name so callers can report where a value came
    from.

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config), source_name="file")
        builder.apply(source_from_env(reader), source_name="env")
        builder.apply(cli_source, source_name="cli")
        config = builder.build()
    """

    def __init__(self) -> None:
        """Initialize the builder with no values set."""
        self._values: dict[str, Any] = {}
        self._origins: dict[str, str] = {}

    def apply(self, source: ConfigSource, source_name: str = "unknown") -> None:
        """Apply configuration source, overriding existing values.

        Args:
            source: Configuration source to apply.
            source_name: Label recorded for every value this source sets.
        """
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value
                self._origins[field_obj.name] = source_name

    def origin(self, key: str) -> str:
        """Return the name of the source that set a value ("default" if none)."""
        return self._origins.get(key, "default")

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> KmsBulkConfig:
        """Build the final KmsBulkConfig with defaults for unset values.

        Returns:
            Complete KmsBulkConfig with all values resolved.

        Raises:
            ValueError: If a value fails section validation.
        """
        key = KeyConfig(
            project=self._get("project", None),
            location=self._get("location", "global"),
            keyring=self._get("keyring", None),
            key=self._get("key", None),
        )

        storage = StorageConfig(
            bucket=self._get("bucket", None),
            prefix=self._get("prefix", None),
        )

        encryption = EncryptionConfig(
            suffix=self._get("suffix", DEFAULT_SUFFIX),
            cleanup_after_upload=self._get("cleanup_after_upload", False),
        )

        processing = ProcessingConfig(workers=self._get("workers", 1))

        retry = RetryConfig(
            max_attempts=self._get("retry_max_attempts", 3),
            base_delay=self._get("retry_base_delay", 0.5),
            max_delay=self._get("retry_max_delay", 8.0),
            jitter=self._get("retry_jitter", 0.1),
        )

        http = HttpConfig(
            timeout_seconds=self._get("http_timeout", 30.0),
            kms_endpoint=self._get("kms_endpoint", DEFAULT_KMS_ENDPOINT),
            storage_endpoint=self._get("storage_endpoint", DEFAULT_STORAGE_ENDPOINT),
        )

        auth = AuthConfig(
            access_token=self._get("access_token", None),
            gcloud_path=self._get("gcloud_path", "gcloud"),
            token_refresh_seconds=self._get("token_refresh_seconds", 1800),
        )

        logging_config = LoggingConfig(
            level=self._get("logging_level", "info"),
            file=self._get("logging_file", None),
            format=self._get("logging_format", "text"),
            include_stderr=self._get("logging_include_stderr", False),
            max_bytes=self._get("logging_max_bytes", 10_485_760),
            backup_count=self._get("logging_backup_count", 5),
        )

        return KmsBulkConfig(
            key=key,
            storage=storage,
            encryption=encryption,
            processing=processing,
            retry=retry,
            http=http,
            auth=auth,
            logging=logging_config,
        )


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from a parsed TOML config file.

    Args:
        file_config: Parsed configuration dictionary from TOML file.

    Returns:
        ConfigSource with values from the config file.
    """
    key = file_config.get("key", {})
    storage = file_config.get("storage", {})
    encryption = file_config.get("encryption", {})
    processing = file_config.get("processing", {})
    retry = file_config.get("retry", {})
    http = file_config.get("http", {})
    auth = file_config.get("auth", {})
    logging_conf = file_config.get("logging", {})

    log_file_str = logging_conf.get("file")
    log_file = Path(log_file_str).expanduser() if log_file_str else None

    return ConfigSource(
        project=key.get("project"),
        location=key.get("location"),
        keyring=key.get("keyring"),
        key=key.get("key"),
        bucket=storage.get("bucket"),
        prefix=storage.get("prefix"),
        suffix=encryption.get("suffix"),
        cleanup_after_upload=encryption.get("cleanup_after_upload"),
        workers=processing.get("workers"),
        retry_max_attempts=retry.get("max_attempts"),
        retry_base_delay=retry.get("base_delay"),
        retry_max_delay=retry.get("max_delay"),
        retry_jitter=retry.get("jitter"),
        http_timeout=http.get("timeout_seconds"),
        kms_endpoint=http.get("kms_endpoint"),
        storage_endpoint=http.get("storage_endpoint"),
        access_token=auth.get("access_token"),
        gcloud_path=auth.get("gcloud_path"),
        token_refresh_seconds=auth.get("token_refresh_seconds"),
        logging_level=logging_conf.get("level"),
        logging_file=log_file,
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from environment variables.

    DEVSHELL_PROJECT_ID (set by Cloud Shell) is honored when
    KMSBULK_PROJECT_ID is not set.

    Args:
        reader: EnvReader instance for reading environment variables.

    Returns:
        ConfigSource with values from environment variables.
    """
    return ConfigSource(
        project=reader.get_first_str("KMSBULK_PROJECT_ID", "DEVSHELL_PROJECT_ID"),
        location=reader.get_str("KMSBULK_LOCATION"),
        keyring=reader.get_str("KMSBULK_KEYRING"),
        key=reader.get_str("KMSBULK_CRYPTOKEY"),
        bucket=reader.get_str("KMSBULK_BUCKET"),
        prefix=reader.get_str("KMSBULK_PREFIX"),
        suffix=reader.get_str("KMSBULK_SUFFIX"),
        cleanup_after_upload=reader.get_bool("KMSBULK_CLEANUP"),
        workers=reader.get_int("KMSBULK_WORKERS"),
        retry_max_attempts=reader.get_int("KMSBULK_RETRY_ATTEMPTS"),
        http_timeout=reader.get_float("KMSBULK_HTTP_TIMEOUT"),
        access_token=reader.get_str("KMSBULK_ACCESS_TOKEN"),
        gcloud_path=reader.get_str("KMSBULK_GCLOUD_PATH"),
    )
