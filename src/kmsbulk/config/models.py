"""Configuration data models.

This module defines dataclasses for kmsbulk configuration options.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

DEFAULT_KMS_ENDPOINT = "https://cloudkms.googleapis.com"
DEFAULT_STORAGE_ENDPOINT = "https://storage.googleapis.com"
DEFAULT_SUFFIX = ".encrypted"


@dataclass
class KeyConfig:
    """Identifies the Cloud KMS crypto key used for encryption.

    Any field may be unset at load time; validate_config() reports the
    missing ones before a run starts.
    """

    project: str | None = None
    location: str = "global"
    keyring: str | None = None
    key: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.location or "/" in self.location:
            raise ValueError(
                f"location must be a single path segment, got {self.location!r}"
            )

    @property
    def is_complete(self) -> bool:
        """True when project, keyring and key are all set."""
        return bool(self.project and self.keyring and self.key)


@dataclass
class StorageConfig:
    """Destination bucket for ciphertext artifacts."""

    bucket: str | None = None

    # Object name prefix. None means "use the scanned directory's name".
    prefix: str | None = None


@dataclass
class EncryptionConfig:
    """Configuration for artifact naming and local cleanup."""

    suffix: str = DEFAULT_SUFFIX
    """Appended to a file's path to name its ciphertext artifact."""

    cleanup_after_upload: bool = False
    """Remove local artifacts once they have been uploaded."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.suffix or "/" in self.suffix:
            raise ValueError(
                f"suffix must be a non-empty file suffix, got {self.suffix!r}"
            )


@dataclass
class ProcessingConfig:
    """Configuration for batch processing behavior."""

    workers: int = 1
    """Number of parallel workers (1 = sequential)."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")


@dataclass
class RetryConfig:
    """Retry policy for encrypt and upload calls.

    max_attempts = 1 disables retries.
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be at least 1, got {self.max_attempts}"
            )
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must not be negative")
        if not 0 <= self.jitter <= 1:
            raise ValueError(f"jitter must be between 0 and 1, got {self.jitter}")


@dataclass
class HttpConfig:
    """Configuration for HTTP calls to the cloud APIs."""

    timeout_seconds: float = 30.0
    kms_endpoint: str = DEFAULT_KMS_ENDPOINT
    storage_endpoint: str = DEFAULT_STORAGE_ENDPOINT

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 1 <= self.timeout_seconds <= 300:
            raise ValueError("timeout_seconds must be between 1 and 300 seconds")
        for endpoint in (self.kms_endpoint, self.storage_endpoint):
            if not endpoint.startswith(("http://", "https://")):
                raise ValueError(
                    f"endpoint must start with http:// or https://: {endpoint}"
                )


@dataclass
class AuthConfig:
    """Configuration for obtaining bearer tokens."""

    # Fixed token to use instead of asking gcloud (never written to disk)
    access_token: str | None = None

    # gcloud executable used to print application-default access tokens
    gcloud_path: str = "gcloud"

    # Cached tokens are refreshed after this many seconds
    token_refresh_seconds: int = 1800

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.token_refresh_seconds < 1:
            raise ValueError("token_refresh_seconds must be at least 1")


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )

    def with_overrides(
        self,
        *,
        level: str | None = None,
        file: Path | None = None,
        format: str | None = None,
    ) -> LoggingConfig:
        """Apply the --log-level, --log-file and --log-json choices.

        None keeps the configured value.

        Raises:
            ValueError: If an override is not a valid level or format.
        """
        changes: dict[str, object] = {}
        if level is not None:
            changes["level"] = level
        if file is not None:
            changes["file"] = file
        if format is not None:
            changes["format"] = format
        return replace(self, **changes)


@dataclass
class KmsBulkConfig:
    """Main configuration container for kmsbulk.

    Aggregates all configuration sections.
    """

    key: KeyConfig = field(default_factory=KeyConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    encryption: EncryptionConfig = field(default_factory=EncryptionConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
