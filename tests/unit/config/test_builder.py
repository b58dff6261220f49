"""Tests for ConfigBuilder module."""

from __future__ import annotations

from pathlib import Path

import pytest

from kmsbulk.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from kmsbulk.config.env import EnvReader
from kmsbulk.config.models import DEFAULT_KMS_ENDPOINT


class TestConfigSource:
    """Tests for ConfigSource dataclass."""

    def test_all_fields_default_to_none(self) -> None:
        """All fields should default to None."""
        source = ConfigSource()
        assert source.project is None
        assert source.workers is None
        assert source.cleanup_after_upload is None


class TestConfigBuilder:
    """Tests for ConfigBuilder class."""

    def test_build_with_no_sources_uses_defaults(self) -> None:
        """Should use default values when no sources applied."""
        config = ConfigBuilder().build()

        assert config.key.project is None
        assert config.key.location == "global"
        assert config.storage.bucket is None
        assert config.encryption.suffix == ".encrypted"
        assert config.encryption.cleanup_after_upload is False
        assert config.processing.workers == 1
        assert config.retry.max_attempts == 3
        assert config.retry.base_delay == 0.5
        assert config.retry.max_delay == 8.0
        assert config.http.timeout_seconds == 30.0
        assert config.http.kms_endpoint == DEFAULT_KMS_ENDPOINT
        assert config.auth.gcloud_path == "gcloud"
        assert config.logging.level == "info"

    def test_none_values_do_not_override(self) -> None:
        """None values in source should not override existing values."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(workers=4))
        builder.apply(ConfigSource(workers=None, bucket="b-123"))

        config = builder.build()

        assert config.processing.workers == 4
        assert config.storage.bucket == "b-123"

    def test_later_sources_override_earlier(self) -> None:
        """Later applied sources should override earlier ones."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(keyring="file-ring"), source_name="file")
        builder.apply(ConfigSource(keyring="cli-ring"), source_name="cli")

        assert builder.build().key.keyring == "cli-ring"
        assert builder.origin("keyring") == "cli"
        assert builder.origin("key") == "default"

    def test_invalid_value_raises_value_error(self) -> None:
        """Section validation surfaces as ValueError."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(workers=0))
        with pytest.raises(ValueError, match="workers"):
            builder.build()


class TestSourceFromFile:
    """Tests for source_from_file."""

    def test_reads_all_sections(self) -> None:
        """Values from every section are picked up."""
        source = source_from_file(
            {
                "key": {"project": "p", "keyring": "r", "key": "k"},
                "storage": {"bucket": "b", "prefix": "allen-p"},
                "encryption": {"suffix": ".enc", "cleanup_after_upload": True},
                "processing": {"workers": 4},
                "retry": {"max_attempts": 5, "base_delay": 1.0},
                "http": {"timeout_seconds": 10},
                "auth": {"gcloud_path": "/opt/gcloud"},
                "logging": {"level": "debug", "file": "~/kms.log"},
            }
        )
        assert source.project == "p"
        assert source.prefix == "allen-p"
        assert source.suffix == ".enc"
        assert source.cleanup_after_upload is True
        assert source.workers == 4
        assert source.retry_max_attempts == 5
        assert source.http_timeout == 10
        assert source.gcloud_path == "/opt/gcloud"
        assert source.logging_level == "debug"
        assert source.logging_file == Path("~/kms.log").expanduser()

    def test_empty_file(self) -> None:
        """An empty file sets nothing."""
        assert source_from_file({}) == ConfigSource()


class TestSourceFromEnv:
    """Tests for source_from_env."""

    def test_reads_variables(self) -> None:
        """KMSBULK_* variables map onto fields."""
        reader = EnvReader(
            env={
                "KMSBULK_PROJECT_ID": "proj",
                "KMSBULK_KEYRING": "test",
                "KMSBULK_CRYPTOKEY": "qwiklab",
                "KMSBULK_BUCKET": "proj-enron_corpus",
                "KMSBULK_CLEANUP": "yes",
                "KMSBULK_WORKERS": "3",
                "KMSBULK_RETRY_ATTEMPTS": "1",
                "KMSBULK_HTTP_TIMEOUT": "12.5",
            }
        )
        source = source_from_env(reader)
        assert source.project == "proj"
        assert source.keyring == "test"
        assert source.key == "qwiklab"
        assert source.bucket == "proj-enron_corpus"
        assert source.cleanup_after_upload is True
        assert source.workers == 3
        assert source.retry_max_attempts == 1
        assert source.http_timeout == 12.5

    def test_devshell_project_fallback(self) -> None:
        """Cloud Shell's DEVSHELL_PROJECT_ID is used when nothing else is."""
        source = source_from_env(EnvReader(env={"DEVSHELL_PROJECT_ID": "shell"}))
        assert source.project == "shell"
