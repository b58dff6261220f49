"""Integration tests for the check command."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from kmsbulk.auth.tokens import TokenError
from kmsbulk.cli import main

pytestmark = pytest.mark.usefixtures("cloud_env")


class TestCheckCommand:
    """Tests for `kmsbulk check`."""

    def test_all_checks_pass(self, runner: CliRunner, services) -> None:
        """Token, key and bucket are all reported OK."""
        result = runner.invoke(main, ["check"])

        assert result.exit_code == 0, result.output
        assert "[OK] access token" in result.output
        assert "[OK] crypto key" in result.output
        assert "[OK] bucket: gs://my-project-enron_corpus in US" in result.output
        assert "All checks passed." in result.output

    def test_missing_bucket_fails(
        self, runner: CliRunner, services, fake_storage
    ) -> None:
        """An unreachable bucket exits with status 61."""
        fake_storage.missing_buckets = {"my-project-enron_corpus"}

        result = runner.invoke(main, ["check", "--json"])

        assert result.exit_code == 61
        data = json.loads(result.stdout)
        assert data["status"] == "failed"
        bucket = data["checks"][-1]
        assert bucket["name"] == "bucket"
        assert bucket["ok"] is False

    def test_token_failure_exits_auth_unavailable(
        self, runner: CliRunner, services
    ) -> None:
        """No access token exits with status 30 and skips the other checks."""
        with patch(
            "kmsbulk.auth.tokens.StaticTokenProvider.get_token",
            side_effect=TokenError("gcloud is not installed"),
        ):
            result = runner.invoke(main, ["check"])

        assert result.exit_code == 30
        assert "[FAIL] access token: gcloud is not installed" in result.output
        assert "crypto key" not in result.output

    def test_missing_key_settings(
        self, runner: CliRunner, services, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The key must be configured."""
        monkeypatch.delenv("KMSBULK_CRYPTOKEY")
        result = runner.invoke(main, ["check"])
        assert result.exit_code == 11
        assert "Crypto key is not set" in result.output
