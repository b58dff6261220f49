"""Fixtures for CLI integration tests.

Commands run through click's CliRunner against the in-memory KMS and
storage fakes; nothing talks to Google Cloud.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

COMMAND_MODULES = (
    "kmsbulk.cli.check",
    "kmsbulk.cli.encrypt",
    "kmsbulk.cli.encrypt_file",
)


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep the CLI from replacing the root logger's handlers."""
    with patch("kmsbulk.cli._configure_logging"):
        yield


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cloud_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Key, bucket and a static token supplied through the environment."""
    monkeypatch.setenv("KMSBULK_PROJECT_ID", "my-project")
    monkeypatch.setenv("KMSBULK_KEYRING", "test")
    monkeypatch.setenv("KMSBULK_CRYPTOKEY", "qwiklab")
    monkeypatch.setenv("KMSBULK_BUCKET", "my-project-enron_corpus")
    monkeypatch.setenv("KMSBULK_ACCESS_TOKEN", "ya29.test")
    monkeypatch.setenv("KMSBULK_RETRY_ATTEMPTS", "1")


@pytest.fixture
def services(fake_kms, fake_storage):
    """Route every command's clients to the fakes."""
    patchers = [
        patch(f"{module}.build_clients", return_value=(fake_kms, fake_storage))
        for module in COMMAND_MODULES
    ]
    for patcher in patchers:
        patcher.start()
    yield fake_kms, fake_storage
    for patcher in reversed(patchers):
        patcher.stop()


@pytest.fixture
def corpus(tmp_path: Path, make_tree) -> Path:
    """A small mailbox tree: two messages and an empty file."""
    return make_tree(
        tmp_path / "allen-p",
        {
            "inbox/1.": b"Message-ID: <1>\r\nSubject: one\r\n",
            "sent/2.": b"Message-ID: <2>\r\nSubject: two\r\n",
            "notes/empty": b"",
        },
    )
