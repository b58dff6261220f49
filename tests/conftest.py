"""Shared test fixtures for kmsbulk."""

import base64
import os
import shutil
import tempfile
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from kmsbulk.config.loader import clear_config_cache
from kmsbulk.kms.client import KmsError, KmsTransientError
from kmsbulk.kms.models import CryptoKeyInfo, CryptoKeyName
from kmsbulk.storage.client import (
    BucketInfo,
    ObjectInfo,
    StorageError,
    StorageTransientError,
)
from kmsbulk.storage.destination import Destination

CIPHER_MARKER = b"ct:"


class FakeKms:
    """In-memory stand-in for KmsClient.

    The "ciphertext" is base64(b"ct:" + plaintext bytes), so decrypting it
    is reversible and artifacts look like real base64.
    """

    def __init__(
        self,
        fail_for: set[bytes] | None = None,
        transient_failures: int = 0,
        empty_ciphertext: bool = False,
    ) -> None:
        self.fail_for = fail_for or set()
        self.transient_failures = transient_failures
        self.empty_ciphertext = empty_ciphertext
        self.encrypt_calls: list[bytes] = []
        self.decrypt_calls = 0
        self.closed = False
        self._lock = threading.Lock()

    def encrypt(self, key: CryptoKeyName, plaintext: str) -> str:
        raw = base64.b64decode(plaintext)
        with self._lock:
            self.encrypt_calls.append(raw)
            if self.transient_failures > 0:
                self.transient_failures -= 1
                raise KmsTransientError("Service unavailable: HTTP 503", 503)
        if raw in self.fail_for:
            raise KmsError("Permission denied: PERMISSION_DENIED (HTTP 403)", 403)
        if self.empty_ciphertext:
            raise KmsError("Encrypt response contained no ciphertext")
        return base64.b64encode(CIPHER_MARKER + raw).decode("ascii")

    def decrypt(self, key: CryptoKeyName, ciphertext: str) -> str:
        with self._lock:
            self.decrypt_calls += 1
        raw = base64.b64decode(ciphertext)
        if not raw.startswith(CIPHER_MARKER):
            raise KmsError("Request rejected: INVALID_ARGUMENT (HTTP 400)", 400)
        return base64.b64encode(raw[len(CIPHER_MARKER) :]).decode("ascii")

    def get_crypto_key(self, key: CryptoKeyName) -> CryptoKeyInfo:
        return CryptoKeyInfo(name=key.resource_name, purpose="ENCRYPT_DECRYPT")

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeKms":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class FakeStorage:
    """In-memory stand-in for GcsClient."""

    def __init__(
        self,
        fail_for: set[str] | None = None,
        transient_failures: int = 0,
        missing_buckets: set[str] | None = None,
    ) -> None:
        self.fail_for = fail_for or set()
        self.transient_failures = transient_failures
        self.missing_buckets = missing_buckets or set()
        self.objects: dict[tuple[str, str], bytes] = {}
        self.upload_attempts = 0
        self.closed = False
        self._lock = threading.Lock()

    def upload(
        self,
        bucket: str,
        object_name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> ObjectInfo:
        with self._lock:
            self.upload_attempts += 1
            if self.transient_failures > 0:
                self.transient_failures -= 1
                raise StorageTransientError("Service unavailable: HTTP 503", 503)
        if any(object_name.endswith(name) for name in self.fail_for):
            raise StorageError("Permission denied: HTTP 403", 403)
        with self._lock:
            self.objects[(bucket, object_name)] = data
        return ObjectInfo(bucket=bucket, name=object_name, size=len(data))

    def get_bucket(self, bucket: str) -> BucketInfo:
        if bucket in self.missing_buckets:
            raise StorageError("Bucket not found: HTTP 404", 404)
        return BucketInfo(name=bucket, location="US")

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeStorage":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_env(temp_dir: Path):
    """Run every test against an empty kmsbulk data directory.

    KMSBULK_* variables (and Cloud Shell's DEVSHELL_PROJECT_ID) from the
    developer's shell are removed so they cannot leak into configuration.
    """
    data_dir = temp_dir / ".kmsbulk"
    data_dir.mkdir(parents=True, exist_ok=True)

    env = {
        name: value
        for name, value in os.environ.items()
        if not name.startswith("KMSBULK_") and name != "DEVSHELL_PROJECT_ID"
    }
    env["KMSBULK_DATA_DIR"] = str(data_dir)

    clear_config_cache()
    with patch.dict(os.environ, env, clear=True):
        yield data_dir
    clear_config_cache()


@pytest.fixture
def crypto_key() -> CryptoKeyName:
    """The key used throughout the tests."""
    return CryptoKeyName("my-project", "global", "test", "qwiklab")


@pytest.fixture
def destination() -> Destination:
    """Destination bucket without an explicit prefix."""
    return Destination("my-project-enron_corpus")


@pytest.fixture
def fake_kms() -> FakeKms:
    """KMS fake that encrypts everything."""
    return FakeKms()


@pytest.fixture
def fake_storage() -> FakeStorage:
    """Storage fake that accepts every upload."""
    return FakeStorage()


@pytest.fixture
def fake_kms_factory():
    """Build FakeKms instances with custom failure behavior."""
    return FakeKms


@pytest.fixture
def fake_storage_factory():
    """Build FakeStorage instances with custom failure behavior."""
    return FakeStorage


@pytest.fixture
def make_tree():
    """Create files from a {relative path: bytes} mapping under a root."""

    def _make_tree(root: Path, files: dict[str, bytes]) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        return root

    return _make_tree
