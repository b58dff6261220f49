"""Unit tests for the Cloud Storage client."""

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import httpx
import pytest

from kmsbulk.auth.tokens import StaticTokenProvider
from kmsbulk.storage.client import (
    GcsClient,
    StorageAuthError,
    StorageError,
    StorageTransientError,
    is_retryable_storage_error,
)


class RecordingTokens:
    """Token provider that counts invalidations."""

    def __init__(self) -> None:
        self.invalidated = 0

    def get_token(self) -> str:
        return "ya29.test"

    def invalidate(self) -> None:
        self.invalidated += 1


@pytest.fixture
def http() -> Iterator[MagicMock]:
    """Patch httpx.Client and yield the mock instance."""
    with patch("kmsbulk.storage.client.httpx.Client") as mock_client_class:
        mock_http_client = MagicMock()
        mock_client_class.return_value = mock_http_client
        yield mock_http_client


@pytest.fixture
def tokens() -> RecordingTokens:
    return RecordingTokens()


@pytest.fixture
def client(tokens: RecordingTokens) -> GcsClient:
    return GcsClient(tokens, "https://storage.example.test")


class TestUpload:
    """Tests for GcsClient.upload."""

    def test_media_upload(self, client: GcsClient, http: MagicMock) -> None:
        """Should POST the bytes as a media upload."""
        http.request.return_value = httpx.Response(
            200,
            json={
                "bucket": "b-1",
                "name": "allen-p/inbox/1..encrypted",
                "size": "5",
                "generation": "1700000000",
            },
        )

        info = client.upload(
            "b-1", "allen-p/inbox/1..encrypted", b"Y3Q=\n", "text/plain"
        )

        assert info.name == "allen-p/inbox/1..encrypted"
        assert info.size == 5
        http.request.assert_called_once_with(
            "POST",
            "/upload/storage/v1/b/b-1/o",
            headers={"Content-Type": "text/plain", "Authorization": "Bearer ya29.test"},
            params={"uploadType": "media", "name": "allen-p/inbox/1..encrypted"},
            content=b"Y3Q=\n",
        )

    def test_unauthorized(
        self, client: GcsClient, http: MagicMock, tokens: RecordingTokens
    ) -> None:
        """401 invalidates the token and is retryable."""
        http.request.return_value = httpx.Response(401, json={"error": "expired"})
        with pytest.raises(StorageAuthError) as exc_info:
            client.upload("b-1", "x", b"data")
        assert tokens.invalidated == 1
        assert is_retryable_storage_error(exc_info.value)

    def test_forbidden_is_permanent(self, client: GcsClient, http: MagicMock) -> None:
        """403 is not retryable."""
        http.request.return_value = httpx.Response(403, json={})
        with pytest.raises(StorageError, match="Permission denied: HTTP 403") as exc:
            client.upload("b-1", "x", b"data")
        assert not is_retryable_storage_error(exc.value)

    @pytest.mark.parametrize("status", [429, 502])
    def test_transient_status(
        self, client: GcsClient, http: MagicMock, status: int
    ) -> None:
        """Throttling and server errors are transient."""
        http.request.return_value = httpx.Response(status)
        with pytest.raises(StorageTransientError):
            client.upload("b-1", "x", b"data")

    def test_connect_error(self, client: GcsClient, http: MagicMock) -> None:
        """Connection failures are transient."""
        http.request.side_effect = httpx.ConnectError("refused")
        with pytest.raises(StorageTransientError, match="Cannot connect"):
            client.upload("b-1", "x", b"data")


class TestGetBucket:
    """Tests for GcsClient.get_bucket."""

    def test_success(self, client: GcsClient, http: MagicMock) -> None:
        """Should GET the bucket resource."""
        http.request.return_value = httpx.Response(
            200, json={"name": "b-1", "location": "US", "storageClass": "STANDARD"}
        )
        info = client.get_bucket("b-1")
        assert info.location == "US"
        assert info.storage_class == "STANDARD"
        assert http.request.call_args.args == ("GET", "/storage/v1/b/b-1")

    def test_missing_bucket(self, client: GcsClient, http: MagicMock) -> None:
        """404 reports a missing bucket."""
        http.request.return_value = httpx.Response(
            404, json={"error": {"message": "The specified bucket does not exist."}}
        )
        with pytest.raises(StorageError, match="Bucket not found"):
            client.get_bucket("b-1")

    def test_close(self, http: MagicMock) -> None:
        """The context manager closes the HTTP client."""
        with GcsClient(StaticTokenProvider("t")) as client:
            client._get_client()
        http.close.assert_called_once()
