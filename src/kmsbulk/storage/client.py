"""Cloud Storage JSON API client.

Only the two calls kmsbulk needs: media upload of an object and a bucket
lookup for the configuration check.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kmsbulk.auth.tokens import TokenError, TokenProvider
from kmsbulk.config.models import DEFAULT_STORAGE_ENDPOINT
from kmsbulk.core.http import bearer_headers, extract_error_message

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a Cloud Storage call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class StorageAuthError(StorageError):
    """Raised when the bearer token is rejected (401)."""


class StorageTransientError(StorageError):
    """Raised for network failures, timeouts, throttling and 5xx answers."""


def is_retryable_storage_error(error: Exception) -> bool:
    """Whether a failed storage call is worth another attempt."""
    return isinstance(error, (StorageTransientError, StorageAuthError))


class ObjectInfo(BaseModel):
    """Subset of the object resource returned by an upload."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    bucket: str
    name: str
    size: int | None = None
    generation: str | None = None


class BucketInfo(BaseModel):
    """Subset of the bucket resource used by the configuration check."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: str
    location: str | None = None
    storage_class: str | None = Field(default=None, alias="storageClass")


class GcsClient:
    """HTTP client for the Cloud Storage JSON API."""

    def __init__(
        self,
        token_provider: TokenProvider,
        endpoint: str = DEFAULT_STORAGE_ENDPOINT,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = endpoint.rstrip("/")
        self._token_provider = token_provider
        self._timeout = timeout
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> GcsClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            token = self._token_provider.get_token()
        except TokenError as e:
            raise StorageError(f"Cannot obtain access token: {e}") from e

        headers = {**kwargs.pop("headers", {}), **bearer_headers(token)}
        client = self._get_client()
        try:
            response = client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise StorageTransientError(f"Request timed out: {e}") from e
        except httpx.TransportError as e:
            raise StorageTransientError(
                f"Cannot connect to Cloud Storage: {e}"
            ) from e

        status = response.status_code
        if status >= 400:
            message = extract_error_message(response)
            if status == 401:
                self._token_provider.invalidate()
                raise StorageAuthError(f"Access token rejected: {message}", status)
            if status == 403:
                raise StorageError(f"Permission denied: {message}", status)
            if status == 404:
                raise StorageError(f"Bucket not found: {message}", status)
            if status == 429 or status >= 500:
                raise StorageTransientError(
                    f"Service unavailable: {message}", status
                )
            raise StorageError(f"Request rejected: {message}", status)

        try:
            data = response.json()
        except ValueError as e:
            raise StorageError("Malformed response: body is not JSON") from e
        if not isinstance(data, dict):
            raise StorageError("Malformed response: expected a JSON object")
        return data

    def upload(
        self,
        bucket: str,
        object_name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> ObjectInfo:
        """Upload bytes as a single object (simple media upload).

        Args:
            bucket: Destination bucket.
            object_name: Full object name, slashes allowed.
            data: Object content.
            content_type: Content-Type of the object.

        Returns:
            The created object's metadata.

        Raises:
            StorageError: On any failure.
        """
        logger.debug("Uploading %d bytes to gs://%s/%s", len(data), bucket, object_name)
        payload = self._request(
            "POST",
            f"/upload/storage/v1/b/{bucket}/o",
            params={"uploadType": "media", "name": object_name},
            content=data,
            headers={"Content-Type": content_type},
        )
        try:
            return ObjectInfo.model_validate(payload)
        except ValidationError as e:
            raise StorageError(f"Malformed upload response: {e}") from e

    def get_bucket(self, bucket: str) -> BucketInfo:
        """Fetch bucket metadata.

        Raises:
            StorageError: If the bucket is missing or not readable.
        """
        payload = self._request("GET", f"/storage/v1/b/{bucket}")
        try:
            return BucketInfo.model_validate(payload)
        except ValidationError as e:
            raise StorageError(f"Malformed bucket response: {e}") from e
