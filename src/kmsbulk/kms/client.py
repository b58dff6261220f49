"""Cloud KMS REST client.

Wraps the cryptoKeys encrypt, decrypt and get calls of the Cloud KMS v1 API.
Request and response bodies go through pydantic models; transport failures
and error statuses are translated into KmsError subclasses so callers can
tell retryable problems from permanent ones.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from kmsbulk.auth.tokens import TokenError, TokenProvider
from kmsbulk.config.models import DEFAULT_KMS_ENDPOINT
from kmsbulk.core.http import bearer_headers, extract_error_message
from kmsbulk.kms.models import (
    CryptoKeyInfo,
    CryptoKeyName,
    DecryptRequest,
    DecryptResponse,
    EncryptRequest,
    EncryptResponse,
)

logger = logging.getLogger(__name__)


class KmsError(Exception):
    """Raised when a Cloud KMS call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class KmsAuthError(KmsError):
    """Raised when the bearer token is rejected (401).

    The client invalidates the token before raising, so a retry uses a
    fresh one.
    """


class KmsTransientError(KmsError):
    """Raised for network failures, timeouts, throttling and 5xx answers."""


def is_retryable_kms_error(error: Exception) -> bool:
    """Whether a failed KMS call is worth another attempt."""
    return isinstance(error, (KmsTransientError, KmsAuthError))


class KmsClient:
    """HTTP client for the Cloud KMS v1 API."""

    def __init__(
        self,
        token_provider: TokenProvider,
        endpoint: str = DEFAULT_KMS_ENDPOINT,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            token_provider: Source of bearer tokens.
            endpoint: API base URL.
            timeout: Per-request timeout in seconds.
        """
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

    def _headers(self) -> dict[str, str]:
        try:
            token = self._token_provider.get_token()
        except TokenError as e:
            raise KmsError(f"Cannot obtain access token: {e}") from e
        return bearer_headers(token)

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> KmsClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _check_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        message = extract_error_message(response)
        if status == 401:
            self._token_provider.invalidate()
            raise KmsAuthError(f"Access token rejected: {message}", status)
        if status == 403:
            raise KmsError(f"Permission denied: {message}", status)
        if status == 404:
            raise KmsError(f"Key not found: {message}", status)
        if status == 429 or status >= 500:
            raise KmsTransientError(f"Service unavailable: {message}", status)
        raise KmsError(f"Request rejected: {message}", status)

    def _request(
        self, method: str, path: str, body: BaseModel | None = None
    ) -> dict[str, Any]:
        client = self._get_client()
        kwargs: dict[str, Any] = {"headers": self._headers()}
        if body is not None:
            kwargs["json"] = body.model_dump(exclude_none=True)
        try:
            response = client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise KmsTransientError(f"Request timed out: {e}") from e
        except httpx.TransportError as e:
            raise KmsTransientError(f"Cannot connect to Cloud KMS: {e}") from e

        self._check_status(response)
        try:
            data = response.json()
        except ValueError as e:
            raise KmsError("Malformed response: body is not JSON") from e
        if not isinstance(data, dict):
            raise KmsError("Malformed response: expected a JSON object")
        return data

    def encrypt(self, key: CryptoKeyName, plaintext: str) -> str:
        """Encrypt a base64 payload.

        Args:
            key: Crypto key to encrypt with.
            plaintext: Base64 encoded plaintext.

        Returns:
            Base64 ciphertext.

        Raises:
            KmsError: On any failure, including an empty ciphertext field.
        """
        try:
            request = EncryptRequest(plaintext=plaintext)
        except ValidationError as e:
            raise KmsError(f"Invalid encrypt request: {e.errors()[0]['msg']}") from e

        data = self._request("POST", f"/v1/{key.resource_name}:encrypt", request)
        try:
            result = EncryptResponse.model_validate(data)
        except ValidationError as e:
            raise KmsError(f"Malformed encrypt response: {e}") from e
        if not result.ciphertext:
            raise KmsError("Encrypt response contained no ciphertext")
        return result.ciphertext

    def decrypt(self, key: CryptoKeyName, ciphertext: str) -> str:
        """Decrypt a base64 ciphertext.

        Args:
            key: Crypto key the ciphertext was produced with.
            ciphertext: Base64 ciphertext as returned by encrypt().

        Returns:
            Base64 encoded plaintext.

        Raises:
            KmsError: On any failure.
        """
        try:
            request = DecryptRequest(ciphertext=ciphertext)
        except ValidationError as e:
            raise KmsError(f"Invalid decrypt request: {e.errors()[0]['msg']}") from e

        data = self._request("POST", f"/v1/{key.resource_name}:decrypt", request)
        try:
            result = DecryptResponse.model_validate(data)
        except ValidationError as e:
            raise KmsError(f"Malformed decrypt response: {e}") from e
        return result.plaintext

    def get_crypto_key(self, key: CryptoKeyName) -> CryptoKeyInfo:
        """Fetch the crypto key resource.

        Raises:
            KmsError: If the key is missing or not readable.
        """
        data = self._request("GET", f"/v1/{key.resource_name}")
        try:
            return CryptoKeyInfo.model_validate(data)
        except ValidationError as e:
            raise KmsError(f"Malformed crypto key response: {e}") from e
