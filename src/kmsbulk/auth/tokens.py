"""Bearer token providers for Google Cloud APIs.

kmsbulk never stores or mints credentials itself. A TokenProvider hands out
bearer tokens on demand and can be told to drop a token the service
rejected.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - runs the gcloud CLI
import threading
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from kmsbulk.config.models import AuthConfig

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Raised when no bearer token can be obtained."""


@runtime_checkable
class TokenProvider(Protocol):
    """Source of bearer tokens for API calls."""

    def get_token(self) -> str:
        """Return a bearer token.

        Raises:
            TokenError: If no token can be obtained.
        """
        ...

    def invalidate(self) -> None:
        """Forget any cached token so the next get_token() fetches a new one."""
        ...


class StaticTokenProvider:
    """Provider for a token supplied up front (e.g., KMSBULK_ACCESS_TOKEN)."""

    def __init__(self, token: str) -> None:
        if not token or not token.strip():
            raise TokenError("Access token is empty")
        self._token = token.strip()

    def get_token(self) -> str:
        return self._token

    def invalidate(self) -> None:
        # A fixed token cannot be refreshed
        logger.debug("Ignoring invalidate() for a static access token")


class GcloudTokenProvider:
    """Prints application-default access tokens with the gcloud CLI.

    Runs `gcloud auth application-default print-access-token` on every call;
    wrap it in CachingTokenProvider to avoid a subprocess per request.
    """

    def __init__(self, gcloud_path: str = "gcloud", timeout: int = 60) -> None:
        self._gcloud_path = gcloud_path
        self._timeout = timeout

    def get_token(self) -> str:
        args = [
            self._gcloud_path,
            "auth",
            "application-default",
            "print-access-token",
        ]
        started = time.monotonic()
        try:
            result = subprocess.run(  # nosec B603 - fixed argument list
                args,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self._timeout,
            )
        except FileNotFoundError as e:
            raise TokenError(
                f"gcloud CLI not found at {self._gcloud_path!r}. "
                "Install the Google Cloud SDK or set an access token."
            ) from e
        except subprocess.TimeoutExpired as e:
            raise TokenError(f"gcloud timed out after {self._timeout}s") from e
        logger.debug(
            "gcloud print-access-token exited %d in %.2fs",
            result.returncode,
            time.monotonic() - started,
        )

        stderr = result.stderr or ""
        if result.returncode != 0:
            detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
            raise TokenError(
                f"gcloud exited with status {result.returncode}"
                + (f": {detail}" if detail else "")
            )

        token = (result.stdout or "").strip()
        if not token:
            raise TokenError("gcloud printed an empty access token")
        return token

    def invalidate(self) -> None:
        # Nothing cached here
        pass


class CachingTokenProvider:
    """Caches tokens from another provider for a fixed period.

    Thread-safe: concurrent workers share one token and at most one refresh
    happens at a time.
    """

    def __init__(
        self,
        inner: TokenProvider,
        refresh_seconds: float = 1800,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inner = inner
        self._refresh_seconds = refresh_seconds
        self._clock = clock
        self._token: str | None = None
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def get_token(self) -> str:
        with self._lock:
            now = self._clock()
            if self._token is None or now - self._fetched_at >= self._refresh_seconds:
                if self._token is not None:
                    logger.debug("Refreshing access token")
                self._token = self._inner.get_token()
                self._fetched_at = now
            return self._token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
        self._inner.invalidate()


def build_token_provider(config: AuthConfig) -> TokenProvider:
    """Create the token provider described by the [auth] section.

    A configured access token wins; otherwise tokens come from gcloud and
    are cached for token_refresh_seconds.
    """
    if config.access_token:
        return StaticTokenProvider(config.access_token)
    return CachingTokenProvider(
        GcloudTokenProvider(config.gcloud_path),
        refresh_seconds=config.token_refresh_seconds,
    )
