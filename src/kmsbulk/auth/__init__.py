"""Bearer token providers."""

from kmsbulk.auth.tokens import (
    CachingTokenProvider,
    GcloudTokenProvider,
    StaticTokenProvider,
    TokenError,
    TokenProvider,
    build_token_provider,
)

__all__ = [
    "CachingTokenProvider",
    "GcloudTokenProvider",
    "StaticTokenProvider",
    "TokenError",
    "TokenProvider",
    "build_token_provider",
]
