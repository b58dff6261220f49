"""Helpers shared by the Google Cloud REST clients."""

from __future__ import annotations

from typing import Any

import httpx


def bearer_headers(token: str) -> dict[str, str]:
    """Authorization header for a bearer token."""
    return {"Authorization": f"Bearer {token}"}


def extract_error_message(response: httpx.Response) -> str:
    """Pull a readable message out of a Google API error response.

    Google APIs answer errors with {"error": {"code", "message", "status"}}.
    Anything else falls back to the status code.

    Args:
        response: The failed response.

    Returns:
        Message such as "PERMISSION_DENIED: Permission 'x' denied (HTTP 403)".
    """
    status_code = response.status_code
    try:
        payload: Any = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            status = error.get("status")
            if isinstance(message, str) and message:
                if isinstance(status, str) and status:
                    return f"{status}: {message} (HTTP {status_code})"
                return f"{message} (HTTP {status_code})"
        elif isinstance(error, str) and error:
            return f"{error} (HTTP {status_code})"

    return f"HTTP {status_code}"
