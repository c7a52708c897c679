"""Optional shared-key check for subscribers and the health endpoint.

Auth is off unless ``TAILCAST_API_KEY`` is set. Clients then present the key
in the ``X-API-Key`` header of the HTTP request or WebSocket handshake.
"""

from __future__ import annotations

import os
import secrets

from fastapi import HTTPException, Request, WebSocket, status

API_KEY_HEADER = "X-API-Key"
API_KEY_ENV = "TAILCAST_API_KEY"


def get_api_key() -> str | None:
    """Return the configured key, or None when auth is disabled."""
    return os.getenv(API_KEY_ENV) or None


def key_accepted(provided: str) -> bool:
    """Return True if *provided* matches the configured key, or no key is configured."""
    expected = get_api_key()
    if expected is None:
        return True
    return bool(provided) and secrets.compare_digest(provided, expected)


def verify_api_key(request: Request) -> None:
    """FastAPI dependency rejecting requests without the configured key."""
    if not key_accepted(request.headers.get(API_KEY_HEADER, "")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )


async def verify_ws_api_key(websocket: WebSocket) -> bool:
    """Return True if the WebSocket handshake carries an accepted key."""
    return key_accepted(websocket.headers.get(API_KEY_HEADER, ""))
