"""Pydantic models for WebSocket messages and HTTP responses."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# --- WebSocket models ---


class LinesMessage(BaseModel):
    """A batch of lines, in file order."""

    lines: list[str] = Field(default_factory=list)


class ErrorMessage(BaseModel):
    """Sent instead of a catch-up batch when the file could not be read."""

    error: str


WSOutgoing = LinesMessage | ErrorMessage


# --- REST models ---


class HealthResponse(BaseModel):
    """GET /api/health response."""

    status: Literal["ok", "error"] = "ok"
    version: str
    file: str
    accessible: bool = False
    subscribers: int = 0
    offset: int = 0
