"""Shared test fixtures for tailcast."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from tailcast.config import TailConfig


class FakeSubscriber:
    """Records every message sent to it; optionally fails on send."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[dict[str, Any]] = []

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionError("subscriber is gone")
        self.messages.append(json.loads(data))


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's TAILCAST_* environment out of the tests."""
    for var in (
        "TAILCAST_API_KEY",
        "TAILCAST_FILE",
        "TAILCAST_HOST",
        "TAILCAST_PORT",
        "TAILCAST_DEBOUNCE_MS",
        "TAILCAST_CATCHUP_LINES",
        "TAILCAST_CHUNK_SIZE",
        "TAILCAST_FORCE_POLLING",
        "TAILCAST_POLL_DELAY_MS",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def make_subscriber() -> type[FakeSubscriber]:
    """Factory for recording subscribers."""
    return FakeSubscriber


@pytest.fixture()
def log_file(tmp_path: Path) -> Path:
    """Empty file to follow."""
    path = tmp_path / "logs.txt"
    path.write_bytes(b"")
    return path


@pytest.fixture()
def tail_config(log_file: Path) -> TailConfig:
    """Config following *log_file* with a short debounce and polling watch."""
    return TailConfig(file=log_file, debounce_ms=20, force_polling=True, poll_delay_ms=50)
