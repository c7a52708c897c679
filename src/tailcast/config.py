"""Tail configuration loading from defaults, TOML, and the environment.

Precedence, lowest first: built-in defaults, the ``[tail]`` table of an
optional TOML file, ``TAILCAST_*`` environment variables, then explicit
overrides (CLI flags).

Dependencies: errors
Wired in: cli.py → main(), server/app.py → create_app()
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import cast

from tailcast.errors import ConfigError


@dataclass(frozen=True)
class TailConfig:
    """Immutable settings for one tail engine and its server."""

    file: Path = Path("logs.txt")
    """File to follow."""

    host: str = "127.0.0.1"
    """Server bind host."""

    port: int = 8080
    """Server bind port."""

    debounce_ms: int = 100
    """Quiet period after the last change notification before reading."""

    catch_up_lines: int = 10
    """Number of trailing lines sent to each new subscriber."""

    chunk_size: int = 1024
    """Chunk size in bytes for backward reads."""

    force_polling: bool = False
    """Poll the file's directory instead of using OS notifications."""

    poll_delay_ms: int = 300
    """Polling interval when ``force_polling`` is set."""

    def __post_init__(self) -> None:
        _require_min("port", self.port, 0)
        if self.port > 65535:
            msg = f"port must be at most 65535, got {self.port}"
            raise ConfigError(msg)
        _require_min("debounce_ms", self.debounce_ms, 0)
        _require_min("catch_up_lines", self.catch_up_lines, 0)
        _require_min("chunk_size", self.chunk_size, 1)
        _require_min("poll_delay_ms", self.poll_delay_ms, 1)


def _require_min(name: str, value: int, minimum: int) -> None:
    if value < minimum:
        msg = f"{name} must be at least {minimum}, got {value}"
        raise ConfigError(msg)


_ENV_VARS: dict[str, str] = {
    "file": "TAILCAST_FILE",
    "host": "TAILCAST_HOST",
    "port": "TAILCAST_PORT",
    "debounce_ms": "TAILCAST_DEBOUNCE_MS",
    "catch_up_lines": "TAILCAST_CATCHUP_LINES",
    "chunk_size": "TAILCAST_CHUNK_SIZE",
    "force_polling": "TAILCAST_FORCE_POLLING",
    "poll_delay_ms": "TAILCAST_POLL_DELAY_MS",
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off", ""})


def _coerce(name: str, raw: object) -> object:
    """Convert a raw TOML/env value to the type of field *name*."""
    if name == "file":
        return Path(str(raw))
    if name == "host":
        return str(raw)
    if name == "force_polling":
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUTHY:
            return True
        if text in _FALSY:
            return False
        msg = f"{name} must be a boolean, got {raw!r}"
        raise ConfigError(msg)
    if isinstance(raw, bool):
        msg = f"{name} must be an integer, got {raw!r}"
        raise ConfigError(msg)
    try:
        return int(str(raw).strip())
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ConfigError(msg) from None


def _read_toml(config_path: Path) -> dict[str, object]:
    """Return the ``[tail]`` table of *config_path*."""
    try:
        with config_path.open("rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {config_path}: {exc}"
        raise ConfigError(msg) from exc

    raw_tail = data.get("tail", {})
    if not isinstance(raw_tail, dict):
        msg = f"{config_path}: 'tail' must be a table."
        raise ConfigError(msg)
    table = cast(dict[str, object], raw_tail)

    known = {f.name for f in fields(TailConfig)}
    unknown = sorted(set(table) - known)
    if unknown:
        msg = f"{config_path}: unknown [tail] keys {unknown}. Valid keys: {sorted(known)}."
        raise ConfigError(msg)

    values = {key: _coerce(key, value) for key, value in table.items()}
    # Relative file paths in a config file are relative to the file itself.
    file_value = values.get("file")
    if isinstance(file_value, Path) and not file_value.is_absolute():
        values["file"] = config_path.parent / file_value
    return values


def load_config(
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
) -> TailConfig:
    """Build a ``TailConfig`` from all configured sources.

    A *config_path* that does not exist is an error; ``None`` skips the file.
    ``None`` values in *overrides* are ignored so unset CLI flags fall through.
    """
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}

    if config_path is not None:
        if not config_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise ConfigError(msg)
        values.update(_read_toml(config_path))

    for name, var in _ENV_VARS.items():
        raw = env.get(var)
        if raw is not None and raw != "":
            values[name] = _coerce(name, raw)

    for name, value in (overrides or {}).items():
        if value is None:
            continue
        if name not in _ENV_VARS:
            msg = f"Unknown config override: {name}"
            raise ConfigError(msg)
        values[name] = _coerce(name, value)

    return replace(TailConfig(), **values)  # type: ignore[arg-type]
