"""Exception types raised across tailcast.

Dependencies: (none, leaf module)
Wired in: config.py, engine.py, tail/watcher.py, cli.py
"""

from __future__ import annotations


class TailcastError(Exception):
    """Base class for tailcast failures."""


class WatchSetupError(TailcastError):
    """Raised when the file watch cannot be registered at startup."""


class ConfigError(TailcastError, ValueError):
    """Raised for invalid configuration values."""
