"""Follow a growing text file and stream its new lines to WebSocket clients."""

__version__ = "0.1.0"
