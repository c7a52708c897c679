"""WebSocket transport and subscriber fan-out.

Public API: BroadcastHub, Subscriber
Internal: app, auth, cli, hub, models, routes
"""

from tailcast.server.hub import BroadcastHub, Subscriber

__all__ = ["BroadcastHub", "Subscriber"]
