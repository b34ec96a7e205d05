"""
Scene Client Package

This package provides the client side of the presence protocol: the
connection lifecycle, the local presence mirror and liveness pings.
"""

from .app.core.lifecycle import ConnectionLifecycle, ConnectionStatus
from .app.core.presence_adapter import PresenceAdapter

__all__ = ["ConnectionLifecycle", "ConnectionStatus", "PresenceAdapter"]
