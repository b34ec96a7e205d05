"""
Relay Service Package

This package provides the Socket.IO relay that tracks participant presence
and fans pose changes out to every other connected participant.
"""

from .app.core.relay_server import RelayServer

__all__ = ["RelayServer"]
