"""
Shared package for the presence relay.

This package contains the presence registry, the protocol event schema and
the utilities used by both the relay server and the scene clients.
"""

from .utils.retry import BackoffPolicy, with_retry

__all__ = ["BackoffPolicy", "with_retry"]
