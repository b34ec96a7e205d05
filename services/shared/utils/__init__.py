"""
Shared utilities module containing common functionality for the relay and
scene services.
"""

from .logging_config import setup_logging
from .retry import BackoffPolicy, with_retry
from .throttle import Throttle

__all__ = ["BackoffPolicy", "Throttle", "setup_logging", "with_retry"]
