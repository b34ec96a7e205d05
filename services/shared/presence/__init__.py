"""
Presence registry shared by the relay server and the scene clients.
"""

from .errors import RegistryError, RegistryResult
from .models import ParticipantRecord, Quaternion, Vector3
from .registry import PresenceRegistry

__all__ = [
    "ParticipantRecord",
    "PresenceRegistry",
    "Quaternion",
    "RegistryError",
    "RegistryResult",
    "Vector3",
]
