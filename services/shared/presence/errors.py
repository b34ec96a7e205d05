# Registry operations report failures as values, never as exceptions.
from enum import Enum
from typing import NamedTuple, Optional


class RegistryError(str, Enum):
    """Recoverable, local failures of a registry operation."""
    DUPLICATE_PARTICIPANT = "DuplicateParticipant"
    UNKNOWN_PARTICIPANT = "UnknownParticipant"
    INVALID_PAYLOAD = "InvalidPayload"


class RegistryResult(NamedTuple):
    """Outcome of a registry operation, unpacks as ``success, error``."""
    success: bool
    error: Optional[RegistryError] = None


OK = RegistryResult(True, None)


def failure(error: RegistryError) -> RegistryResult:
    return RegistryResult(False, error)
