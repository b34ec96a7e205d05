"""
In-memory presence registry.

The registry is the single owner of every participant record. Callers get
copies or ``RegistryResult`` values back, never a live record. All calls are
expected to come from one asyncio loop, so the table is not locked.
"""
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import OK, RegistryError, RegistryResult, failure
from .models import ParticipantRecord, Rotation, Vector3

_rotation_adapter: TypeAdapter = TypeAdapter(Rotation)


class PresenceRegistry:
    """Table of the participants currently present in the shared space."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize an empty registry.

        Args:
            clock: Source of ``last_seen`` timestamps, in seconds
        """
        self.clock = clock
        self._records: Dict[str, ParticipantRecord] = {}

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def join(self, record: Any) -> RegistryResult:
        """Register a participant with ``id, username, position, rotation``."""
        if isinstance(record, BaseModel):
            record = record.model_dump()
        if not isinstance(record, Mapping):
            return failure(RegistryError.INVALID_PAYLOAD)

        fields = {
            key: value for key, value in record.items()
            if key not in ("last_seen", "lastSeen")
        }
        try:
            candidate = ParticipantRecord.model_validate(
                {**fields, "last_seen": self.clock()}
            )
        except ValidationError:
            return failure(RegistryError.INVALID_PAYLOAD)

        if candidate.id in self._records:
            return failure(RegistryError.DUPLICATE_PARTICIPANT)

        self._records[candidate.id] = candidate
        return OK

    def part(self, participant_id: str) -> RegistryResult:
        """Remove a participant."""
        if self._records.pop(participant_id, None) is None:
            return failure(RegistryError.UNKNOWN_PARTICIPANT)
        return OK

    def update_position(self, participant_id: str,
                        position: Any) -> RegistryResult:
        """Overwrite a participant's position and refresh its liveness."""
        record = self._records.get(participant_id)
        if record is None:
            return failure(RegistryError.UNKNOWN_PARTICIPANT)
        try:
            record.position = Vector3.model_validate(position).model_copy()
        except ValidationError:
            return failure(RegistryError.INVALID_PAYLOAD)
        self._touch(record)
        return OK

    def update_rotation(self, participant_id: str,
                        rotation: Any) -> RegistryResult:
        """Overwrite a participant's rotation and refresh its liveness."""
        record = self._records.get(participant_id)
        if record is None:
            return failure(RegistryError.UNKNOWN_PARTICIPANT)
        try:
            record.rotation = _rotation_adapter.validate_python(
                rotation).model_copy()
        except ValidationError:
            return failure(RegistryError.INVALID_PAYLOAD)
        self._touch(record)
        return OK

    def record_ping(self, participant_id: str) -> RegistryResult:
        """Refresh a participant's liveness without touching its pose."""
        record = self._records.get(participant_id)
        if record is None:
            return failure(RegistryError.UNKNOWN_PARTICIPANT)
        self._touch(record)
        return OK

    def get(self, participant_id: str) -> Optional[ParticipantRecord]:
        """Get a copy of one record, or None if absent."""
        record = self._records.get(participant_id)
        return record.model_copy(deep=True) if record else None

    def list(self) -> List[ParticipantRecord]:
        """Snapshot of all records, in join order."""
        return [
            record.model_copy(deep=True) for record in self._records.values()
        ]

    def expire_older_than(self, threshold: float) -> List[ParticipantRecord]:
        """Remove and return every record last seen before ``threshold``."""
        stale = [
            participant_id
            for participant_id, record in self._records.items()
            if record.last_seen < threshold
        ]
        return [self._records.pop(participant_id) for participant_id in stale]

    def clear(self) -> None:
        self._records.clear()

    def _touch(self, record: ParticipantRecord) -> None:
        # last_seen never moves backwards, even if the clock does
        record.last_seen = max(record.last_seen, self.clock())
