"""
Protocol events exchanged between the relay server and scene clients.

Every event name maps to exactly one payload schema. Inbound payloads are
decoded at the boundary with :func:`decode_event`, so malformed data is
rejected as ``InvalidPayload`` before it reaches a registry.
"""
import logging
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Type

from pydantic import BaseModel, ValidationError

from services.shared.presence.errors import RegistryError
from services.shared.presence.models import ParticipantId, Rotation, Vector3

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Socket.IO event names of the presence protocol."""
    CHARACTER_JOIN = "character-join"
    CHARACTER_PART = "character-part"
    CHARACTER_POSITION = "character-position"
    CHARACTER_ROTATION = "character-rotation"
    CHARACTER_PING = "character-ping"
    INTRODUCE = "introduce"


class JoinPayload(BaseModel):
    """Announces a participant's presence."""
    id: ParticipantId
    username: str = ""
    position: Vector3
    rotation: Rotation


class PartPayload(BaseModel):
    """Announces a participant's departure."""
    id: ParticipantId


class PositionPayload(BaseModel):
    id: ParticipantId
    position: Vector3


class RotationPayload(BaseModel):
    id: ParticipantId
    rotation: Rotation


class PingPayload(BaseModel):
    """Liveness refresh, never relayed."""
    id: ParticipantId


class IntroducePayload(BaseModel):
    """Roster resend request. Carries no data."""


PAYLOAD_SCHEMAS: Dict[EventType, Type[BaseModel]] = {
    EventType.CHARACTER_JOIN: JoinPayload,
    EventType.CHARACTER_PART: PartPayload,
    EventType.CHARACTER_POSITION: PositionPayload,
    EventType.CHARACTER_ROTATION: RotationPayload,
    EventType.CHARACTER_PING: PingPayload,
    EventType.INTRODUCE: IntroducePayload,
}


class DecodeResult(NamedTuple):
    """Outcome of decoding a payload, unpacks as ``payload, error``."""
    payload: Optional[BaseModel]
    error: Optional[RegistryError] = None


def decode_event(event_type: EventType, data: Any) -> DecodeResult:
    """Validate a raw payload against the schema of ``event_type``.

    Args:
        event_type: Name of the event the payload arrived with
        data: Raw payload, usually the dict delivered by Socket.IO

    Returns:
        ``DecodeResult(payload, None)`` on success, otherwise
        ``DecodeResult(None, RegistryError.INVALID_PAYLOAD)``
    """
    event_type = EventType(event_type)
    schema = PAYLOAD_SCHEMAS[event_type]
    if data is None and schema is IntroducePayload:
        data = {}
    try:
        return DecodeResult(schema.model_validate(data), None)
    except ValidationError as e:
        logger.debug(f"Invalid {event_type.value} payload {data!r}: {e}")
        return DecodeResult(None, RegistryError.INVALID_PAYLOAD)


def encode_event(payload: BaseModel) -> Dict[str, Any]:
    """Serialize a payload for emission over the wire."""
    return payload.model_dump(mode="json")
