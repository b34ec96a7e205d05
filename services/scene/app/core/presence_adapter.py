import inspect
import logging
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from services.shared.events.event_schema import (
    EventType,
    PingPayload,
    PositionPayload,
    RotationPayload,
    decode_event,
    encode_event,
)
from services.shared.presence.errors import RegistryError
from services.shared.presence.models import (
    ParticipantRecord,
    Rotation,
    Vector3,
)
from services.shared.presence.registry import PresenceRegistry

from .character import LocalCharacter
from .lifecycle import ConnectionLifecycle

logger = logging.getLogger(__name__)

# Host reaction to accepted events; may return an awaitable
PresenceListener = Callable[[EventType, BaseModel], Any]

_rotation_adapter: TypeAdapter = TypeAdapter(Rotation)


class PresenceAdapter:
    """Client side of the presence protocol.

    Announces the local character, forwards its movement, and mirrors every
    known participant, itself included, in a local registry.
    """

    def __init__(
        self,
        character: LocalCharacter,
        lifecycle: ConnectionLifecycle,
        registry: Optional[PresenceRegistry] = None,
        listener: Optional[PresenceListener] = None
    ):
        self.character = character
        self.lifecycle = lifecycle
        self.registry = (
            registry if registry is not None else PresenceRegistry()
        )
        self.listener = listener

        lifecycle.on_connected(self._on_connect)
        lifecycle.on(EventType.CHARACTER_JOIN.value, self._on_character_join)
        lifecycle.on(EventType.CHARACTER_PART.value, self._on_character_part)
        lifecycle.on(
            EventType.CHARACTER_POSITION.value, self._on_character_position
        )
        lifecycle.on(
            EventType.CHARACTER_ROTATION.value, self._on_character_rotation
        )

    def participants(self) -> List[ParticipantRecord]:
        """Snapshot of the local mirror."""
        return self.registry.list()

    async def move(self, position: Any) -> bool:
        """Apply a local movement and forward it to the relay."""
        try:
            position = Vector3.model_validate(position)
        except ValidationError as e:
            logger.error(f"Ignoring invalid local position {position!r}: {e}")
            return False

        self.character.position = position
        self.registry.update_position(self.character.id, position)
        return await self.lifecycle.emit(
            EventType.CHARACTER_POSITION.value,
            encode_event(
                PositionPayload(id=self.character.id, position=position)
            ),
        )

    async def rotate(self, rotation: Any) -> bool:
        """Apply a local view rotation and forward it to the relay."""
        try:
            rotation = _rotation_adapter.validate_python(rotation)
        except ValidationError as e:
            logger.error(f"Ignoring invalid local rotation {rotation!r}: {e}")
            return False

        self.character.rotation = rotation
        self.registry.update_rotation(self.character.id, rotation)
        return await self.lifecycle.emit(
            EventType.CHARACTER_ROTATION.value,
            encode_event(
                RotationPayload(id=self.character.id, rotation=rotation)
            ),
        )

    async def ping(self) -> bool:
        return await self.lifecycle.emit(
            EventType.CHARACTER_PING.value,
            encode_event(PingPayload(id=self.character.id)),
        )

    async def request_introductions(self) -> bool:
        """Ask the relay to resend everyone's join events."""
        return await self.lifecycle.emit(EventType.INTRODUCE.value)

    async def announce(self) -> bool:
        """Rebuild the mirror around ourselves and emit our join event."""
        payload = self.character.join_payload()
        self.registry.clear()
        self.registry.join(payload)
        return await self.lifecycle.emit(
            EventType.CHARACTER_JOIN.value, encode_event(payload)
        )

    async def _on_connect(self) -> None:
        # The relay keeps no identity across transport drops
        await self.announce()

    async def _on_character_join(self, data: Any = None) -> None:
        payload, error = decode_event(EventType.CHARACTER_JOIN, data)
        if error is None:
            _, error = self.registry.join(payload)
        await self._settle(EventType.CHARACTER_JOIN, payload, error, data)

    async def _on_character_part(self, data: Any = None) -> None:
        payload, error = decode_event(EventType.CHARACTER_PART, data)
        if error is None and payload.id == self.character.id:
            logger.warning("Relay dropped our presence, announcing again")
            await self.announce()
            return
        if error is None:
            _, error = self.registry.part(payload.id)
        await self._settle(EventType.CHARACTER_PART, payload, error, data)

    async def _on_character_position(self, data: Any = None) -> None:
        payload, error = decode_event(EventType.CHARACTER_POSITION, data)
        if error is None:
            _, error = self.registry.update_position(
                payload.id, payload.position
            )
        await self._settle(EventType.CHARACTER_POSITION, payload, error, data)

    async def _on_character_rotation(self, data: Any = None) -> None:
        payload, error = decode_event(EventType.CHARACTER_ROTATION, data)
        if error is None:
            _, error = self.registry.update_rotation(
                payload.id, payload.rotation
            )
        await self._settle(EventType.CHARACTER_ROTATION, payload, error, data)

    async def _settle(
        self,
        event_type: EventType,
        payload: Optional[BaseModel],
        error: Optional[RegistryError],
        data: Any
    ) -> None:
        if error is not None:
            logger.warning(f"{event_type.value} rejected ({error.value}): {data!r}")
            return

        logger.info(f"{event_type.value} accepted: {data!r}")
        if self.listener is None:
            return
        try:
            result = self.listener(event_type, payload)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Presence listener failed on {event_type.value}: {e}")
