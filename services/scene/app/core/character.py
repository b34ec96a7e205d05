import uuid

from pydantic import BaseModel, Field

from services.shared.events.event_schema import JoinPayload
from services.shared.presence.models import ParticipantId, Rotation, Vector3


def _origin() -> Vector3:
    return Vector3(x=0.0, y=0.0, z=0.0)


class LocalCharacter(BaseModel):
    """The participant controlled by this client, with its cached pose."""
    id: ParticipantId = Field(default_factory=lambda: str(uuid.uuid4()))
    username: str = ""
    position: Vector3 = Field(default_factory=_origin)
    rotation: Rotation = Field(default_factory=_origin)

    def join_payload(self) -> JoinPayload:
        return JoinPayload(
            id=self.id,
            username=self.username,
            position=self.position.model_copy(),
            rotation=self.rotation.model_copy(),
        )
