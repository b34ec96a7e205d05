# services/shared/presence/models.py
from typing import Annotated, Any, Union

from pydantic import BaseModel, Discriminator, Field, Tag

# Any finite number is a valid coordinate; there is no range check.
# Strict, so strings and booleans are rejected rather than coerced.
Coordinate = Annotated[float, Field(strict=True, allow_inf_nan=False)]
ParticipantId = Annotated[str, Field(min_length=1)]


class Vector3(BaseModel):
    """A position, or an Euler rotation, in the shared space."""
    x: Coordinate
    y: Coordinate
    z: Coordinate


class Quaternion(Vector3):
    """Rotation encoded as a quaternion."""
    w: Coordinate


def _rotation_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "quaternion" if "w" in value else "euler"
    return "quaternion" if isinstance(value, Quaternion) else "euler"


# A payload carrying ``w`` is a quaternion, anything else is Euler angles.
Rotation = Annotated[
    Union[
        Annotated[Quaternion, Tag("quaternion")],
        Annotated[Vector3, Tag("euler")],
    ],
    Discriminator(_rotation_kind),
]


class ParticipantRecord(BaseModel):
    """A participant currently present in the shared space"""
    id: ParticipantId
    username: str = ""
    position: Vector3
    rotation: Rotation
    last_seen: float = Field(default=0.0, serialization_alias="lastSeen")

    def announcement(self) -> dict:
        """The ``character-join`` payload that introduces this participant."""
        return self.model_dump(mode="json", exclude={"last_seen"})
