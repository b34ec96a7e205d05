from .event_schema import (
    DecodeResult,
    EventType,
    IntroducePayload,
    JoinPayload,
    PartPayload,
    PingPayload,
    PositionPayload,
    RotationPayload,
    decode_event,
    encode_event,
)

__all__ = [
    "DecodeResult",
    "EventType",
    "IntroducePayload",
    "JoinPayload",
    "PartPayload",
    "PingPayload",
    "PositionPayload",
    "RotationPayload",
    "decode_event",
    "encode_event",
]
