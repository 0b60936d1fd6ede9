"""Live connections and room fan-out."""

from .connection import Connection, FrameSender, Identity
from .hub import (
    IRoomHub,
    RoomHub,
    conversation_room,
    normalize_conversation_id,
    user_room,
)

__all__ = [
    "Connection",
    "FrameSender",
    "IRoomHub",
    "Identity",
    "RoomHub",
    "conversation_room",
    "normalize_conversation_id",
    "user_room",
]
