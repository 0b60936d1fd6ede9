"""Core data models for the messenger service."""

from .chat import (
    Conversation,
    Message,
    MessageType,
    Participant,
    ReadReceipt,
    participant_key,
)
from .events import InboundEvent, OutboundEvent
from .tracing import TraceEvent
from .users import User

__all__ = [
    # Users
    "User",
    # Chat
    "Conversation",
    "Participant",
    "Message",
    "MessageType",
    "ReadReceipt",
    "participant_key",
    # Events
    "InboundEvent",
    "OutboundEvent",
    # Tracing
    "TraceEvent",
]
