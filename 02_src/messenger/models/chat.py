"""Conversation and message data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class MessageType(str, Enum):
    """Kinds of chat message content."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"


@dataclass
class Participant:
    """One side of a one-on-one conversation."""

    user_id: str
    joined_at: datetime
    last_read: datetime


@dataclass
class Conversation:
    """A one-on-one conversation between two friends."""

    id: str
    participants: list[Participant]
    created_by: str
    created_at: datetime
    updated_at: datetime
    last_message_id: str | None = None
    last_message_at: datetime | None = None
    is_active: bool = True
    deactivated_at: datetime | None = None
    deactivated_reason: str | None = None

    @property
    def participant_ids(self) -> list[str]:
        return [p.user_id for p in self.participants]

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participant_ids

    def other_participant(self, user_id: str) -> str | None:
        """Return the participant that is not ``user_id``."""
        for participant_id in self.participant_ids:
            if participant_id != user_id:
                return participant_id
        return None


@dataclass
class ReadReceipt:
    """A reader and the moment they first read a message."""

    user_id: str
    read_at: datetime


@dataclass
class Message:
    """A single chat message."""

    id: str
    conversation_id: str
    sender_id: str
    content: str
    created_at: datetime
    message_type: MessageType = MessageType.TEXT
    media_id: str | None = None
    is_edited: bool = False
    edited_at: datetime | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None
    read_by: list[ReadReceipt] = field(default_factory=list)
    updated_at: datetime | None = None


def participant_key(user_a: str, user_b: str) -> str:
    """Order-independent key for a pair of users."""
    return ":".join(sorted((user_a, user_b)))
