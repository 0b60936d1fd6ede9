"""Wire representations of persisted entities."""

from datetime import datetime

from ..models import Conversation, Message, User


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def user_summary(user: User | None, user_id: str) -> dict:
    """Minimal display fields of a user."""
    if user is None:
        return {"id": user_id, "name": None, "email": None, "profilePicture": None}
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "profilePicture": user.profile_picture,
    }


def message_payload(message: Message, sender: User | None = None) -> dict:
    return {
        "id": message.id,
        "conversation": message.conversation_id,
        "sender": user_summary(sender, message.sender_id),
        "content": message.content,
        "messageType": message.message_type.value,
        "media": message.media_id,
        "isEdited": message.is_edited,
        "editedAt": _iso(message.edited_at),
        "isDeleted": message.is_deleted,
        "readBy": [
            {"user": r.user_id, "readAt": _iso(r.read_at)} for r in message.read_by
        ],
        "createdAt": _iso(message.created_at),
        "updatedAt": _iso(message.updated_at),
    }


def conversation_payload(
    conversation: Conversation, other_user: User | None = None
) -> dict:
    return {
        "id": conversation.id,
        "participants": [
            {
                "user": p.user_id,
                "joinedAt": _iso(p.joined_at),
                "lastRead": _iso(p.last_read),
            }
            for p in conversation.participants
        ],
        "createdBy": conversation.created_by,
        "lastMessage": conversation.last_message_id,
        "lastMessageAt": _iso(conversation.last_message_at),
        "isActive": conversation.is_active,
        "createdAt": _iso(conversation.created_at),
        "updatedAt": _iso(conversation.updated_at),
        "otherUser": (
            user_summary(other_user, other_user.id) if other_user else None
        ),
    }
