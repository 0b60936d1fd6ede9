"""Conversation operations backing the HTTP API."""

from datetime import datetime, timezone

from ..errors import (
    ConversationNotFound,
    FriendshipRequired,
    InvalidPayload,
    Unauthorized,
)
from ..logging_config import get_logger
from ..models import Conversation, OutboundEvent, User
from ..realtime.payloads import conversation_payload, message_payload
from ..storage import IStorage
from ..tracker import ITracker
from ..transport import IRoomHub, user_room

logger = get_logger(__name__)

FRIENDSHIP_REMOVED = "friendship_removed"


class ConversationService:
    """Find-or-create, listing, history and friendship removal."""

    def __init__(self, storage: IStorage, hub: IRoomHub, tracker: ITracker):
        self._storage = storage
        self._hub = hub
        self._tracker = tracker

    async def _describe(self, conversation: Conversation, user_id: str) -> dict:
        other_id = conversation.other_participant(user_id)
        other = await self._storage.get_user(other_id) if other_id else None
        return conversation_payload(conversation, other)

    async def get_or_create(self, user_id: str, other_user_id: str) -> dict:
        """Return the active one-on-one conversation with a friend, creating it lazily."""
        if user_id == other_user_id:
            raise InvalidPayload("Cannot create conversation with yourself")

        if not await self._storage.are_friends(user_id, other_user_id):
            raise FriendshipRequired("You must be friends to start a conversation")

        conversation = await self._storage.get_or_create_conversation(
            user_id, other_user_id
        )
        return await self._describe(conversation, user_id)

    async def list_for_user(self, user_id: str) -> list[dict]:
        conversations = await self._storage.list_conversations(user_id)
        return [await self._describe(c, user_id) for c in conversations]

    async def _load_for_participant(
        self, conversation_id: str, user_id: str
    ) -> Conversation:
        conversation = await self._storage.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFound()
        if not conversation.has_participant(user_id):
            raise Unauthorized()
        return conversation

    async def get_for_user(self, conversation_id: str, user_id: str) -> dict:
        conversation = await self._load_for_participant(conversation_id, user_id)
        return await self._describe(conversation, user_id)

    async def get_messages(
        self, conversation_id: str, user_id: str, page: int = 1, limit: int = 50
    ) -> dict:
        """Page through history, newest page first, each page oldest first.

        Reading a page moves the reader's last-read marker.
        """
        await self._load_for_participant(conversation_id, user_id)

        offset = (page - 1) * limit
        messages = await self._storage.get_messages(
            conversation_id, limit=limit, offset=offset
        )
        total = await self._storage.count_messages(conversation_id)

        senders: dict[str, User | None] = {}
        for message in messages:
            if message.sender_id not in senders:
                senders[message.sender_id] = await self._storage.get_user(
                    message.sender_id
                )

        await self._storage.update_last_read(
            conversation_id, user_id, datetime.now(timezone.utc)
        )

        return {
            "messages": [message_payload(m, senders[m.sender_id]) for m in messages],
            "pagination": {"page": page, "limit": limit, "total": total},
        }

    async def remove_friend(self, user_id: str, friend_id: str) -> int:
        """End a friendship and deactivate the pair's conversations.

        History is kept; the conversations just drop out of listings.
        """
        await self._storage.remove_friendship(user_id, friend_id)
        deactivated = await self._storage.deactivate_conversations(
            user_id, friend_id, FRIENDSHIP_REMOVED
        )

        if deactivated:
            await self._tracker.track(
                "conversations_deactivated",
                "conversation_service",
                {
                    "user_id": user_id,
                    "friend_id": friend_id,
                    "count": deactivated,
                    "reason": FRIENDSHIP_REMOVED,
                },
            )
        logger.info(
            "Friendship removed between %s and %s (%s conversations deactivated)",
            user_id,
            friend_id,
            deactivated,
        )

        await self._hub.emit_to_room(
            user_room(user_id),
            OutboundEvent.FRIEND_REMOVED,
            {"friendId": friend_id, "message": "Friendship has been removed"},
        )
        await self._hub.emit_to_room(
            user_room(friend_id),
            OutboundEvent.FRIEND_REMOVED,
            {"friendId": user_id, "message": "Friendship has been removed"},
        )
        return deactivated
