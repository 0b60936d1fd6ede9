"""Conversation room membership."""

import uuid

from ..errors import (
    AuthenticationRequired,
    ChatError,
    ConversationNotFound,
    FriendshipRequired,
    InvalidPayload,
    Unauthorized,
)
from ..logging_config import get_logger
from ..models import OutboundEvent
from ..storage import IStorage
from ..transport import (
    Connection,
    IRoomHub,
    conversation_room,
    normalize_conversation_id,
    user_room,
)

logger = get_logger(__name__)


def parse_conversation_id(value) -> str:
    """Normalize a client-supplied conversation id, rejecting malformed ones."""
    if value is None or value == "":
        raise InvalidPayload("Invalid conversationId")
    try:
        return str(uuid.UUID(str(value)))
    except ValueError as e:
        raise InvalidPayload("Invalid conversationId") from e


class ConversationRoomManager:
    """Authorizes and tracks connections' membership in conversation rooms."""

    def __init__(self, storage: IStorage, hub: IRoomHub):
        self._storage = storage
        self._hub = hub

    async def join_user(self, connection: Connection, user_id) -> None:
        """Legacy path: join a personal room by id."""
        if not user_id:
            return
        user_id = str(user_id)
        self._hub.join(connection, user_room(user_id))
        await connection.emit(OutboundEvent.JOINED_USER_ROOM, {"userId": user_id})

    async def join_conversation(self, connection: Connection, data) -> None:
        """Join a conversation room after participant and friendship checks."""
        try:
            conversation_id = await self._authorize(connection, data)
        except ChatError as e:
            await connection.emit(OutboundEvent.ERROR, {"error": e.message})
            return
        except Exception as e:
            logger.error(
                "Error joining conversation: %s",
                e,
                exc_info=True,
                extra={"context": {"connection_id": connection.id}},
            )
            await connection.emit(
                OutboundEvent.ERROR, {"error": "Failed to join conversation"}
            )
            return

        self._hub.join(connection, conversation_room(conversation_id))
        await connection.emit(
            OutboundEvent.JOINED_CONVERSATION, {"conversationId": conversation_id}
        )

    async def _authorize(self, connection: Connection, data) -> str:
        if not connection.is_authenticated:
            raise AuthenticationRequired()

        payload = data if isinstance(data, dict) else {}
        conversation_id = parse_conversation_id(payload.get("conversationId"))

        conversation = await self._storage.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFound()

        user_id = connection.user_id
        if not conversation.has_participant(user_id):
            raise Unauthorized()

        # Friendship is re-checked live: removal revokes access at once.
        other_id = conversation.other_participant(user_id)
        if other_id and not await self._storage.are_friends(user_id, other_id):
            raise FriendshipRequired("You must be friends to join this conversation")

        return conversation_id

    async def leave_conversation(self, connection: Connection, data) -> None:
        """Leave a conversation room. Always allowed."""
        payload = data if isinstance(data, dict) else {}
        raw_id = payload.get("conversationId")
        conversation_id = normalize_conversation_id(raw_id) if raw_id else None
        if conversation_id:
            self._hub.leave(connection, conversation_room(conversation_id))
        await connection.emit(
            OutboundEvent.LEFT_CONVERSATION, {"conversationId": conversation_id}
        )
