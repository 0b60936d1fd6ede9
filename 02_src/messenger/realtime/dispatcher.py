"""Message sending and read receipts."""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable

from ..errors import (
    AuthenticationRequired,
    ChatError,
    ConversationNotFound,
    FriendshipRequired,
    InvalidPayload,
    PersistenceFailure,
    Unauthorized,
)
from ..logging_config import get_logger
from ..models import Conversation, Message, MessageType, OutboundEvent
from ..storage import IStorage
from ..tracker import ITracker
from ..transport import (
    Connection,
    IRoomHub,
    conversation_room,
    normalize_conversation_id,
    user_room,
)
from .friendship_cache import FriendshipCache
from .payloads import message_payload

logger = get_logger(__name__)


Ack = Callable[[dict], Awaitable[None]]


class MessageDispatcher:
    """Validates, persists and fans out chat messages."""

    def __init__(self, storage: IStorage, hub: IRoomHub, tracker: ITracker):
        self._storage = storage
        self._hub = hub
        self._tracker = tracker

    async def send_message(
        self,
        connection: Connection,
        data,
        ack: Ack | None = None,
        cache: FriendshipCache | None = None,
    ) -> None:
        """Handle ``sendMessage``. Never raises."""
        try:
            payload = await self._dispatch(connection, data, cache)
        except ChatError as e:
            await self._reject(connection, ack, e.message)
            return
        except Exception as e:
            logger.error(
                "Error sending message: %s",
                e,
                exc_info=True,
                extra={"context": {"connection_id": connection.id}},
            )
            await self._reject(connection, ack, PersistenceFailure.default_message)
            return

        if ack is not None:
            await ack({"success": True, "message": payload})

    async def _dispatch(
        self, connection: Connection, data, cache: FriendshipCache | None
    ) -> dict:
        # 1. identity
        if not connection.is_authenticated:
            raise AuthenticationRequired()

        # 2. payload
        payload = data if isinstance(data, dict) else {}
        conversation_id = payload.get("conversationId")
        sender_id = payload.get("senderId")
        if not conversation_id or not sender_id:
            raise InvalidPayload()
        conversation_id = normalize_conversation_id(conversation_id)
        sender_id = str(sender_id)

        content = payload.get("content")
        if not isinstance(content, str) or not content.strip():
            raise InvalidPayload()
        try:
            message_type = MessageType(payload.get("messageType") or "text")
        except ValueError as e:
            raise InvalidPayload() from e

        # 3. conversation
        conversation = await self._storage.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFound()

        # 4. participant
        if (
            not conversation.has_participant(sender_id)
            or sender_id != connection.user_id
        ):
            raise Unauthorized("Unauthorized to send message in this conversation")

        # 5. friendship
        other_id = conversation.other_participant(sender_id)
        if other_id and not await self._are_friends(sender_id, other_id, cache):
            raise FriendshipRequired()

        message = await self._persist(
            conversation,
            sender_id,
            content.strip(),
            message_type,
            payload.get("media"),
        )

        sender = await self._storage.get_user(sender_id)
        outbound = message_payload(message, sender)

        await self._hub.emit_to_room(
            conversation_room(conversation.id), OutboundEvent.NEW_MESSAGE, outbound
        )
        for participant_id in conversation.participant_ids:
            if participant_id != sender_id:
                await self._hub.emit_to_room(
                    user_room(participant_id),
                    OutboundEvent.NEW_MESSAGE_NOTIFICATION,
                    {"conversationId": conversation.id, "message": outbound},
                )

        await self._tracker.track(
            "message_sent",
            "message_dispatcher",
            {"conversation_id": conversation.id, "message_id": message.id},
        )
        return outbound

    async def _are_friends(
        self, user_a: str, user_b: str, cache: FriendshipCache | None
    ) -> bool:
        if cache is not None:
            cached = cache.get(user_a, user_b)
            if cached is not None:
                return cached

        status = await self._storage.are_friends(user_a, user_b)
        if cache is not None:
            cache.put(user_a, user_b, status)
        return status

    async def _persist(
        self,
        conversation: Conversation,
        sender_id: str,
        content: str,
        message_type: MessageType,
        media_id,
    ) -> Message:
        """Save the message and move the conversation's last-message pointer."""
        now = datetime.now(timezone.utc)
        message = Message(
            id=str(uuid.uuid4()),
            conversation_id=conversation.id,
            sender_id=sender_id,
            content=content,
            created_at=now,
            message_type=message_type,
            media_id=str(media_id) if media_id else None,
            updated_at=now,
        )

        saved, touched = await asyncio.gather(
            self._storage.save_message(message),
            self._storage.touch_conversation(conversation.id, message.id, now),
            return_exceptions=True,
        )
        message_saved = not isinstance(saved, Exception)
        conversation_updated = not isinstance(touched, Exception)

        if message_saved and conversation_updated:
            return message

        context = {
            "conversation_id": conversation.id,
            "message_id": message.id,
            "message_saved": message_saved,
            "conversation_updated": conversation_updated,
        }
        error = touched if message_saved else saved
        if message_saved or conversation_updated:
            logger.error(
                "Partial message send, needs reconciliation: %s",
                error,
                extra={"context": context},
            )
            await self._tracker.track(
                "message_send_partial_failure", "message_dispatcher", context
            )
        else:
            logger.error("Message send failed: %s", error, extra={"context": context})
        raise PersistenceFailure() from error

    async def _reject(self, connection: Connection, ack: Ack | None, error: str) -> None:
        await connection.emit(OutboundEvent.MESSAGE_ERROR, {"error": error})
        if ack is not None:
            await ack({"success": False, "error": error})

    async def mark_as_read(self, connection: Connection, data) -> None:
        """Handle ``markAsRead``: record the receipt and tell the room."""
        if not connection.is_authenticated:
            await connection.emit(
                OutboundEvent.MESSAGE_ERROR,
                {"error": AuthenticationRequired.default_message},
            )
            return

        payload = data if isinstance(data, dict) else {}
        message_id = payload.get("messageId")
        if not message_id:
            return
        message_id = str(message_id)
        conversation_id = payload.get("conversationId")

        try:
            await self._storage.mark_read(
                message_id, connection.user_id, datetime.now(timezone.utc)
            )
        except Exception as e:
            logger.error("Error marking message %s read: %s", message_id, e, exc_info=True)
            await connection.emit(
                OutboundEvent.MESSAGE_ERROR, {"error": "Failed to mark message as read"}
            )
            return

        if conversation_id:
            await self._hub.emit_to_room(
                conversation_room(str(conversation_id)),
                OutboundEvent.MESSAGE_READ,
                {"messageId": message_id, "userId": connection.user_id},
                exclude=connection,
            )
