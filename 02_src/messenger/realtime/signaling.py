"""Ephemeral typing indicators."""

from ..errors import AuthenticationRequired
from ..models import OutboundEvent
from ..transport import Connection, IRoomHub, conversation_room


class TypingSignaling:
    """Relays typing state to the rest of a conversation room. Nothing is stored."""

    def __init__(self, hub: IRoomHub):
        self._hub = hub

    async def typing(self, connection: Connection, data) -> None:
        if not connection.is_authenticated:
            await connection.emit(
                OutboundEvent.MESSAGE_ERROR,
                {"error": AuthenticationRequired.default_message},
            )
            return

        payload = data if isinstance(data, dict) else {}
        conversation_id = payload.get("conversationId")
        if not conversation_id:
            return

        await self._hub.emit_to_room(
            conversation_room(str(conversation_id)),
            OutboundEvent.USER_TYPING,
            {"userId": payload.get("userId"), "isTyping": payload.get("isTyping")},
            exclude=connection,
        )
