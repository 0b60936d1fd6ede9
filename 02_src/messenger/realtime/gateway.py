"""Connection lifecycle and inbound event routing."""

import json
import uuid
from typing import Awaitable, Callable

from fastapi import WebSocket, status

from ..errors import ChatError
from ..logging_config import get_logger
from ..models import InboundEvent, OutboundEvent
from ..presence import PresenceBroadcaster
from ..transport import Connection, IRoomHub, Identity, user_room
from .auth import ConnectionAuthenticator, extract_bearer_token
from .dispatcher import Ack, MessageDispatcher
from .friendship_cache import DEFAULT_TTL_SECONDS, FriendshipCache
from .rooms import ConversationRoomManager
from .signaling import TypingSignaling

logger = get_logger(__name__)


class ChatSession:
    """Handlers bound to one authenticated connection.

    Frames are handled one at a time, so nothing here needs locking.
    """

    def __init__(self, gateway: "ChatGateway", connection: Connection, cache: FriendshipCache):
        self.connection = connection
        self.friendship_cache = cache
        self._handlers: dict[str, Callable[[object, Ack | None], Awaitable[None]]] = {
            InboundEvent.JOIN_USER.value: lambda data, ack: gateway.rooms.join_user(
                connection, data
            ),
            InboundEvent.JOIN_CONVERSATION.value: lambda data, ack: gateway.rooms.join_conversation(
                connection, data
            ),
            InboundEvent.LEAVE_CONVERSATION.value: lambda data, ack: gateway.rooms.leave_conversation(
                connection, data
            ),
            InboundEvent.SEND_MESSAGE.value: lambda data, ack: gateway.dispatcher.send_message(
                connection, data, ack, cache
            ),
            InboundEvent.MARK_AS_READ.value: lambda data, ack: gateway.dispatcher.mark_as_read(
                connection, data
            ),
            InboundEvent.TYPING.value: lambda data, ack: gateway.signaling.typing(
                connection, data
            ),
        }

    async def handle_frame(self, raw: str) -> None:
        """Decode one inbound JSON frame and route it."""
        try:
            frame = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            frame = None
        if not isinstance(frame, dict):
            await self.connection.emit(OutboundEvent.ERROR, {"error": "Invalid frame"})
            return

        ack = None
        ack_id = frame.get("ack")
        if ack_id is not None:

            async def ack(result: dict) -> None:
                await self.connection.acknowledge(ack_id, result)

        await self.handle(frame.get("event"), frame.get("data"), ack)

    async def handle(self, event, data, ack: Ack | None = None) -> None:
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            await self.connection.emit(
                OutboundEvent.ERROR, {"error": f"Unknown event: {event}"}
            )
            return

        try:
            await handler(data, ack)
        except Exception as e:
            logger.error(
                "Unhandled error in %s handler: %s",
                event,
                e,
                exc_info=True,
                extra={"context": {"connection_id": self.connection.id}},
            )
            await self.connection.emit(OutboundEvent.ERROR, {"error": "Request failed"})


class ChatGateway:
    """Entry point for real-time connections."""

    def __init__(
        self,
        hub: IRoomHub,
        presence: PresenceBroadcaster,
        authenticator: ConnectionAuthenticator,
        rooms: ConversationRoomManager,
        dispatcher: MessageDispatcher,
        signaling: TypingSignaling,
        friendship_cache_ttl: float = DEFAULT_TTL_SECONDS,
    ):
        self.hub = hub
        self.presence = presence
        self.authenticator = authenticator
        self.rooms = rooms
        self.dispatcher = dispatcher
        self.signaling = signaling
        self._friendship_cache_ttl = friendship_cache_ttl

    async def connect(self, connection: Connection, token: str | None) -> ChatSession:
        """Authenticate and open a session. Raises ChatError on rejection."""
        identity = await self.authenticator.authenticate(token)
        return await self.open(connection, identity)

    async def open(self, connection: Connection, identity: Identity) -> ChatSession:
        """Attach identity, join the personal room and go online."""
        connection.attach_identity(identity)
        self.hub.register(connection)
        self.hub.join(connection, user_room(identity.user_id))
        await self.presence.user_connected(connection)

        logger.info(
            "User connected: %s",
            identity.email or identity.user_id,
            extra={"context": {"connection_id": connection.id}},
        )
        return ChatSession(
            self, connection, FriendshipCache(ttl=self._friendship_cache_ttl)
        )

    async def close(self, session: ChatSession) -> None:
        """Tear down a session after its transport closed."""
        connection = session.connection
        connection.closed = True
        session.friendship_cache.clear()
        self.hub.unregister(connection)
        await self.presence.user_disconnected(connection)

        logger.info(
            "User disconnected: %s",
            connection.user_id,
            extra={"context": {"connection_id": connection.id}},
        )

    async def serve(self, websocket: WebSocket) -> None:
        """Run one WebSocket connection from handshake to disconnect."""
        token = extract_bearer_token(
            websocket.headers.get("authorization"),
            websocket.query_params.get("token"),
        )

        try:
            identity = await self.authenticator.authenticate(token)
        except ChatError as e:
            logger.warning("Rejected connection: %s", e.message)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
            return
        except Exception as e:
            logger.error("Handshake failed: %s", e, exc_info=True)
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            return

        await websocket.accept()
        connection = Connection(str(uuid.uuid4()), websocket.send_json)
        session = await self.open(connection, identity)

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None and message.get("bytes") is not None:
                    raw = message["bytes"].decode("utf-8", errors="replace")
                await session.handle_frame(raw)
        finally:
            await self.close(session)
