"""Room-based fan-out of events to live connections."""

import asyncio
import uuid
from typing import Protocol

from ..logging_config import get_logger
from ..models import OutboundEvent
from .connection import Connection

logger = get_logger(__name__)


def user_room(user_id: str) -> str:
    """Personal room of a user."""
    return f"user:{user_id}"


def normalize_conversation_id(value) -> str:
    """Canonical spelling of a conversation id.

    UUIDs come back lowercase and dashed whatever form the client sent;
    anything else is returned as a plain string.
    """
    text = str(value)
    try:
        return str(uuid.UUID(text))
    except ValueError:
        return text


def conversation_room(conversation_id: str) -> str:
    """Broadcast room of a conversation."""
    return f"conversation:{normalize_conversation_id(conversation_id)}"


class IRoomHub(Protocol):
    """Registry of live connections and the rooms they belong to."""

    def register(self, connection: Connection) -> None:
        """Track a newly opened connection."""
        ...

    def unregister(self, connection: Connection) -> None:
        """Forget a connection and remove it from every room."""
        ...

    def join(self, connection: Connection, room: str) -> None:
        """Add a connection to a room."""
        ...

    def leave(self, connection: Connection, room: str) -> None:
        """Remove a connection from a room."""
        ...

    async def emit_to_room(
        self,
        room: str,
        event: OutboundEvent,
        data: dict,
        exclude: Connection | None = None,
    ) -> None:
        """Send an event to every connection in a room."""
        ...

    async def emit_to_all(
        self, event: OutboundEvent, data: dict, exclude: Connection | None = None
    ) -> None:
        """Send an event to every live connection."""
        ...


class RoomHub:
    """In-memory room membership with concurrent delivery."""

    def __init__(self):
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[str, set[str]] = {}

    def register(self, connection: Connection) -> None:
        """Track a newly opened connection."""
        self._connections[connection.id] = connection

    def unregister(self, connection: Connection) -> None:
        """Forget a connection and remove it from every room."""
        for room in list(connection.rooms):
            self.leave(connection, room)
        self._connections.pop(connection.id, None)

    def join(self, connection: Connection, room: str) -> None:
        """Add a connection to a room."""
        self._rooms.setdefault(room, set()).add(connection.id)
        connection.rooms.add(room)

    def leave(self, connection: Connection, room: str) -> None:
        """Remove a connection from a room. Leaving an unjoined room is a no-op."""
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection.id)
            if not members:
                del self._rooms[room]
        connection.rooms.discard(room)

    def members(self, room: str) -> list[Connection]:
        """Connections currently in a room."""
        return [
            self._connections[cid]
            for cid in self._rooms.get(room, ())
            if cid in self._connections
        ]

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    async def emit_to_room(
        self,
        room: str,
        event: OutboundEvent,
        data: dict,
        exclude: Connection | None = None,
    ) -> None:
        """Send an event to every connection in a room."""
        await self._deliver(self.members(room), event, data, exclude)

    async def emit_to_all(
        self, event: OutboundEvent, data: dict, exclude: Connection | None = None
    ) -> None:
        """Send an event to every live connection."""
        await self._deliver(self.connections, event, data, exclude)

    async def _deliver(
        self,
        targets: list[Connection],
        event: OutboundEvent,
        data: dict,
        exclude: Connection | None,
    ) -> None:
        targets = [c for c in targets if exclude is None or c.id != exclude.id]
        if not targets:
            return

        results = await asyncio.gather(
            *[connection.emit(event, data) for connection in targets],
            return_exceptions=True,
        )

        for connection, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.error(
                    "Error delivering %s to %s: %s", event.value, connection.id, result
                )
