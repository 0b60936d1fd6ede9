"""A single live client connection."""

from dataclasses import dataclass
from typing import Awaitable, Callable

from ..logging_config import get_logger
from ..models import OutboundEvent

logger = get_logger(__name__)


FrameSender = Callable[[dict], Awaitable[None]]


@dataclass(frozen=True)
class Identity:
    """Verified identity attached to a connection at handshake time."""

    user_id: str
    email: str
    name: str
    profile_picture: str | None = None

    def to_payload(self) -> dict:
        return {
            "id": self.user_id,
            "email": self.email,
            "name": self.name,
            "profilePicture": self.profile_picture,
        }


class Connection:
    """Transport-agnostic handle for one bidirectional client channel."""

    def __init__(self, connection_id: str, send: FrameSender):
        self.id = connection_id
        self._send = send
        self._identity: Identity | None = None
        self.rooms: set[str] = set()
        self.closed = False

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def user_id(self) -> str | None:
        return self._identity.user_id if self._identity else None

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def attach_identity(self, identity: Identity) -> None:
        """Bind the verified identity. Allowed once per connection."""
        if self._identity is not None:
            raise RuntimeError(f"Connection {self.id} is already authenticated")
        self._identity = identity

    async def emit(self, event: OutboundEvent | str, data: dict | None = None) -> None:
        """Send one event frame. Sending to a closed connection is a no-op."""
        name = event.value if isinstance(event, OutboundEvent) else event
        await self._deliver({"event": name, "data": data or {}})

    async def acknowledge(self, ack_id, result: dict) -> None:
        """Answer an inbound frame that carried an ack id."""
        await self._deliver(
            {"event": OutboundEvent.ACK.value, "ack": ack_id, "data": result}
        )

    async def _deliver(self, frame: dict) -> None:
        if self.closed:
            return
        try:
            await self._send(frame)
        except Exception as e:
            # The transport already went away; the disconnect path cleans up.
            self.closed = True
            logger.debug("Dropping frame for closed connection %s: %s", self.id, e)
