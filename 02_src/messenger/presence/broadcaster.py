"""Presence lifecycle: registration on connect/disconnect and fan-out."""

from ..logging_config import get_logger
from ..models import OutboundEvent
from ..transport import Connection, IRoomHub
from .debounce import DebouncedTask
from .registry import PresenceRegistry

logger = get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.1


class PresenceBroadcaster:
    """Keeps PresenceRegistry in step with connections and tells clients about it.

    Transitions (``userOnline``/``userOffline``) go out immediately; the full
    ``onlineUsersList`` is debounced so reload storms collapse into one frame.
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        hub: IRoomHub,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self._registry = registry
        self._hub = hub
        self._list_broadcast = DebouncedTask(
            self.broadcast_online_users, debounce_seconds
        )

    async def user_connected(self, connection: Connection) -> None:
        """Register an authenticated connection and announce it."""
        identity = connection.identity
        if identity is None:
            raise RuntimeError("Presence requires an authenticated connection")

        user_id = identity.user_id
        came_online = self._registry.add(user_id, connection.id)
        online = self._registry.online_user_ids()

        await connection.emit(
            OutboundEvent.AUTHENTICATED,
            {
                "message": "Authentication successful",
                "user": identity.to_payload(),
                "onlineUserIds": online,
            },
        )
        await connection.emit(OutboundEvent.ONLINE_USERS_LIST, {"userIds": online})
        for other_id in online:
            if other_id != user_id:
                await connection.emit(OutboundEvent.USER_ONLINE, {"userId": other_id})

        if came_online:
            logger.info("User %s is online", user_id)
            await self._hub.emit_to_all(
                OutboundEvent.USER_ONLINE, {"userId": user_id}, exclude=connection
            )

        self._list_broadcast.trigger()

    async def user_disconnected(self, connection: Connection) -> None:
        """Unregister a closed connection; announce the user offline if it was the last."""
        user_id = connection.user_id
        if user_id is None:
            return

        went_offline = self._registry.remove(user_id, connection.id)
        if went_offline:
            logger.info("User %s is offline", user_id)
            await self._hub.emit_to_all(OutboundEvent.USER_OFFLINE, {"userId": user_id})

        self._list_broadcast.trigger()

    async def broadcast_online_users(self) -> None:
        """Send the complete online user id list to everyone."""
        await self._hub.emit_to_all(
            OutboundEvent.ONLINE_USERS_LIST,
            {"userIds": self._registry.online_user_ids()},
        )

    async def close(self) -> None:
        """Cancel any pending list broadcast."""
        await self._list_broadcast.cancel()
