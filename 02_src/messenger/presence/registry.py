"""In-memory presence registry."""


class PresenceRegistry:
    """Maps user ids to the ids of their live connections.

    A user is online iff they have an entry, and an entry is never left empty.
    """

    def __init__(self):
        self._entries: dict[str, set[str]] = {}

    def add(self, user_id: str, connection_id: str) -> bool:
        """Register a connection. Return True if the user just came online."""
        connections = self._entries.get(user_id)
        came_online = not connections
        if connections is None:
            connections = self._entries[user_id] = set()
        connections.add(connection_id)
        return came_online

    def remove(self, user_id: str, connection_id: str) -> bool:
        """Unregister a connection. Return True if the user just went offline."""
        connections = self._entries.get(user_id)
        if connections is None:
            return False
        connections.discard(connection_id)
        if connections:
            return False
        del self._entries[user_id]
        return True

    def is_online(self, user_id: str) -> bool:
        return user_id in self._entries

    def connections_of(self, user_id: str) -> set[str]:
        return set(self._entries.get(user_id, ()))

    def online_user_ids(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
