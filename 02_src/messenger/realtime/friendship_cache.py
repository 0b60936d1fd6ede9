"""Short-lived cache of friendship checks, one per connection."""

import time
from collections import OrderedDict
from typing import Callable

DEFAULT_TTL_SECONDS = 30.0
DEFAULT_MAX_ENTRIES = 256


class FriendshipCache:
    """Bounded map of unordered user pair -> (are_friends, stored_at)."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[tuple[str, str], tuple[bool, float]] = OrderedDict()

    @staticmethod
    def _key(user_a: str, user_b: str) -> tuple[str, str]:
        return tuple(sorted((user_a, user_b)))

    def get(self, user_a: str, user_b: str) -> bool | None:
        """Cached answer, or None when missing or stale."""
        key = self._key(user_a, user_b)
        entry = self._entries.get(key)
        if entry is None:
            return None
        status, stored_at = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        return status

    def put(self, user_a: str, user_b: str, status: bool) -> None:
        key = self._key(user_a, user_b)
        self._entries[key] = (status, self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
