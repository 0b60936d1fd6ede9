"""Presence module."""

from .broadcaster import PresenceBroadcaster
from .debounce import DebouncedTask
from .registry import PresenceRegistry

__all__ = ["DebouncedTask", "PresenceBroadcaster", "PresenceRegistry"]
