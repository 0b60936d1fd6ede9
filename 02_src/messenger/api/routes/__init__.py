"""API routes."""

from . import chat, friends, observability, realtime

__all__ = ["chat", "friends", "observability", "realtime"]
