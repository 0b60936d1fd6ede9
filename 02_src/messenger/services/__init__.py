"""Services module."""

from .conversations import ConversationService

__all__ = ["ConversationService"]
