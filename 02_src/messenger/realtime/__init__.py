"""Real-time chat module."""

from .auth import ConnectionAuthenticator, extract_bearer_token
from .dispatcher import MessageDispatcher
from .friendship_cache import FriendshipCache
from .gateway import ChatGateway, ChatSession
from .rooms import ConversationRoomManager
from .signaling import TypingSignaling

__all__ = [
    "ChatGateway",
    "ChatSession",
    "ConnectionAuthenticator",
    "ConversationRoomManager",
    "FriendshipCache",
    "MessageDispatcher",
    "TypingSignaling",
    "extract_bearer_token",
]
