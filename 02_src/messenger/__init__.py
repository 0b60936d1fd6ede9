"""Messenger: real-time chat core of the social network backend."""

from .app import Application, IApplication
from .errors import (
    AuthenticationRequired,
    ChatError,
    ConversationNotFound,
    FriendshipRequired,
    InvalidCredential,
    InvalidPayload,
    PersistenceFailure,
    Unauthorized,
    UserNotFound,
)
from .models import (
    Conversation,
    InboundEvent,
    Message,
    MessageType,
    OutboundEvent,
    Participant,
    ReadReceipt,
    TraceEvent,
    User,
)
from .presence import DebouncedTask, PresenceBroadcaster, PresenceRegistry
from .realtime import (
    ChatGateway,
    ChatSession,
    ConnectionAuthenticator,
    ConversationRoomManager,
    FriendshipCache,
    MessageDispatcher,
    TypingSignaling,
)
from .services import ConversationService
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .transport import Connection, Identity, IRoomHub, RoomHub

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Errors
    "ChatError",
    "AuthenticationRequired",
    "InvalidCredential",
    "UserNotFound",
    "InvalidPayload",
    "ConversationNotFound",
    "Unauthorized",
    "FriendshipRequired",
    "PersistenceFailure",
    # Models
    "User",
    "Conversation",
    "Participant",
    "Message",
    "MessageType",
    "ReadReceipt",
    "InboundEvent",
    "OutboundEvent",
    "TraceEvent",
    # Components
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "Connection",
    "Identity",
    "IRoomHub",
    "RoomHub",
    "PresenceRegistry",
    "PresenceBroadcaster",
    "DebouncedTask",
    "ConnectionAuthenticator",
    "ConversationRoomManager",
    "MessageDispatcher",
    "FriendshipCache",
    "TypingSignaling",
    "ChatGateway",
    "ChatSession",
    "ConversationService",
]
