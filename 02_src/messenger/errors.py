"""Chat error taxonomy.

Every error carries a short user-visible message. Handlers convert these into
``{"error": message}`` events or acknowledgments; nothing else about the
failure leaves the process.
"""


class ChatError(Exception):
    """Base class for failures reported back to a client."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationRequired(ChatError):
    default_message = "Authentication required"


class InvalidCredential(ChatError):
    default_message = "Invalid token"


class UserNotFound(ChatError):
    default_message = "User not found"


class InvalidPayload(ChatError):
    default_message = "Invalid payload"


class ConversationNotFound(ChatError):
    default_message = "Conversation not found"


class Unauthorized(ChatError):
    default_message = "Unauthorized"


class FriendshipRequired(ChatError):
    default_message = "You must be friends to send messages"


class PersistenceFailure(ChatError):
    default_message = "Failed to send message"
