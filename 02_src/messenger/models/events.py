"""Names of the events carried over the real-time channel."""

from enum import Enum


class InboundEvent(str, Enum):
    """Events a client may send."""

    JOIN_USER = "joinUser"
    JOIN_CONVERSATION = "joinConversation"
    LEAVE_CONVERSATION = "leaveConversation"
    SEND_MESSAGE = "sendMessage"
    MARK_AS_READ = "markAsRead"
    TYPING = "typing"


class OutboundEvent(str, Enum):
    """Events the server emits."""

    AUTHENTICATED = "authenticated"
    ONLINE_USERS_LIST = "onlineUsersList"
    USER_ONLINE = "userOnline"
    USER_OFFLINE = "userOffline"
    JOINED_USER_ROOM = "joinedUserRoom"
    JOINED_CONVERSATION = "joinedConversation"
    LEFT_CONVERSATION = "leftConversation"
    NEW_MESSAGE = "newMessage"
    NEW_MESSAGE_NOTIFICATION = "newMessageNotification"
    MESSAGE_READ = "messageRead"
    USER_TYPING = "userTyping"
    FRIEND_REMOVED = "friendRemoved"
    MESSAGE_ERROR = "messageError"
    ERROR = "error"
    ACK = "ack"
