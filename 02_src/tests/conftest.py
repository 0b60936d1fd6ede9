"""Pytest configuration and fixtures."""

import sys
import uuid
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

TEST_SECRET = "test-secret-key-with-enough-length-for-hs256"


class FrameRecorder:
    """Stands in for a socket's send function and keeps every frame."""

    def __init__(self):
        self.frames: list[dict] = []

    async def __call__(self, frame: dict) -> None:
        self.frames.append(frame)

    def events(self) -> list[str]:
        return [f["event"] for f in self.frames]

    def data(self, event: str) -> list[dict]:
        """Payloads of every frame with the given event name."""
        return [f["data"] for f in self.frames if f["event"] == event]

    def clear(self) -> None:
        self.frames.clear()


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from messenger.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest_asyncio.fixture
async def users(storage):
    """Seed three users: alice and bob are friends, carol is nobody's friend."""
    from messenger.models import User

    seeded = {
        "alice": User(id="alice", email="alice@example.com", name="Alice"),
        "bob": User(
            id="bob",
            email="bob@example.com",
            name="Bob",
            profile_picture="https://cdn.example.com/bob.png",
        ),
        "carol": User(id="carol", email="carol@example.com", name="Carol"),
    }
    for user in seeded.values():
        await storage.save_user(user)
    await storage.add_friendship("alice", "bob")
    return seeded


@pytest_asyncio.fixture
async def conversation(storage, users):
    """Active conversation between alice and bob."""
    return await storage.get_or_create_conversation("alice", "bob")


@pytest.fixture
def tracker(storage):
    """Create Tracker with storage."""
    from messenger.tracker import Tracker

    return Tracker(storage)


@pytest.fixture
def hub():
    from messenger.transport import RoomHub

    return RoomHub()


@pytest.fixture
def registry():
    from messenger.presence import PresenceRegistry

    return PresenceRegistry()


@pytest_asyncio.fixture
async def presence(registry, hub):
    from messenger.presence import PresenceBroadcaster

    broadcaster = PresenceBroadcaster(registry, hub, debounce_seconds=0.01)
    yield broadcaster
    await broadcaster.close()


@pytest.fixture
def authenticator(storage):
    from messenger.realtime import ConnectionAuthenticator

    return ConnectionAuthenticator(storage, TEST_SECRET)


@pytest.fixture
def make_connection():
    """Factory for connections whose outbound frames are recorded.

    Returns (connection, recorder). Pass a User to pre-attach its identity.
    """
    from messenger.transport import Connection, Identity

    def factory(user=None):
        recorder = FrameRecorder()
        connection = Connection(str(uuid.uuid4()), recorder)
        if user is not None:
            connection.attach_identity(
                Identity(
                    user_id=user.id,
                    email=user.email,
                    name=user.name,
                    profile_picture=user.profile_picture,
                )
            )
        return connection, recorder

    return factory


@pytest.fixture
def gateway(storage, hub, presence, authenticator, tracker):
    """Fully wired gateway over in-memory components."""
    from messenger.realtime import (
        ChatGateway,
        ConversationRoomManager,
        MessageDispatcher,
        TypingSignaling,
    )

    return ChatGateway(
        hub=hub,
        presence=presence,
        authenticator=authenticator,
        rooms=ConversationRoomManager(storage, hub),
        dispatcher=MessageDispatcher(storage, hub, tracker),
        signaling=TypingSignaling(hub),
    )


@pytest.fixture
def connect(gateway, authenticator):
    """Open an authenticated session for a user through the gateway."""
    from messenger.transport import Connection

    async def _connect(user):
        recorder = FrameRecorder()
        connection = Connection(str(uuid.uuid4()), recorder)
        session = await gateway.connect(
            connection, authenticator.issue_token(user.id, user.email)
        )
        return session, recorder

    return _connect
