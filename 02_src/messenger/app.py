"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .config import DEFAULT_CORS_ORIGINS, Settings, load_settings, resolve_db_path
from .logging_config import get_logger
from .presence import PresenceBroadcaster, PresenceRegistry
from .realtime import (
    ChatGateway,
    ConnectionAuthenticator,
    ConversationRoomManager,
    MessageDispatcher,
    TypingSignaling,
)
from .services import ConversationService
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .transport import RoomHub

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Clear persisted data."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(self, db_path: str | None = None, settings: Settings | None = None):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._settings = settings

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._tracker: ITracker | None = None
        self._hub: RoomHub | None = None
        self._registry: PresenceRegistry | None = None
        self._presence: PresenceBroadcaster | None = None
        self._authenticator: ConnectionAuthenticator | None = None
        self._conversations: ConversationService | None = None
        self._gateway: ChatGateway | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        if self._settings is None:
            self._settings = load_settings()
        settings = self._settings

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 3. Room hub and presence (process-wide, in memory)
        self._hub = RoomHub()
        self._registry = PresenceRegistry()
        self._presence = PresenceBroadcaster(
            self._registry,
            self._hub,
            debounce_seconds=settings.presence_debounce_seconds,
        )

        # 4. Authenticator (depends on Storage)
        self._authenticator = ConnectionAuthenticator(
            self._storage,
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

        # 5. Conversation service (depends on Storage, hub, Tracker)
        self._conversations = ConversationService(
            self._storage, self._hub, self._tracker
        )

        # 6. Real-time handlers and the gateway that routes to them
        self._gateway = ChatGateway(
            hub=self._hub,
            presence=self._presence,
            authenticator=self._authenticator,
            rooms=ConversationRoomManager(self._storage, self._hub),
            dispatcher=MessageDispatcher(self._storage, self._hub, self._tracker),
            signaling=TypingSignaling(self._hub),
            friendship_cache_ttl=settings.friendship_cache_ttl,
        )
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._presence:
            await self._presence.close()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Clear persisted data. Live connections and presence are untouched."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

    def _require(self, component):
        if component is None:
            raise RuntimeError("Application not started")
        return component

    @property
    def settings(self) -> Settings:
        return self._require(self._settings)

    @property
    def cors_origins(self) -> list[str]:
        """Allowed browser origins; usable before start()."""
        if self._settings is None:
            return list(DEFAULT_CORS_ORIGINS)
        return list(self._settings.cors_origins)

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        return self._require(self._storage)

    @property
    def hub(self) -> RoomHub:
        return self._require(self._hub)

    @property
    def presence(self) -> PresenceRegistry:
        """Get the presence registry."""
        return self._require(self._registry)

    @property
    def authenticator(self) -> ConnectionAuthenticator:
        return self._require(self._authenticator)

    @property
    def conversations(self) -> ConversationService:
        return self._require(self._conversations)

    @property
    def gateway(self) -> ChatGateway:
        """Get the real-time gateway."""
        return self._require(self._gateway)
