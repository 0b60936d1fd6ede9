"""SQLite storage implementation."""

import asyncio
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import (
    Conversation,
    Message,
    MessageType,
    Participant,
    ReadReceipt,
    TraceEvent,
    User,
    participant_key,
)


def _to_db(value: datetime | None) -> str | None:
    """Serialize a datetime as a UTC ISO string."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_db(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class IStorage(Protocol):
    """Async persistent store for users, friendships, conversations and messages."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Users
    async def save_user(self, user: User) -> None:
        """Insert or update a user profile."""
        ...

    async def get_user(self, user_id: str) -> User | None:
        """Get a user profile by ID."""
        ...

    # Friendships
    async def add_friendship(self, user_id: str, friend_id: str) -> None:
        """Record a friendship between two users."""
        ...

    async def are_friends(self, user_a: str, user_b: str) -> bool:
        """Check whether two users are currently friends (either direction)."""
        ...

    async def remove_friendship(self, user_a: str, user_b: str) -> int:
        """Delete the friendship in both directions. Return rows removed."""
        ...

    # Conversations
    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by ID."""
        ...

    async def find_active_conversation(
        self, user_a: str, user_b: str
    ) -> Conversation | None:
        """Get the active conversation between two users, if any."""
        ...

    async def get_or_create_conversation(
        self, created_by: str, other_user: str
    ) -> Conversation:
        """Return the pair's active conversation, creating it if absent."""
        ...

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """List active conversations of a user, most recent activity first."""
        ...

    async def touch_conversation(
        self, conversation_id: str, message_id: str, at: datetime
    ) -> None:
        """Set the last-message reference and last-activity timestamp."""
        ...

    async def update_last_read(
        self, conversation_id: str, user_id: str, at: datetime
    ) -> None:
        """Set a participant's last-read timestamp."""
        ...

    async def deactivate_conversations(
        self, user_a: str, user_b: str, reason: str
    ) -> int:
        """Soft-deactivate the pair's active conversations. Return count."""
        ...

    # Messages
    async def save_message(self, message: Message) -> None:
        """Save a message."""
        ...

    async def get_message(self, message_id: str) -> Message | None:
        """Get a message by ID."""
        ...

    async def get_messages(
        self, conversation_id: str, limit: int = 50, offset: int = 0
    ) -> list[Message]:
        """Get a page of non-deleted messages, newest page first, oldest first within."""
        ...

    async def count_messages(self, conversation_id: str) -> int:
        """Count non-deleted messages of a conversation."""
        ...

    async def mark_read(self, message_id: str, user_id: str, at: datetime) -> bool:
        """Record a read receipt. False if already recorded or no such message."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None
        # Serializes the multi-statement conversation insert
        self._create_lock = asyncio.Lock()

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Users
    async def save_user(self, user: User) -> None:
        """Insert or update a user profile."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT INTO users (id, email, name, profile_picture)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                email = excluded.email,
                name = excluded.name,
                profile_picture = excluded.profile_picture
            """,
            (user.id, user.email, user.name, user.profile_picture),
        )
        await conn.commit()

    async def get_user(self, user_id: str) -> User | None:
        """Get a user profile by ID."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT id, email, name, profile_picture
            FROM users
            WHERE id = ?
            """,
            (user_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return User(id=row[0], email=row[1], name=row[2], profile_picture=row[3])

    # Friendships
    async def add_friendship(self, user_id: str, friend_id: str) -> None:
        """Record a friendship between two users."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT OR IGNORE INTO friendships (user_id, friend_id, created_at)
            VALUES (?, ?, ?)
            """,
            (user_id, friend_id, _to_db(datetime.now(timezone.utc))),
        )
        await conn.commit()

    async def are_friends(self, user_a: str, user_b: str) -> bool:
        """Check whether two users are currently friends (either direction)."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT 1 FROM friendships
            WHERE (user_id = ? AND friend_id = ?)
               OR (user_id = ? AND friend_id = ?)
            LIMIT 1
            """,
            (user_a, user_b, user_b, user_a),
        )
        return await cursor.fetchone() is not None

    async def remove_friendship(self, user_a: str, user_b: str) -> int:
        """Delete the friendship in both directions. Return rows removed."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            DELETE FROM friendships
            WHERE (user_id = ? AND friend_id = ?)
               OR (user_id = ? AND friend_id = ?)
            """,
            (user_a, user_b, user_b, user_a),
        )
        await conn.commit()
        return cursor.rowcount

    # Conversations
    async def _load_conversation(self, row) -> Conversation:
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT user_id, joined_at, last_read
            FROM conversation_participants
            WHERE conversation_id = ?
            ORDER BY position ASC
            """,
            (row[0],),
        )
        participant_rows = await cursor.fetchall()

        return Conversation(
            id=row[0],
            participants=[
                Participant(
                    user_id=p[0],
                    joined_at=_from_db(p[1]),
                    last_read=_from_db(p[2]),
                )
                for p in participant_rows
            ],
            created_by=row[1],
            last_message_id=row[2],
            last_message_at=_from_db(row[3]),
            is_active=bool(row[4]),
            deactivated_at=_from_db(row[5]),
            deactivated_reason=row[6],
            created_at=_from_db(row[7]),
            updated_at=_from_db(row[8]),
        )

    _CONVERSATION_COLUMNS = """
        id, created_by, last_message_id, last_message_at, is_active,
        deactivated_at, deactivated_reason, created_at, updated_at
    """

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by ID."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"SELECT {self._CONVERSATION_COLUMNS} FROM conversations WHERE id = ?",
            (conversation_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return await self._load_conversation(row)

    async def find_active_conversation(
        self, user_a: str, user_b: str
    ) -> Conversation | None:
        """Get the active conversation between two users, if any."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"""
            SELECT {self._CONVERSATION_COLUMNS}
            FROM conversations
            WHERE participant_key = ? AND is_active = 1
            """,
            (participant_key(user_a, user_b),),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return await self._load_conversation(row)

    async def get_or_create_conversation(
        self, created_by: str, other_user: str
    ) -> Conversation:
        """Return the pair's active conversation, creating it if absent.

        The unique index on active participant keys turns a concurrent second
        insert into a no-op, so both callers end up with the same row.
        """
        conn = self._require_conn()
        now = _to_db(datetime.now(timezone.utc))
        conversation_id = str(uuid.uuid4())

        async with self._create_lock:
            cursor = await conn.execute(
                """
                INSERT OR IGNORE INTO conversations
                (id, participant_key, created_by, is_active, created_at, updated_at)
                VALUES (?, ?, ?, 1, ?, ?)
                """,
                (
                    conversation_id,
                    participant_key(created_by, other_user),
                    created_by,
                    now,
                    now,
                ),
            )
            if cursor.rowcount == 1:
                await conn.executemany(
                    """
                    INSERT INTO conversation_participants
                    (conversation_id, user_id, position, joined_at, last_read)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    [
                        (conversation_id, created_by, 0, now, now),
                        (conversation_id, other_user, 1, now, now),
                    ],
                )
            await conn.commit()

            conversation = await self.find_active_conversation(created_by, other_user)

        if conversation is None:
            raise RuntimeError("Conversation upsert returned no row")
        return conversation

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """List active conversations of a user, most recent activity first."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT c.id, c.created_by, c.last_message_id, c.last_message_at,
                   c.is_active, c.deactivated_at, c.deactivated_reason,
                   c.created_at, c.updated_at
            FROM conversations c
            JOIN conversation_participants p ON p.conversation_id = c.id
            WHERE p.user_id = ? AND c.is_active = 1
            ORDER BY COALESCE(c.last_message_at, c.updated_at) DESC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()

        return [await self._load_conversation(row) for row in rows]

    async def touch_conversation(
        self, conversation_id: str, message_id: str, at: datetime
    ) -> None:
        """Set the last-message reference and last-activity timestamp."""
        conn = self._require_conn()

        await conn.execute(
            """
            UPDATE conversations
            SET last_message_id = ?, last_message_at = ?, updated_at = ?
            WHERE id = ?
            """,
            (message_id, _to_db(at), _to_db(at), conversation_id),
        )
        await conn.commit()

    async def update_last_read(
        self, conversation_id: str, user_id: str, at: datetime
    ) -> None:
        """Set a participant's last-read timestamp."""
        conn = self._require_conn()

        await conn.execute(
            """
            UPDATE conversation_participants
            SET last_read = ?
            WHERE conversation_id = ? AND user_id = ?
            """,
            (_to_db(at), conversation_id, user_id),
        )
        await conn.commit()

    async def deactivate_conversations(
        self, user_a: str, user_b: str, reason: str
    ) -> int:
        """Soft-deactivate the pair's active conversations. Return count."""
        conn = self._require_conn()
        now = _to_db(datetime.now(timezone.utc))

        cursor = await conn.execute(
            """
            UPDATE conversations
            SET is_active = 0, deactivated_at = ?, deactivated_reason = ?,
                updated_at = ?
            WHERE participant_key = ? AND is_active = 1
            """,
            (now, reason, now, participant_key(user_a, user_b)),
        )
        await conn.commit()
        return cursor.rowcount

    # Messages
    async def save_message(self, message: Message) -> None:
        """Save a message."""
        conn = self._require_conn()

        if not message.id:
            message.id = str(uuid.uuid4())
        if message.updated_at is None:
            message.updated_at = message.created_at

        await conn.execute(
            """
            INSERT INTO messages
            (id, conversation_id, sender_id, content, message_type, media_id,
             is_edited, edited_at, is_deleted, deleted_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                message.id,
                message.conversation_id,
                message.sender_id,
                message.content,
                message.message_type.value,
                message.media_id,
                int(message.is_edited),
                _to_db(message.edited_at),
                int(message.is_deleted),
                _to_db(message.deleted_at),
                _to_db(message.created_at),
                _to_db(message.updated_at),
            ),
        )
        await conn.commit()

    _MESSAGE_COLUMNS = """
        id, conversation_id, sender_id, content, message_type, media_id,
        is_edited, edited_at, is_deleted, deleted_at, created_at, updated_at
    """

    async def _load_message(self, row) -> Message:
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT user_id, read_at
            FROM message_reads
            WHERE message_id = ?
            ORDER BY read_at ASC
            """,
            (row[0],),
        )
        read_rows = await cursor.fetchall()

        return Message(
            id=row[0],
            conversation_id=row[1],
            sender_id=row[2],
            content=row[3],
            message_type=MessageType(row[4]),
            media_id=row[5],
            is_edited=bool(row[6]),
            edited_at=_from_db(row[7]),
            is_deleted=bool(row[8]),
            deleted_at=_from_db(row[9]),
            created_at=_from_db(row[10]),
            updated_at=_from_db(row[11]),
            read_by=[
                ReadReceipt(user_id=r[0], read_at=_from_db(r[1])) for r in read_rows
            ],
        )

    async def get_message(self, message_id: str) -> Message | None:
        """Get a message by ID."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"SELECT {self._MESSAGE_COLUMNS} FROM messages WHERE id = ?",
            (message_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return await self._load_message(row)

    async def get_messages(
        self, conversation_id: str, limit: int = 50, offset: int = 0
    ) -> list[Message]:
        """Get a page of non-deleted messages, newest page first, oldest first within."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"""
            SELECT {self._MESSAGE_COLUMNS}
            FROM messages
            WHERE conversation_id = ? AND is_deleted = 0
            ORDER BY created_at DESC, rowid DESC
            LIMIT ? OFFSET ?
            """,
            (conversation_id, limit, offset),
        )
        rows = await cursor.fetchall()

        messages = [await self._load_message(row) for row in rows]
        messages.reverse()
        return messages

    async def count_messages(self, conversation_id: str) -> int:
        """Count non-deleted messages of a conversation."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT COUNT(*) FROM messages
            WHERE conversation_id = ? AND is_deleted = 0
            """,
            (conversation_id,),
        )
        row = await cursor.fetchone()
        return row[0]

    async def mark_read(self, message_id: str, user_id: str, at: datetime) -> bool:
        """Record a read receipt.

        Return False if the reader was already recorded or the message does
        not exist.
        """
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            INSERT OR IGNORE INTO message_reads (message_id, user_id, read_at)
            SELECT ?, ?, ?
            WHERE EXISTS (SELECT 1 FROM messages WHERE id = ?)
            """,
            (message_id, user_id, _to_db(at), message_id),
        )
        await conn.commit()
        return cursor.rowcount == 1

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data),
                _to_db(event.timestamp),
            ),
        )
        await conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        conn = self._require_conn()

        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(_to_db(after))
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_from_db(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()

        tables = [
            "message_reads",
            "messages",
            "conversation_participants",
            "conversations",
            "friendships",
            "users",
            "trace_events",
        ]

        for table in tables:
            await conn.execute(f"DELETE FROM {table}")

        await conn.commit()
