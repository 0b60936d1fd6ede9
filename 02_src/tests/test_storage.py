"""Tests for Storage."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from messenger.models import Message, MessageType, TraceEvent, User


def make_message(conversation_id, sender_id, content, created_at=None, **kwargs):
    return Message(
        id=kwargs.pop("id", None),
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        created_at=created_at or datetime.now(timezone.utc),
        **kwargs,
    )


class TestStorageInit:
    """Tests for Storage initialization."""

    async def test_init_creates_tables(self, storage):
        """Test that init creates all tables."""
        async with storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
            for table in (
                "users",
                "friendships",
                "conversations",
                "conversation_participants",
                "messages",
                "message_reads",
                "trace_events",
            ):
                assert table in tables

    async def test_uninitialized_storage_raises(self):
        from messenger.storage import Storage

        st = Storage(":memory:")
        with pytest.raises(RuntimeError):
            await st.get_user("alice")


class TestStorageUsers:
    """Tests for User storage."""

    async def test_get_user(self, storage, users):
        retrieved = await storage.get_user("bob")
        assert retrieved == users["bob"]

    async def test_get_nonexistent_user(self, storage):
        assert await storage.get_user("nobody") is None

    async def test_save_user_updates_existing(self, storage, users):
        await storage.save_user(User(id="alice", email="alice@example.com", name="Al"))
        retrieved = await storage.get_user("alice")
        assert retrieved.name == "Al"


class TestStorageFriendships:
    """Tests for friendship edges."""

    async def test_friendship_is_symmetric(self, storage, users):
        assert await storage.are_friends("alice", "bob")
        assert await storage.are_friends("bob", "alice")

    async def test_not_friends(self, storage, users):
        assert not await storage.are_friends("alice", "carol")

    async def test_remove_friendship_both_directions(self, storage, users):
        await storage.add_friendship("bob", "alice")
        removed = await storage.remove_friendship("bob", "alice")
        assert removed == 2
        assert not await storage.are_friends("alice", "bob")


class TestStorageConversations:
    """Tests for Conversation storage."""

    async def test_get_or_create_creates_two_participants(self, storage, users):
        conversation = await storage.get_or_create_conversation("alice", "bob")

        assert conversation.participant_ids == ["alice", "bob"]
        assert conversation.created_by == "alice"
        assert conversation.is_active
        assert conversation.last_message_id is None

    async def test_get_or_create_reuses_existing_pair(self, storage, users):
        first = await storage.get_or_create_conversation("alice", "bob")
        second = await storage.get_or_create_conversation("bob", "alice")
        assert first.id == second.id

    async def test_concurrent_first_contact_yields_one_conversation(
        self, storage, users
    ):
        results = await asyncio.gather(
            storage.get_or_create_conversation("alice", "bob"),
            storage.get_or_create_conversation("bob", "alice"),
            storage.get_or_create_conversation("alice", "bob"),
        )
        assert len({c.id for c in results}) == 1

        async with storage._conn.execute("SELECT COUNT(*) FROM conversations") as cursor:
            (count,) = await cursor.fetchone()
        assert count == 1

    async def test_get_conversation_missing(self, storage):
        assert await storage.get_conversation("does-not-exist") is None

    async def test_touch_conversation(self, storage, conversation):
        at = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        await storage.touch_conversation(conversation.id, "msg-1", at)

        updated = await storage.get_conversation(conversation.id)
        assert updated.last_message_id == "msg-1"
        assert updated.last_message_at == at

    async def test_deactivate_keeps_record_but_hides_it(self, storage, conversation):
        count = await storage.deactivate_conversations(
            "bob", "alice", "friendship_removed"
        )
        assert count == 1

        record = await storage.get_conversation(conversation.id)
        assert record is not None
        assert not record.is_active
        assert record.deactivated_reason == "friendship_removed"
        assert await storage.find_active_conversation("alice", "bob") is None
        assert await storage.list_conversations("alice") == []

    async def test_new_conversation_after_deactivation(self, storage, conversation):
        await storage.deactivate_conversations("alice", "bob", "friendship_removed")
        fresh = await storage.get_or_create_conversation("alice", "bob")
        assert fresh.id != conversation.id
        assert fresh.is_active

    async def test_list_conversations_by_recent_activity(self, storage, users):
        await storage.add_friendship("alice", "carol")
        with_bob = await storage.get_or_create_conversation("alice", "bob")
        with_carol = await storage.get_or_create_conversation("alice", "carol")

        now = datetime.now(timezone.utc)
        await storage.touch_conversation(with_bob.id, "m1", now + timedelta(minutes=5))
        await storage.touch_conversation(with_carol.id, "m2", now + timedelta(minutes=1))

        listed = await storage.list_conversations("alice")
        assert [c.id for c in listed] == [with_bob.id, with_carol.id]
        assert [c.id for c in await storage.list_conversations("carol")] == [
            with_carol.id
        ]


class TestStorageMessages:
    """Tests for Message storage."""

    async def test_save_message_generates_id(self, storage, conversation):
        msg = make_message(conversation.id, "alice", "Hello")
        await storage.save_message(msg)
        assert msg.id is not None

        loaded = await storage.get_message(msg.id)
        assert loaded.content == "Hello"
        assert loaded.message_type == MessageType.TEXT
        assert loaded.read_by == []

    async def test_get_messages_pages_newest_first_oldest_within(
        self, storage, conversation
    ):
        base = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        for i in range(5):
            await storage.save_message(
                make_message(
                    conversation.id,
                    "alice",
                    f"m{i}",
                    created_at=base + timedelta(minutes=i),
                )
            )

        first_page = await storage.get_messages(conversation.id, limit=2, offset=0)
        second_page = await storage.get_messages(conversation.id, limit=2, offset=2)

        assert [m.content for m in first_page] == ["m3", "m4"]
        assert [m.content for m in second_page] == ["m1", "m2"]
        assert await storage.count_messages(conversation.id) == 5

    async def test_get_messages_excludes_deleted(self, storage, conversation):
        await storage.save_message(make_message(conversation.id, "alice", "kept"))
        await storage.save_message(
            make_message(conversation.id, "alice", "gone", is_deleted=True)
        )

        messages = await storage.get_messages(conversation.id)
        assert [m.content for m in messages] == ["kept"]
        assert await storage.count_messages(conversation.id) == 1

    async def test_same_timestamp_keeps_insert_order(self, storage, conversation):
        ts = datetime.now(timezone.utc)
        for content in ("first", "second", "third"):
            await storage.save_message(
                make_message(conversation.id, "alice", content, created_at=ts)
            )

        messages = await storage.get_messages(conversation.id)
        assert [m.content for m in messages] == ["first", "second", "third"]

    async def test_mark_read_keeps_one_entry_per_reader(self, storage, conversation):
        msg = make_message(conversation.id, "alice", "Hello")
        await storage.save_message(msg)

        first_read = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert await storage.mark_read(msg.id, "bob", first_read)
        assert not await storage.mark_read(
            msg.id, "bob", first_read + timedelta(hours=1)
        )

        loaded = await storage.get_message(msg.id)
        assert len(loaded.read_by) == 1
        assert loaded.read_by[0].user_id == "bob"
        assert loaded.read_by[0].read_at == first_read

    async def test_mark_read_unknown_message(self, storage, conversation):
        assert not await storage.mark_read(
            "no-such-message", "bob", datetime.now(timezone.utc)
        )

        async with storage._conn.execute("SELECT COUNT(*) FROM message_reads") as cursor:
            (count,) = await cursor.fetchone()
        assert count == 0

    async def test_update_last_read(self, storage, conversation):
        at = datetime(2024, 3, 1, tzinfo=timezone.utc)
        await storage.update_last_read(conversation.id, "bob", at)

        updated = await storage.get_conversation(conversation.id)
        bob = next(p for p in updated.participants if p.user_id == "bob")
        assert bob.last_read == at


class TestStorageTraceEvents:
    """Tests for TraceEvent storage."""

    async def test_trace_event_filters(self, storage):
        ts = datetime.now(timezone.utc)
        await storage.save_trace_event(
            TraceEvent(id="t1", event_type="message_sent", actor="a", data={}, timestamp=ts)
        )
        await storage.save_trace_event(
            TraceEvent(
                id="t2",
                event_type="message_send_partial_failure",
                actor="b",
                data={"message_id": "m"},
                timestamp=ts + timedelta(seconds=1),
            )
        )

        assert len(await storage.get_trace_events()) == 2
        partial = await storage.get_trace_events(
            event_types=["message_send_partial_failure"]
        )
        assert [e.id for e in partial] == ["t2"]
        assert partial[0].data == {"message_id": "m"}
        assert [e.id for e in await storage.get_trace_events(actor="a")] == ["t1"]
        assert [e.id for e in await storage.get_trace_events(after=ts)] == ["t2"]


class TestStorageClear:
    async def test_clear_removes_everything(self, storage, conversation):
        await storage.save_message(make_message(conversation.id, "alice", "Hello"))
        await storage.clear()

        assert await storage.get_user("alice") is None
        assert await storage.get_conversation(conversation.id) is None
        assert not await storage.are_friends("alice", "bob")
