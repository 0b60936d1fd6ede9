"""Tests for PresenceRegistry, DebouncedTask and PresenceBroadcaster."""

import asyncio

import pytest

from messenger.presence import DebouncedTask, PresenceRegistry


class TestPresenceRegistry:
    """Tests for PresenceRegistry."""

    def test_first_connection_brings_user_online(self):
        registry = PresenceRegistry()
        assert registry.add("alice", "c1") is True
        assert registry.is_online("alice")
        assert registry.online_user_ids() == ["alice"]

    def test_second_connection_is_not_a_transition(self):
        registry = PresenceRegistry()
        registry.add("alice", "c1")
        assert registry.add("alice", "c2") is False
        assert registry.connections_of("alice") == {"c1", "c2"}

    def test_user_stays_online_until_last_connection_closes(self):
        registry = PresenceRegistry()
        registry.add("alice", "c1")
        registry.add("alice", "c2")

        assert registry.remove("alice", "c1") is False
        assert registry.is_online("alice")

        assert registry.remove("alice", "c2") is True
        assert not registry.is_online("alice")
        assert registry.online_user_ids() == []
        assert len(registry) == 0

    def test_remove_unknown_is_noop(self):
        registry = PresenceRegistry()
        assert registry.remove("ghost", "c1") is False
        registry.add("alice", "c1")
        assert registry.remove("alice", "other") is False
        assert registry.is_online("alice")


class TestDebouncedTask:
    """Tests for DebouncedTask."""

    async def test_burst_of_triggers_runs_once(self):
        calls = []

        async def action():
            calls.append("run")

        task = DebouncedTask(action, 0.02)
        for _ in range(5):
            task.trigger()
            await asyncio.sleep(0.001)

        await asyncio.sleep(0.06)
        assert calls == ["run"]
        assert not task.pending

    async def test_separate_bursts_run_separately(self):
        calls = []

        async def action():
            calls.append("run")

        task = DebouncedTask(action, 0.01)
        task.trigger()
        await asyncio.sleep(0.04)
        task.trigger()
        await asyncio.sleep(0.04)

        assert calls == ["run", "run"]

    async def test_cancel_drops_pending_run(self):
        calls = []

        async def action():
            calls.append("run")

        task = DebouncedTask(action, 0.02)
        task.trigger()
        await task.cancel()
        await asyncio.sleep(0.04)

        assert calls == []

    async def test_failing_action_is_contained(self):
        async def action():
            raise RuntimeError("boom")

        task = DebouncedTask(action, 0.001)
        task.trigger()
        await asyncio.sleep(0.02)
        assert not task.pending


class TestPresenceBroadcaster:
    """Tests for PresenceBroadcaster."""

    async def _connect(self, presence, hub, make_connection, user):
        connection, recorder = make_connection(user)
        hub.register(connection)
        await presence.user_connected(connection)
        return connection, recorder

    async def test_connect_sends_personal_acknowledgment(
        self, presence, hub, make_connection, users
    ):
        _, recorder = await self._connect(presence, hub, make_connection, users["alice"])

        authenticated = recorder.data("authenticated")
        assert len(authenticated) == 1
        assert authenticated[0]["user"]["id"] == "alice"
        assert authenticated[0]["onlineUserIds"] == ["alice"]
        assert recorder.data("onlineUsersList")[0] == {"userIds": ["alice"]}
        # nobody else is online, so nothing is replayed
        assert recorder.data("userOnline") == []

    async def test_new_connection_learns_who_is_online(
        self, presence, hub, make_connection, users
    ):
        await self._connect(presence, hub, make_connection, users["alice"])
        await self._connect(presence, hub, make_connection, users["carol"])
        _, bob = await self._connect(presence, hub, make_connection, users["bob"])

        replayed = {d["userId"] for d in bob.data("userOnline")}
        assert replayed == {"alice", "carol"}
        assert set(bob.data("authenticated")[0]["onlineUserIds"]) == {
            "alice",
            "bob",
            "carol",
        }

    async def test_first_connection_broadcasts_online_once(
        self, presence, hub, make_connection, users
    ):
        _, watcher = await self._connect(presence, hub, make_connection, users["carol"])
        watcher.clear()

        await self._connect(presence, hub, make_connection, users["alice"])
        await self._connect(presence, hub, make_connection, users["alice"])

        assert watcher.data("userOnline") == [{"userId": "alice"}]

    async def test_online_broadcast_excludes_connecting_socket(
        self, presence, hub, make_connection, users
    ):
        _, recorder = await self._connect(presence, hub, make_connection, users["alice"])
        assert {"userId": "alice"} not in recorder.data("userOnline")

    async def test_two_devices_offline_exactly_once(
        self, presence, registry, hub, make_connection, users
    ):
        _, watcher = await self._connect(presence, hub, make_connection, users["carol"])
        first, _ = await self._connect(presence, hub, make_connection, users["alice"])
        second, _ = await self._connect(presence, hub, make_connection, users["alice"])

        hub.unregister(first)
        await presence.user_disconnected(first)
        assert registry.is_online("alice")
        assert watcher.data("userOffline") == []

        hub.unregister(second)
        await presence.user_disconnected(second)
        assert not registry.is_online("alice")
        assert watcher.data("userOffline") == [{"userId": "alice"}]

    async def test_list_broadcast_is_debounced(
        self, presence, hub, make_connection, users
    ):
        _, watcher = await self._connect(presence, hub, make_connection, users["carol"])
        await asyncio.sleep(0.03)
        watcher.clear()

        # A reload storm: connect, drop, reconnect
        first, _ = await self._connect(presence, hub, make_connection, users["alice"])
        hub.unregister(first)
        await presence.user_disconnected(first)
        await self._connect(presence, hub, make_connection, users["alice"])

        await asyncio.sleep(0.05)
        lists = watcher.data("onlineUsersList")
        assert len(lists) == 1
        assert set(lists[0]["userIds"]) == {"alice", "carol"}

    async def test_disconnect_without_identity_is_ignored(
        self, presence, registry, make_connection
    ):
        connection, _ = make_connection()
        await presence.user_disconnected(connection)
        assert len(registry) == 0

    async def test_connect_requires_identity(self, presence, make_connection):
        connection, _ = make_connection()
        with pytest.raises(RuntimeError):
            await presence.user_connected(connection)
