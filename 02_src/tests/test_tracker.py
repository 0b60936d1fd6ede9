"""Tests for Tracker."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest


class TestTrackerTrack:
    """Tests for Tracker.track() method."""

    @pytest.mark.asyncio
    async def test_track_creates_event(self, tracker, storage):
        """Test that track() creates a TraceEvent."""
        await tracker.track(
            event_type="message_sent",
            actor="message_dispatcher",
            data={"message_id": "m1"},
        )

        events = await storage.get_trace_events()
        assert len(events) == 1
        assert events[0].event_type == "message_sent"
        assert events[0].actor == "message_dispatcher"
        assert events[0].data == {"message_id": "m1"}

    @pytest.mark.asyncio
    async def test_track_generates_id_and_timestamp(self, tracker, storage):
        before = datetime.now(timezone.utc)
        await tracker.track(event_type="x", actor="y", data={})
        after = datetime.now(timezone.utc)

        (event,) = await storage.get_trace_events()
        assert event.id
        assert before <= event.timestamp <= after

    @pytest.mark.asyncio
    async def test_failed_write_does_not_raise(self, storage):
        """A broken trace store must not break the traced operation."""
        from messenger.tracker import Tracker

        storage.save_trace_event = AsyncMock(side_effect=RuntimeError("locked"))
        tracker = Tracker(storage)

        await tracker.track(event_type="x", actor="y", data={})

        storage.save_trace_event.assert_awaited_once()
