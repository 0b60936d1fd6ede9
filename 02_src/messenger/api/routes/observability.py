"""Operational views: the reconciliation log and live presence."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel


class TraceEventResponse(BaseModel):
    """One reconciliation log entry."""

    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime


class PresenceResponse(BaseModel):
    onlineUserIds: list[str]
    connections: int


def _parse_after(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid after timestamp format")


def create_observability_router(app) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp, exclusive"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(
            None, description="Comma separated event types, e.g. message_send_partial_failure"
        ),
        actor: str | None = Query(None, description="Component that recorded the event"),
    ) -> list[dict]:
        """List trace events, newest first.

        Partial message sends land here as ``message_send_partial_failure``.
        """
        after_dt = _parse_after(after)
        event_types = (
            [t.strip() for t in event_type.split(",") if t.strip()] if event_type else None
        )

        try:
            events = await app.storage.get_trace_events(
                after=after_dt,
                event_types=event_types,
                actor=actor,
                limit=limit,
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return [
            {
                "id": e.id,
                "event_type": e.event_type,
                "actor": e.actor,
                "data": e.data,
                "timestamp": e.timestamp,
            }
            for e in events
        ]

    @router.get("/presence", response_model=PresenceResponse)
    async def get_presence() -> dict:
        """Users with at least one live connection."""
        return {
            "onlineUserIds": app.presence.online_user_ids(),
            "connections": len(app.hub.connections),
        }

    return router
