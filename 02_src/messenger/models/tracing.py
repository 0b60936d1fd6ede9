"""Tracing data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A persisted record of a notable chat event, used for reconciliation."""

    id: str
    event_type: str  # e.g. "message_sent", "message_send_partial_failure"
    actor: str  # component that recorded it
    data: dict
    timestamp: datetime
