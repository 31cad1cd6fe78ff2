"""Event model -- the message format for state change notifications."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field


class Event(BaseModel):
    """A typed event that flows through the EventBus.

    Subscribers (the HTTP event stream, tests, UI adapters) use these to
    learn that derived state changed and should be re-read.
    """

    id: str = Field(default_factory=lambda: f"evt_{uuid4().hex[:12]}")
    type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str = Field(default_factory=lambda: uuid4().hex[:12])
    source: str
    payload: dict = Field(default_factory=dict)


# -- Event type constants --

class EventTypes:
    """Well-known event type strings."""

    # Refresh lifecycle
    SYNC_STARTED = "sync.started"
    SYNC_READY = "sync.ready"
    SYNC_FAILED = "sync.failed"

    # Ledger
    TRADE_APPLIED = "trade.applied"
    TRADE_REJECTED = "trade.rejected"
