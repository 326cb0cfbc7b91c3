"""Integration event log recording workflow mutations."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from .contracts import CamelModel, ensure_utc, utcnow

logger = logging.getLogger(__name__)

WORKFLOW_CREATED = "workflow_created"
WORKFLOW_UPDATED = "workflow_updated"
WORKFLOW_DELETED = "workflow_deleted"
STEP_UPDATED = "workflow_step_updated"
STEP_STARTED = "workflow_step_started"
STEP_COMPLETED = "workflow_step_completed"
STEP_DISCARDED = "workflow_step_discarded"


class IntegrationEvent(CamelModel):
    """A single recorded engine event."""

    id: str = Field(default_factory=lambda: f"evt_{uuid.uuid4().hex[:16]}")
    type: str
    module: str = "integration"
    action: str
    data: Any = None
    timestamp: datetime = Field(default_factory=utcnow)
    user_id: str = "system"
    workflow_id: Optional[str] = None


class EventLog:
    """Append-only, in-process event log."""

    def __init__(self) -> None:
        self._events: List[IntegrationEvent] = []
        self._lock = asyncio.Lock()

    async def record(
        self,
        event_type: str,
        action: str,
        data: Any = None,
        workflow_id: Optional[str] = None,
        user_id: str = "system",
    ) -> IntegrationEvent:
        """Append an event and return it."""
        event = IntegrationEvent(
            type=event_type,
            action=action,
            data=data,
            workflow_id=workflow_id,
            user_id=user_id,
        )
        async with self._lock:
            self._events.append(event)
        logger.debug(f"Integration event {event.type} for workflow_id={workflow_id}")
        return event

    async def list(
        self,
        type: Optional[str] = None,
        module: Optional[str] = None,
        workflow_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[IntegrationEvent]:
        """Return recorded events matching every supplied filter."""
        async with self._lock:
            events = list(self._events)
        if type:
            events = [e for e in events if e.type == type]
        if module:
            events = [e for e in events if e.module == module]
        if workflow_id:
            events = [e for e in events if e.workflow_id == workflow_id]
        if date_from:
            date_from = ensure_utc(date_from)
            events = [e for e in events if e.timestamp >= date_from]
        if date_to:
            date_to = ensure_utc(date_to)
            events = [e for e in events if e.timestamp <= date_to]
        return events
