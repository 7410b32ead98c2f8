"""
agent.tools.calendar - Calendar events stored as `event` entities.

`create` saves the event in the knowledge graph and returns its descriptor;
`lookup` returns the user's stored events matching a date, title or type.
"""

from __future__ import annotations

import uuid
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool, ToolResult
from domain.entities import METADATA_KEY, Entity, EntityType
from domain.ports import EntityStorePort


class CalendarInput(BaseModel):
    """Input schema for the calendar tool."""
    operation: Literal["create", "lookup"] = "create"
    user_id: str = "default_user"
    title: str = Field(default="", description="Event title; a substring filter on lookup.")
    date: Optional[str] = Field(default=None, description="Date as given by the user.")
    time: Optional[str] = None
    event_type: Optional[str] = Field(default=None, description="e.g. birthday, meeting, social.")
    location: Optional[str] = None
    limit: int = Field(default=20, ge=1, le=100)


def _descriptor(entity: Entity) -> dict[str, Any]:
    event = {k: v for k, v in entity.data.items() if k != METADATA_KEY}
    event["event_id"] = entity.id
    return event


class CalendarTool(BaseTool):
    """Create and look up the user's calendar events."""

    name = "calendar"
    description = "Create a calendar event (title, date, time, location) or look up stored events."

    def __init__(self, store: EntityStorePort):
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return CalendarInput

    async def execute(
        self,
        operation: str = "create",
        user_id: str = "default_user",
        title: str = "",
        date: Optional[str] = None,
        time: Optional[str] = None,
        event_type: Optional[str] = None,
        location: Optional[str] = None,
        limit: int = 20,
        **kwargs,
    ) -> ToolResult:
        if operation == "lookup":
            return await self._lookup(user_id, title, date, event_type, limit)

        event: dict[str, Any] = {
            "title": title.strip() or "Untitled event",
            "date": date or "today",
            "event_type": event_type or "event",
        }
        if time:
            event["time"] = time
        if location:
            event["location"] = location

        event_id = str(uuid.uuid4())
        saved = await self._store.save_new_entity(
            event_id, user_id, EntityType.EVENT.value, event["title"], event,
        )
        if not saved:
            return ToolResult(success=False, error=f"Could not save event: {event['title']}")
        return ToolResult(success=True, data={**event, "event_id": event_id, "operation": "created"})

    async def _lookup(
        self,
        user_id: str,
        title: str,
        date: Optional[str],
        event_type: Optional[str],
        limit: int,
    ) -> ToolResult:
        events = await self._store.find_entities_by_type(user_id, EntityType.EVENT.value)
        wanted_title = title.strip().lower()
        matches = [
            _descriptor(e) for e in events
            if (not date or str(e.data.get("date", "")).lower() == date.lower())
            and (not event_type or e.data.get("event_type") == event_type)
            and (not wanted_title or wanted_title in e.primary_name.lower())
        ]
        return ToolResult(success=True, data={
            "operation": "looked_up",
            "events": matches[:limit],
            "count": len(matches),
        })
