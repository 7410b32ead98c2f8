"""
agent.tools.notes - Notes stored as `note` entities in the knowledge graph.
"""

from __future__ import annotations

import uuid
from typing import Literal, Optional

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool, ToolResult
from domain.entities import EntityType
from domain.ports import EntityStorePort


class NotesInput(BaseModel):
    """Input schema for the notes tool."""
    request_type: Literal["get_notes", "save_note", "search_notes"] = "get_notes"
    user_id: str = "default_user"
    topic: str = ""
    query: str = ""
    title: str = "Untitled Note"
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    limit: int = Field(default=10, ge=1, le=100)


class NotesTool(BaseTool):
    """Save, list and search the user's notes."""

    name = "notes"
    description = "Save a note, list notes (optionally by topic or tag) or search notes."

    def __init__(self, store: EntityStorePort):
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return NotesInput

    async def execute(
        self,
        request_type: str = "get_notes",
        user_id: str = "default_user",
        topic: str = "",
        query: str = "",
        title: str = "Untitled Note",
        content: str = "",
        tags: Optional[list[str]] = None,
        limit: int = 10,
        **kwargs,
    ) -> ToolResult:
        if request_type == "save_note":
            note_id = str(uuid.uuid4())
            saved = await self._store.save_new_entity(
                note_id, user_id, EntityType.NOTE.value, title,
                {"title": title, "content": content, "topic": topic, "tags": tags or []},
            )
            if not saved:
                return ToolResult(success=False, error=f"Could not save note: {title}")
            return ToolResult(success=True, data={"note_id": note_id, "title": title})

        if request_type == "search_notes":
            found = await self._store.search_entities(
                user_id, query, EntityType.NOTE.value, limit,
            )
            return ToolResult(success=True, data=[e.to_dict() for e in found])

        notes = await self._store.find_entities_by_type(user_id, EntityType.NOTE.value)
        if topic:
            wanted = topic.lower()
            notes = [
                n for n in notes
                if str(n.data.get("topic", "")).lower() == wanted
                or wanted in (str(t).lower() for t in n.data.get("tags", []))
            ]
        return ToolResult(success=True, data=[n.to_dict() for n in notes[:limit]])
