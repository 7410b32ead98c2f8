"""
agent.tools.contacts - Person lookups over the knowledge graph.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool, ToolResult
from domain.entities import EntityType
from domain.ports import EntityStorePort


class ContactsInput(BaseModel):
    """Input schema for the contacts tool."""
    request_type: Literal["get_contacts", "find_contact"] = "get_contacts"
    user_id: str = "default_user"
    name: str = ""
    filters: dict[str, Any] = Field(
        default_factory=dict,
        description="Exact-match filters on contact fields, e.g. {'relationship': 'friend'}.",
    )


class ContactsTool(BaseTool):
    """List or find the user's contacts (person entities)."""

    name = "contacts"
    description = "List contacts with optional field filters, or find a contact by name."

    def __init__(self, store: EntityStorePort):
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return ContactsInput

    async def execute(
        self,
        request_type: str = "get_contacts",
        user_id: str = "default_user",
        name: str = "",
        filters: Optional[dict[str, Any]] = None,
        **kwargs,
    ) -> ToolResult:
        if request_type == "find_contact":
            if not name.strip():
                return ToolResult(success=False, error="A name is required to find a contact")
            people = await self._store.search_entities(user_id, name, EntityType.PERSON.value)
        else:
            people = await self._store.find_entities_by_type(user_id, EntityType.PERSON.value)

        if filters:
            people = [
                p for p in people
                if all(p.data.get(key) == value for key, value in filters.items())
            ]
        return ToolResult(success=True, data=[p.to_dict() for p in people])
