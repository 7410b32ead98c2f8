"""
agent.tools.database - Knowledge graph access for agents.

Thin dispatch over EntityStorePort. Agents never hold the store directly;
they reach it through this tool so every write passes the permission gate.
"""

from __future__ import annotations

import uuid
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool, ToolResult
from domain.ports import EntityStorePort

Operation = Literal[
    "save_entity",
    "update_entity",
    "find_entity",
    "find_entities_by_type",
    "search_entities",
    "create_relationship",
    "find_relationships",
    "find_related_entities",
]


class DatabaseInput(BaseModel):
    """Input schema for the database tool."""
    operation: Operation = Field(description="Store operation to run.")
    user_id: str = "default_user"
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    name: Optional[str] = None
    data: Union[dict[str, Any], str, None] = None
    relationship_id: Optional[str] = None
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    relationship_type: Optional[str] = None
    strength: float = 1.0
    metadata: Union[dict[str, Any], str, None] = None
    direction: str = "both"
    term: str = ""
    limit: int = Field(default=10, ge=1, le=100)


class DatabaseTool(BaseTool):
    """Create and query entities and relationships."""

    name = "database"
    description = (
        "Persist and query the user's knowledge graph: entities (people, "
        "transactions, tasks, notes...) and the relationships between them."
    )

    def __init__(self, store: EntityStorePort):
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return DatabaseInput

    async def execute(self, operation: str = "", **kwargs) -> ToolResult:
        handler = getattr(self, f"_{operation}", None)
        if handler is None:
            return ToolResult(success=False, error=f"Unknown operation: {operation}")
        return await handler(**kwargs)

    async def _save_entity(self, user_id, entity_id, entity_type, name, data, **_) -> ToolResult:
        entity_id = entity_id or str(uuid.uuid4())
        saved = await self._store.save_new_entity(
            entity_id, user_id, entity_type or "", name or "", data if data is not None else {},
        )
        if not saved:
            return ToolResult(success=False, error="Entity was not saved", data={"entity_id": entity_id})
        return ToolResult(success=True, data={"entity_id": entity_id})

    async def _update_entity(self, entity_id, data, **_) -> ToolResult:
        if not entity_id:
            return ToolResult(success=False, error="entity_id is required")
        updated = await self._store.update_entity(entity_id, data if data is not None else {})
        return ToolResult(
            success=updated,
            data={"entity_id": entity_id},
            error=None if updated else "Entity was not updated",
        )

    async def _find_entity(self, entity_id, **_) -> ToolResult:
        entity = await self._store.find_entity(entity_id or "")
        return ToolResult(success=True, data=entity.to_dict() if entity else None)

    async def _find_entities_by_type(self, user_id, entity_type, **_) -> ToolResult:
        entities = await self._store.find_entities_by_type(user_id, entity_type or "")
        return ToolResult(success=True, data=[e.to_dict() for e in entities])

    async def _search_entities(self, user_id, term, entity_type, limit, **_) -> ToolResult:
        entities = await self._store.search_entities(user_id, term, entity_type, limit)
        return ToolResult(success=True, data=[e.to_dict() for e in entities])

    async def _create_relationship(
        self, user_id, relationship_id, source_id, target_id,
        relationship_type, strength, metadata, **_,
    ) -> ToolResult:
        relationship_id = relationship_id or str(uuid.uuid4())
        created = await self._store.create_relationship(
            relationship_id, user_id, source_id or "", target_id or "",
            relationship_type or "", strength, metadata,
        )
        if not created:
            return ToolResult(
                success=False,
                error="Relationship was not created",
                data={"relationship_id": relationship_id},
            )
        return ToolResult(success=True, data={"relationship_id": relationship_id})

    async def _find_relationships(self, entity_id, relationship_type, direction, **_) -> ToolResult:
        try:
            rows = await self._store.find_relationships(
                entity_id or "", relationship_type, direction,
            )
        except ValueError as e:
            return ToolResult(success=False, error=str(e))
        return ToolResult(success=True, data=[r.to_dict() for r in rows])

    async def _find_related_entities(self, entity_id, relationship_type, entity_type, **_) -> ToolResult:
        related = await self._store.find_related_entities(
            entity_id or "", relationship_type, entity_type,
        )
        return ToolResult(success=True, data=related)
