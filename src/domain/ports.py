"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the system needs without specifying HOW. Infrastructure
modules provide concrete implementations. Application services and agents
depend only on these protocols, never on concrete classes.

Using typing.Protocol (structural typing) instead of ABC: any class that
implements the methods satisfies the port without explicit inheritance.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Union, runtime_checkable

from domain.entities import Entity, Relationship
from domain.models import AgentTask, ExecutionPlan


# ---------------------------------------------------------------------------
# Knowledge graph persistence
# ---------------------------------------------------------------------------

@runtime_checkable
class EntityStorePort(Protocol):
    """Transactional persistence for entities and relationships."""

    async def save_new_entity(
        self,
        entity_id: str,
        user_id: str,
        entity_type: str,
        name: str,
        data: Union[str, Mapping[str, Any]],
    ) -> bool: ...

    async def update_entity(
        self, entity_id: str, data: Union[str, Mapping[str, Any]],
    ) -> bool: ...

    async def find_entity(self, entity_id: str) -> Optional[Entity]: ...

    async def find_entities_by_type(
        self, user_id: str, entity_type: str,
    ) -> list[Entity]: ...

    async def search_entities(
        self,
        user_id: str,
        term: str,
        entity_type: Optional[str] = None,
        limit: int = 10,
    ) -> list[Entity]: ...

    async def create_relationship(
        self,
        relationship_id: str,
        user_id: str,
        source_id: str,
        target_id: str,
        relationship_type: str,
        strength: float = 1.0,
        metadata: Optional[Union[str, Mapping[str, Any]]] = None,
    ) -> bool: ...

    async def find_relationships(
        self,
        entity_id: str,
        relationship_type: Optional[str] = None,
        direction: str = "both",
    ) -> list[Relationship]: ...

    async def find_related_entities(
        self,
        entity_id: str,
        relationship_type: Optional[str] = None,
        entity_type: Optional[str] = None,
    ) -> list[dict[str, Any]]: ...


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------

@runtime_checkable
class AgentPort(Protocol):
    """A stateless task executor for one capability."""

    name: str

    async def execute(self, task: AgentTask) -> dict[str, Any]: ...


# ---------------------------------------------------------------------------
# Triage
# ---------------------------------------------------------------------------

@runtime_checkable
class TriagePlannerPort(Protocol):
    """Turn a raw user query into an execution plan."""

    async def plan(self, query: str) -> ExecutionPlan: ...
