"""
domain.entities - Persistence-aware types for the knowledge graph (have IDs, timestamps).

Entity and Relationship are decoupled from any persistence strategy: no SQL
concerns, no DB imports. Timestamps are set by the store implementation,
not by the entities themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class EntityType(str, Enum):
    """Closed vocabulary of knowledge-graph node types."""
    PERSON = "person"
    EVENT = "event"
    TASK = "task"
    TRANSACTION = "transaction"
    NOTE = "note"
    LOCATION = "location"
    ORGANIZATION = "organization"
    PROJECT = "project"
    GOAL = "goal"
    HABIT = "habit"
    MEMORY = "memory"
    HEALTH_RECORD = "health_record"

    @classmethod
    def values(cls) -> frozenset[str]:
        return frozenset(member.value for member in cls)


class RelationshipType(str, Enum):
    """Suggested edge types. The store does not restrict edges to these."""
    KNOWS = "knows"
    WORKS_WITH = "works_with"
    FAMILY = "family"
    FRIEND = "friend"
    COLLEAGUE = "colleague"
    ATTENDS = "attends"
    ORGANIZES = "organizes"
    LOCATED_AT = "located_at"
    ASSIGNED_TO = "assigned_to"
    DEPENDS_ON = "depends_on"


class Direction(str, Enum):
    """Traversal direction for relationship lookups."""
    OUTGOING = "outgoing"
    INCOMING = "incoming"
    BOTH = "both"


class RelationshipPolicy(str, Enum):
    """How create_relationship treats an existing (source, target, type) row.

    APPEND: every call inserts a row (repeated independent observations).
    DEDUPE: an existing row satisfies the call; nothing is inserted.
    """
    APPEND = "append"
    DEDUPE = "dedupe"


# Key under which the store injects system metadata into Entity.data
METADATA_KEY = "_metadata"
SCHEMA_VERSION = 1


@dataclass
class Entity:
    """A knowledge-graph node (person, event, task, ...)."""
    id: str
    user_id: str
    type: str
    primary_name: str
    data: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    @property
    def metadata(self) -> dict[str, Any]:
        return self.data.get(METADATA_KEY, {})

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "primary_name": self.primary_name,
            "data": self.data,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class Relationship:
    """A typed, directed, weighted edge between two entities.

    source_name/target_name and the *_type fields are resolved at read time
    and are empty on freshly constructed objects.
    """
    id: str
    user_id: str
    source_entity_id: str
    target_entity_id: str
    type: str
    strength: float = 1.0
    metadata: Optional[dict[str, Any]] = None
    created_at: str = ""
    source_name: str = ""
    source_type: str = ""
    target_name: str = ""
    target_type: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "source_entity_id": self.source_entity_id,
            "target_entity_id": self.target_entity_id,
            "type": self.type,
            "strength": self.strength,
            "metadata": self.metadata,
            "created_at": self.created_at,
            "source_name": self.source_name,
            "source_type": self.source_type,
            "target_name": self.target_name,
            "target_type": self.target_type,
        }
