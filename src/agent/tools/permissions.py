"""
agent.tools.permissions - Agent -> tool grant matrix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

DEFAULT_GRANTS: dict[str, tuple[str, ...]] = {
    "GeneralistAgent": ("weather", "search", "calendar", "notes", "database"),
    "FinanceAgent": ("database", "calendar", "notes"),
    "MemoryAgent": ("database", "search", "notes"),
    "PlannerAgent": ("calendar", "database", "search"),
    "HealthAgent": ("database", "fitness", "weather", "calendar", "search"),
    "RelationshipAgent": ("database", "contacts", "calendar"),
    "LearningAgent": ("database", "search", "calendar", "notes"),
    "SocialAgent": ("database", "calendar", "search"),
    "SpiritualAgent": ("database", "search", "meditation"),
}


@dataclass(frozen=True)
class PermissionConfig:
    """Immutable grant matrix handed to the ToolRegistry at construction."""
    grants: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, grants: Mapping[str, Iterable[str]]) -> PermissionConfig:
        return cls(grants={agent: frozenset(tools) for agent, tools in grants.items()})

    @classmethod
    def default(cls) -> PermissionConfig:
        return cls.from_mapping(DEFAULT_GRANTS)
