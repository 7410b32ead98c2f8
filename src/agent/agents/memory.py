"""
agent.agents.memory - Direct knowledge-graph maintenance.

Creates and updates arbitrary entities, links them and reads links back.
Related names given on CREATE are resolved to existing entities by exact
name match, or created as new entities.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from agent.base import BaseAgent
from domain.entities import METADATA_KEY, EntityType
from domain.models import AgentTask

logger = logging.getLogger(__name__)

DEFAULT_RELATIONSHIP_TYPE = "related_to"


class MemoryAgent(BaseAgent):
    name = "MemoryAgent"
    entity_type = EntityType.PERSON.value
    component_keys = ("name", "entity_type", "attributes")
    handlers = {
        "CREATE": "_create",
        "UPDATE": "_update",
        "RETRIEVE": "_retrieve",
        "CREATE_RELATIONSHIP": "_create_relationship",
        "RETRIEVE_RELATIONSHIPS": "_retrieve_relationships",
    }

    def _missing(self, task: AgentTask, *keys: str) -> Optional[dict[str, Any]]:
        missing = [k for k in keys if not task.parameters.get(k)]
        if not missing:
            return None
        return {
            "status": "invalid_parameters",
            "agent": self.name,
            "intent": task.intent,
            "missing": missing,
        }

    def _extract(self, task: AgentTask) -> dict[str, Any]:
        params = task.parameters
        name = str(
            params.get("name") or params.get("entity_alias") or params.get("person_alias") or ""
        ).strip()
        entity_type = params.get("type") or EntityType.PERSON.value
        attributes = params.get("attributes") if isinstance(params.get("attributes"), dict) else {}
        return self._component(
            {"name": name or "unnamed", "entity_type": entity_type, "attributes": attributes},
            {"name": 1.0 if name else 0.0},
        )

    async def _create(self, task: AgentTask) -> dict[str, Any]:
        component = self._extract(task)
        outcome = await self._database(
            task, "save_entity",
            entity_type=component["entity_type"], name=component["name"], data=component,
        )
        if not outcome["ok"]:
            return self._result(
                task, "remembered",
                component=component, persisted=False,
                persistence=outcome["denied"], persistence_error=outcome["error"],
            )

        entity_id = outcome["data"]["entity_id"]
        linked = []
        for request in task.parameters.get("relationships") or []:
            if isinstance(request, dict):
                relationship = await self._link(task, entity_id, request)
                if relationship:
                    linked.append(relationship)

        return self._result(
            task, "remembered",
            component=component, persisted=True, entity_id=entity_id, relationships=linked,
        )

    async def _link(self, task: AgentTask, source_id: str, request: dict[str, Any]) -> Optional[dict]:
        """Resolve or create the target named in the request and link source to it."""
        target_name = str(request.get("target") or "").strip()
        if not target_name:
            return None
        target_type = request.get("target_type") or EntityType.PERSON.value

        found = await self._database(
            task, "search_entities", term=target_name, entity_type=target_type, limit=10,
        )
        matches = [e for e in (found["data"] or []) if e["primary_name"] == target_name]
        if matches:
            target_id = matches[0]["id"]
        else:
            created = await self._database(
                task, "save_entity",
                entity_type=target_type, name=target_name,
                data={"name": target_name, "entity_type": target_type, "attributes": {}},
            )
            if not created["ok"]:
                logger.warning("Could not create related entity '%s'", target_name)
                return None
            target_id = created["data"]["entity_id"]

        relationship_type = request.get("type") or DEFAULT_RELATIONSHIP_TYPE
        linked = await self._database(
            task, "create_relationship",
            source_id=source_id, target_id=target_id,
            relationship_type=relationship_type, strength=request.get("strength", 1.0),
        )
        if not linked["ok"]:
            return None
        return {
            "relationship_id": linked["data"]["relationship_id"],
            "type": relationship_type,
            "target_id": target_id,
            "target_name": target_name,
        }

    async def _update(self, task: AgentTask) -> dict[str, Any]:
        invalid = self._missing(task, "entity_id")
        if invalid:
            return invalid
        entity_id = task.parameters["entity_id"]

        found = await self._database(task, "find_entity", entity_id=entity_id)
        if not found["ok"]:
            return self._unavailable(task, found, entity_id=entity_id)
        if not found["data"]:
            return {
                "status": "not_found",
                "agent": self.name,
                "intent": task.intent,
                "entity_id": entity_id,
            }

        data = {k: v for k, v in found["data"]["data"].items() if k != METADATA_KEY}
        attributes = dict(data.get("attributes") or {})
        attributes.update(task.parameters.get("attributes") or {})
        data["attributes"] = attributes

        updated = await self._database(task, "update_entity", entity_id=entity_id, data=data)
        return self._result(
            task, "updated",
            entity_id=entity_id, attributes=attributes, persisted=updated["ok"],
        )

    async def _retrieve(self, task: AgentTask) -> dict[str, Any]:
        entity_id = task.parameters.get("entity_id")
        if entity_id:
            found = await self._database(task, "find_entity", entity_id=entity_id)
            if not found["ok"]:
                return self._unavailable(task, found, records=[])
            records = [found["data"]] if found["data"] else []
            return self._result(task, "retrieved", records=records, count=len(records))

        name = task.parameters.get("name") or task.parameters.get("entity_alias")
        if not name:
            return self._missing(task, "entity_id")
        found = await self._database(
            task, "search_entities", term=name,
            entity_type=task.parameters.get("type"), limit=10,
        )
        if not found["ok"]:
            return self._unavailable(task, found, records=[])
        records = found["data"] or []
        return self._result(task, "retrieved", records=records, count=len(records))

    async def _create_relationship(self, task: AgentTask) -> dict[str, Any]:
        invalid = self._missing(task, "source_id", "target_id")
        if invalid:
            return invalid
        params = task.parameters
        relationship_type = params.get("relationship_type") or DEFAULT_RELATIONSHIP_TYPE

        outcome = await self._database(
            task, "create_relationship",
            source_id=params["source_id"], target_id=params["target_id"],
            relationship_type=relationship_type,
            strength=params.get("strength", 1.0), metadata=params.get("metadata"),
        )
        if not outcome["ok"]:
            return {
                "status": "error",
                "agent": self.name,
                "intent": task.intent,
                "error": outcome["error"] or "database tool unavailable",
            }
        return self._result(
            task, "linked",
            relationship_id=outcome["data"]["relationship_id"],
            relationship_type=relationship_type,
        )

    async def _retrieve_relationships(self, task: AgentTask) -> dict[str, Any]:
        invalid = self._missing(task, "entity_id")
        if invalid:
            return invalid
        outcome = await self._database(
            task, "find_relationships",
            entity_id=task.parameters["entity_id"],
            relationship_type=task.parameters.get("relationship_type"),
            direction=task.parameters.get("direction", "both"),
        )
        if not outcome["ok"]:
            return {
                "status": "error",
                "agent": self.name,
                "intent": task.intent,
                "error": outcome["error"] or "database tool unavailable",
            }
        relationships = outcome["data"] or []
        return self._result(
            task, "retrieved_relationships",
            entity_id=task.parameters["entity_id"],
            relationships=relationships, count=len(relationships),
        )
