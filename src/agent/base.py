"""
agent.base - Shared behaviour for capability agents.

An agent maps an intent to a handler. Handlers turn parameters, free text and
tool results into a structured component and persist it through the
`database` tool, which they obtain from the ToolRegistry under their own
name. Agents return data only; application.presenter renders the text.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from agent.tools.registry import ToolRegistry
from domain.exceptions import UnknownIntentError
from domain.models import AgentTask

logger = logging.getLogger(__name__)

Handler = Callable[[AgentTask], Awaitable[dict[str, Any]]]


class BaseAgent:
    """Base class for all capability agents.

    Subclasses set:
        name:            capability identifier used in plans and grants
        entity_type:     type of entity their components are stored as
        component_keys:  keys every produced component contains
        handlers:        intent -> method name
    """

    name: str = ""
    entity_type: Optional[str] = None
    component_keys: tuple[str, ...] = ()
    handlers: dict[str, str] = {}

    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    async def execute(self, task: AgentTask) -> dict[str, Any]:
        try:
            handler = self._handler_for(task.intent)
        except UnknownIntentError as e:
            logger.info("%s", e)
            return {
                "status": "unsupported_intent",
                "agent": self.name,
                "intent": task.intent,
            }
        return await handler(task)

    def _handler_for(self, intent: str) -> Handler:
        method = self.handlers.get(intent)
        if method is None:
            raise UnknownIntentError(self.name, intent)
        return getattr(self, method)

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def _result(self, task: AgentTask, action: str, **fields: Any) -> dict[str, Any]:
        result = {
            "status": "success",
            "agent": self.name,
            "intent": task.intent,
            "action": action,
        }
        result.update(fields)
        return result

    def _component(self, values: dict[str, Any], confidence: dict[str, float]) -> dict[str, Any]:
        """Restrict to component_keys (missing keys become None) and attach confidence."""
        component = {key: values.get(key) for key in self.component_keys}
        component["confidence"] = confidence
        return component

    @staticmethod
    def _tool_data(task: AgentTask, tool_name: str) -> Any:
        """Payload of a successful tool call, or None when unavailable/failed."""
        result = task.tool_results.get(tool_name)
        if isinstance(result, dict) and result.get("status") == "success":
            return result.get("data")
        return None

    async def _database(self, task: AgentTask, operation: str, **params: Any) -> dict[str, Any]:
        """Run a database operation as this agent.

        Returns {"ok": bool, "data": ..., "error": ..., "denied": marker-or-None}.
        """
        outcome = await self._registry.invoke(
            "database", self.name,
            {"operation": operation, "user_id": task.user_id, **params},
        )
        if not outcome:
            return {"ok": False, "data": None, "error": None, "denied": outcome.to_marker()}
        return {"ok": outcome.success, "data": outcome.data, "error": outcome.error, "denied": None}

    def _unavailable(self, task: AgentTask, outcome: dict[str, Any], **fields: Any) -> dict[str, Any]:
        """Result for a database call that was denied or failed."""
        result = {
            "status": "unavailable",
            "agent": self.name,
            "intent": task.intent,
            "tool": "database",
            "error": outcome["error"],
        }
        if outcome["denied"]:
            result["denied"] = outcome["denied"]
        result.update(fields)
        return result

    async def _persist(self, task: AgentTask, name: str, component: dict[str, Any]) -> dict[str, Any]:
        """Save the component as a new entity. Never raises on a denial."""
        outcome = await self._database(
            task, "save_entity",
            entity_type=self.entity_type, name=name, data=component,
        )
        fields: dict[str, Any] = {"persisted": outcome["ok"]}
        if outcome["ok"]:
            fields["entity_id"] = outcome["data"]["entity_id"]
        elif outcome["denied"]:
            fields["persistence"] = outcome["denied"]
        else:
            fields["persistence_error"] = outcome["error"]
        return fields

    async def _list_entities(self, task: AgentTask, entity_type: Optional[str] = None) -> dict[str, Any]:
        """Shared RETRIEVE: all of the user's entities of this agent's type."""
        entity_type = entity_type or self.entity_type
        term = str(task.parameters.get("query") or "").strip()
        if term:
            outcome = await self._database(
                task, "search_entities", term=term, entity_type=entity_type,
                limit=int(task.parameters.get("limit", 10)),
            )
        else:
            outcome = await self._database(task, "find_entities_by_type", entity_type=entity_type)

        if not outcome["ok"]:
            return self._unavailable(task, outcome, records=[])
        records = outcome["data"] or []
        return self._result(
            task, "retrieved",
            entity_type=entity_type, records=records, count=len(records),
        )
