"""
agent.agents.planner - Task scheduling.
"""

from __future__ import annotations

from typing import Any

from agent.base import BaseAgent
from domain.entities import EntityType
from domain.models import AgentTask

_HIGH_PRIORITY_WORDS = ("urgent", "asap", "important", "critical", "immediately")


class PlannerAgent(BaseAgent):
    name = "PlannerAgent"
    entity_type = EntityType.TASK.value
    component_keys = ("title", "due_date", "priority", "status", "calendar_event_id")
    handlers = {"CREATE": "_create", "RETRIEVE": "_retrieve"}

    def _extract(self, task: AgentTask) -> dict[str, Any]:
        params = task.parameters
        calendar = self._tool_data(task, "calendar") or {}
        confidence: dict[str, float] = {}

        title = str(params.get("task_title") or params.get("title") or "").strip()
        if title:
            confidence["title"] = 1.0
        else:
            title = task.original_query_part.strip() or "Unnamed Task"
            confidence["title"] = 0.5 if task.original_query_part.strip() else 0.0

        due_date = params.get("due_date") or calendar.get("date")
        confidence["due_date"] = 1.0 if due_date else 0.0

        priority = params.get("priority")
        if priority:
            confidence["priority"] = 1.0
        else:
            text = f"{title} {task.original_query_part}".lower()
            priority = "high" if any(w in text for w in _HIGH_PRIORITY_WORDS) else "normal"
            confidence["priority"] = 0.6

        return self._component(
            {
                "title": title,
                "due_date": due_date or "today",
                "priority": priority,
                "status": params.get("status", "pending"),
                "calendar_event_id": calendar.get("event_id"),
            },
            confidence,
        )

    async def _create(self, task: AgentTask) -> dict[str, Any]:
        component = self._extract(task)
        stored = await self._persist(task, component["title"], component)
        return self._result(task, "scheduled_task", component=component, **stored)

    async def _retrieve(self, task: AgentTask) -> dict[str, Any]:
        return await self._list_entities(task)
