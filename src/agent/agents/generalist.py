"""
agent.agents.generalist - Fallback capability for anything unrouted.

Handles every intent. Summarizes whatever tool results it was given and
persists nothing.
"""

from __future__ import annotations

from typing import Any

from agent.base import BaseAgent
from domain.models import AgentTask


class GeneralistAgent(BaseAgent):
    name = "GeneralistAgent"
    component_keys = ("query", "weather", "search_results", "tool_data", "unavailable_tools")

    def _handler_for(self, intent: str):
        return self._answer

    async def _answer(self, task: AgentTask) -> dict[str, Any]:
        weather = self._tool_data(task, "weather")
        search = self._tool_data(task, "search")

        tool_data = {}
        unavailable = []
        for tool_name, result in task.tool_results.items():
            if isinstance(result, dict) and result.get("status") == "unavailable":
                unavailable.append(tool_name)
            elif tool_name not in ("weather", "search"):
                tool_data[tool_name] = result

        component = self._component(
            {
                "query": task.original_query_part,
                "weather": weather,
                "search_results": (search or {}).get("results"),
                "tool_data": tool_data,
                "unavailable_tools": unavailable,
            },
            {},
        )
        return self._result(task, "answered", component=component)
