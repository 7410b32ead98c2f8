"""
agent.agents.spiritual - Mindfulness practice and reflection.

Reflections are stored as `habit` entities alongside the meditation tool's
sessions. Insights are offered as perspectives, never as prescriptions.
"""

from __future__ import annotations

from typing import Any

from agent.base import BaseAgent
from domain.entities import EntityType
from domain.models import AgentTask

GUIDANCE_NOTE = (
    "These spiritual insights are offered as perspectives for consideration. "
    "Please adapt them to your own beliefs and practices."
)

QUOTES: dict[str, tuple[str, ...]] = {
    "buddhist": ("Peace comes from within. Do not seek it without. - Buddha",),
    "stoic": ("You have power over your mind, not outside events. - Marcus Aurelius",),
    "taoist": ("The journey of a thousand miles begins with a single step. - Lao Tzu",),
}
DEFAULT_QUOTE = "The journey of a thousand miles begins with a single step. - Lao Tzu"

PRACTICES: dict[str, str] = {
    "meditation": "Mindful Breathing - 10 minutes",
    "gratitude": "Write down three things you are grateful for each evening",
    "prayer": "Set aside a quiet moment at the same time each day",
    "journaling": "Reflect in writing for ten minutes before bed",
    "yoga": "A gentle 15 minute session focused on breath and posture",
}
DEFAULT_PRACTICE = "Body Scan Meditation - 5 minutes"


class SpiritualAgent(BaseAgent):
    name = "SpiritualAgent"
    entity_type = EntityType.HABIT.value
    component_keys = (
        "reflection",
        "practice_type",
        "practice_suggestion",
        "tradition",
        "quotes",
        "philosophical_question",
        "meditation_stats",
        "guidance_note",
    )
    handlers = {"CREATE": "_create", "RETRIEVE": "_retrieve"}

    def _extract(self, task: AgentTask) -> dict[str, Any]:
        params = task.parameters
        tradition = str(params.get("tradition") or "non_specific").strip().lower()
        practice_type = str(params.get("practice_type") or "").strip().lower()
        question = str(params.get("philosophical_question") or "").strip()

        meditation = self._tool_data(task, "meditation") or {}
        suggestions = meditation.get("suggestions") or []
        if suggestions:
            suggestion = suggestions[0]
        else:
            suggestion = PRACTICES.get(practice_type, DEFAULT_PRACTICE)

        stats = None
        if "session_count" in meditation:
            stats = {
                key: meditation.get(key)
                for key in ("session_count", "total_minutes", "streak", "favorite_practice")
            }

        reflection = str(params.get("reflection") or "").strip() or task.original_query_part.strip()
        return self._component(
            {
                "reflection": reflection or "General spiritual reflection",
                "practice_type": practice_type or None,
                "practice_suggestion": suggestion,
                "tradition": tradition,
                "quotes": list(QUOTES.get(tradition, (DEFAULT_QUOTE,))),
                "philosophical_question": question or None,
                "meditation_stats": stats,
                "guidance_note": GUIDANCE_NOTE,
            },
            {
                "reflection": 1.0 if params.get("reflection") else 0.5,
                "practice_suggestion": 0.9 if suggestions else 0.6,
                "tradition": 1.0 if params.get("tradition") else 0.2,
            },
        )

    async def _create(self, task: AgentTask) -> dict[str, Any]:
        component = self._extract(task)
        name = component["practice_type"] or "Reflection"
        stored = await self._persist(task, name.title(), component)
        return self._result(task, "reflected", component=component, **stored)

    async def _retrieve(self, task: AgentTask) -> dict[str, Any]:
        return await self._list_entities(task)
