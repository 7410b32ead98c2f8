"""
agent.agents.learning - Learning goals and study plans.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from agent.base import BaseAgent
from domain.entities import EntityType
from domain.models import AgentTask

LEARNING_STEPS = (
    "Review fundamentals and build a solid foundation",
    "Practice core concepts through exercises and applications",
    "Test understanding by teaching concepts to others or creating projects",
)

RESOURCES = {
    "beginner": ("Introductory textbooks", "Basic online tutorials", "Foundation courses"),
    "intermediate": ("Practice exercises", "Project-based learning", "Community forums"),
    "advanced": ("Research papers", "Advanced case studies", "Expert discussions"),
}


class LearningAgent(BaseAgent):
    name = "LearningAgent"
    entity_type = EntityType.GOAL.value
    component_keys = (
        "subject",
        "skill_level",
        "learning_goal",
        "learning_steps",
        "recommended_resources",
        "note_topics",
    )
    handlers = {"CREATE": "_create", "RETRIEVE": "_retrieve"}

    def _extract(self, task: AgentTask) -> dict[str, Any]:
        params = task.parameters
        subject = str(params.get("subject") or "").strip()
        skill_level = str(params.get("skill_level") or "beginner").lower()
        if skill_level not in RESOURCES:
            skill_level = "beginner"

        notes = self._tool_data(task, "notes") or []
        topics = Counter(
            n["data"].get("topic") for n in notes
            if isinstance(n, dict) and isinstance(n.get("data"), dict) and n["data"].get("topic")
        )

        return self._component(
            {
                "subject": subject or task.original_query_part.strip() or "General learning",
                "skill_level": skill_level,
                "learning_goal": params.get("learning_goal", ""),
                "learning_steps": list(LEARNING_STEPS),
                "recommended_resources": list(RESOURCES[skill_level]),
                "note_topics": dict(topics),
            },
            {
                "subject": 1.0 if subject else 0.4,
                "skill_level": 1.0 if params.get("skill_level") else 0.3,
            },
        )

    async def _create(self, task: AgentTask) -> dict[str, Any]:
        component = self._extract(task)
        stored = await self._persist(task, component["subject"], component)
        return self._result(task, "planned_learning", component=component, **stored)

    async def _retrieve(self, task: AgentTask) -> dict[str, Any]:
        return await self._list_entities(task)
